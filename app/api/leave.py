"""
Leave request API routes.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.database import SupabaseService, get_db
from app.schemas.leave import ApplyLeaveRequest, ApproveLeaveRequest, LeaveFilters, LeaveStatus
from app.services.leave_service import LeaveService
from app.utils.auth import get_current_user, get_current_admin_user

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/apply", status_code=status.HTTP_201_CREATED, summary="申請請假")
async def apply_leave(
    request: ApplyLeaveRequest,
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return LeaveService(db).apply_leave(request)


@router.patch("/approve", summary="審核請假")
async def approve_leave(
    request: ApproveLeaveRequest,
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """核准或駁回請假（需要管理員權限）"""
    return LeaveService(db).approve_leave(request)


@router.get("/me", response_model=List[dict], summary="取得我的請假記錄")
async def my_leaves(
    userId: str = Query(..., description="用戶 ID"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return LeaveService(db).my_leaves(userId)


@router.get("/all", response_model=List[dict], summary="取得所有請假記錄")
async def all_leaves(
    from_date: Optional[date] = Query(None, alias="from", description="開始日期"),
    to_date: Optional[date] = Query(None, alias="to", description="結束日期"),
    status: Optional[LeaveStatus] = Query(None, description="狀態篩選"),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    filters = LeaveFilters(start_date=from_date, end_date=to_date, status=status)
    return LeaveService(db).all_leaves(filters)
