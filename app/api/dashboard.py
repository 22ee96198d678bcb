"""
Dashboard API routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.database import SupabaseService, get_db
from app.services.report_service import ReportService
from app.utils.auth import get_current_user, get_current_admin_user

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/user", summary="用戶儀表板")
async def user_dashboard(
    userId: str = Query(..., description="用戶 ID"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return ReportService(db).get_user_dashboard(userId)


@router.get("/admin", summary="管理員儀表板")
async def admin_dashboard(
    date: Optional[str] = Query(None, description="日期 (YYYY-MM-DD)"),
    role: Optional[str] = Query(None, description="角色篩選"),
    status: Optional[str] = Query(None, description="present 或 absent"),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """各用戶出勤統計（需要管理員權限）"""
    return ReportService(db).get_admin_dashboard(date, role, status)
