"""
Attendance API routes for check-in/out, manual entries, bulk actions and queries.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.database import SupabaseService, get_db
from app.schemas.attendance import (
    AttendanceFilterQuery,
    AttendanceFilters,
    AttendanceListResponse,
    BulkActionRequest,
    BulkAttendanceRequest,
    CheckInRequest,
    CheckOutRequest,
    DashboardStats,
    ManualAttendanceRequest,
    SortField,
    SortOrder,
)
from app.services.attendance_service import AttendanceService
from app.utils.auth import get_current_user, get_current_admin_user

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/checkin", status_code=status.HTTP_201_CREATED, summary="上班打卡")
async def check_in(
    request: CheckInRequest,
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    """
    今日上班打卡。

    - 今日已被標記缺勤時會改為出勤
    - 已打卡則返回現有記錄
    """
    return AttendanceService(db).check_in(request.user_id)


@router.post("/checkout", summary="下班打卡")
async def check_out(
    request: CheckOutRequest,
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).check_out(request.user_id)


@router.get("/me", response_model=List[dict], summary="取得我的出勤記錄")
async def get_my_attendance(
    userId: str = Query(..., description="用戶 ID"),
    from_date: Optional[str] = Query(None, alias="from", description="開始日期 (YYYY-MM-DD)"),
    to_date: Optional[str] = Query(None, alias="to", description="結束日期 (YYYY-MM-DD)"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).get_my_attendance(userId, from_date, to_date)


@router.get("/filter-by-employee-id", response_model=List[dict], summary="依員工編號查詢出勤")
async def filter_by_employee_id(
    employee_id: str = Query(..., description="員工編號"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).get_attendance_by_employee_id(employee_id)


@router.get("/all", response_model=List[dict], summary="取得所有出勤記錄")
async def get_all_attendance(
    date: Optional[str] = Query(None, description="日期 (YYYY-MM-DD)"),
    name: Optional[str] = Query(None, description="姓名（部分符合）"),
    employeeId: Optional[str] = Query(None, description="員工編號（部分符合）"),
    checkInFrom: Optional[str] = Query(None, description="最早上班時間 (HH:mm)"),
    checkOutTo: Optional[str] = Query(None, description="最晚下班時間 (HH:mm)"),
    status: Optional[str] = Query(None, description="狀態：checked-in, checked-out, absent, not-checked-in"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    """取得所有出勤記錄，支援日期、姓名、員工編號、時間範圍和狀態篩選"""
    filters = AttendanceFilters(
        date=date,
        name=name,
        employee_id=employeeId,
        check_in_from=checkInFrom,
        check_out_to=checkOutTo,
        status=status,
    )
    return AttendanceService(db).get_all(filters)


@router.get("/filter", response_model=AttendanceListResponse, summary="進階出勤查詢")
async def filter_attendance(
    startDate: Optional[str] = Query(None, description="開始日期"),
    endDate: Optional[str] = Query(None, description="結束日期"),
    date: Optional[str] = Query(None, description="指定日期"),
    month: Optional[str] = Query(None, description="月份 (01-12)，需搭配年份"),
    year: Optional[str] = Query(None, description="年份 (YYYY)"),
    name: Optional[str] = Query(None, description="姓名（部分符合）"),
    employeeId: Optional[str] = Query(None, description="員工編號（部分符合）"),
    designation: Optional[str] = Query(None, description="職稱（部分符合）"),
    status: Optional[str] = Query(None, description="狀態"),
    manualEntry: Optional[bool] = Query(None, description="是否手動登記"),
    page: int = Query(1, ge=1, description="頁碼"),
    limit: int = Query(20, ge=1, le=100, description="每頁筆數"),
    sortBy: SortField = Query(SortField.DATE, description="排序欄位"),
    sortOrder: SortOrder = Query(SortOrder.DESC, description="排序方向"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    query = AttendanceFilterQuery(
        start_date=startDate,
        end_date=endDate,
        date=date,
        month=month,
        year=year,
        name=name,
        employee_id=employeeId,
        designation=designation,
        status=status,
        manual_entry=manualEntry,
        page=page,
        limit=limit,
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    return AttendanceService(db).filter_records(query)


@router.get("/summary", summary="取得月度出勤摘要")
async def get_attendance_summary(
    userId: str = Query(..., description="用戶 ID"),
    month: Optional[str] = Query(None, description="月份 (1-12)"),
    year: Optional[str] = Query(None, description="年份 (YYYY)"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).get_attendance_summary(userId, month, year)


@router.post("/manual", status_code=status.HTTP_201_CREATED, summary="手動登記出勤")
async def manual_attendance(
    request: ManualAttendanceRequest,
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """
    手動登記出勤（需要管理員權限）。

    - 缺勤需填寫原因且不可帶時間
    - 出勤時間為 HH:mm，下班需晚於上班
    """
    return AttendanceService(db).manual_attendance(request)


@router.post("/bulk", status_code=status.HTTP_201_CREATED, summary="批量登記出勤")
async def bulk_attendance(
    request: BulkAttendanceRequest,
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).bulk_attendance_update(request.records)


@router.post("/bulk-action", status_code=status.HTTP_201_CREATED, summary="批量標記出勤/缺勤")
async def bulk_action(
    request: BulkActionRequest,
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).process_bulk_action(request)


@router.get("/stats", response_model=DashboardStats, summary="取得出勤統計")
async def get_stats(
    date: Optional[str] = Query(None, description="日期 (YYYY-MM-DD)，預設今日"),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    return AttendanceService(db).get_dashboard_stats(date)
