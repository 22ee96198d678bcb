"""
Report export API routes.
"""

import io
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from app.database import SupabaseService, get_db
from app.schemas.attendance import AttendanceFilterQuery, SortField, SortOrder
from app.services.report_service import ReportService
from app.utils.auth import get_current_admin_user

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/attendance/export", summary="匯出出勤記錄 CSV")
async def export_attendance(
    startDate: Optional[str] = Query(None, description="開始日期"),
    endDate: Optional[str] = Query(None, description="結束日期"),
    date: Optional[str] = Query(None, description="指定日期"),
    month: Optional[str] = Query(None, description="月份 (01-12)"),
    year: Optional[str] = Query(None, description="年份 (YYYY)"),
    name: Optional[str] = Query(None, description="姓名"),
    employeeId: Optional[str] = Query(None, description="員工編號"),
    designation: Optional[str] = Query(None, description="職稱"),
    status: Optional[str] = Query(None, description="狀態"),
    manualEntry: Optional[bool] = Query(None, description="是否手動登記"),
    sortBy: SortField = Query(SortField.DATE, description="排序欄位"),
    sortOrder: SortOrder = Query(SortOrder.DESC, description="排序方向"),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """
    匯出符合條件的所有出勤記錄（需要管理員權限）。

    篩選條件與進階出勤查詢相同，但不分頁。
    """
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
        sort_by=sortBy,
        sort_order=sortOrder,
    )
    file_content, filename, content_type = ReportService(db).export_attendance_csv(query)

    return StreamingResponse(
        io.BytesIO(file_content),
        media_type=content_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
