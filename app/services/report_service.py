"""
Report service layer for user/admin dashboards and attendance exports.
"""

import io
import csv
import logging
from typing import List, Dict, Any, Optional, Tuple

from app.config import settings
from app.database import SupabaseService, first_row, all_rows
from app.schemas.attendance import AttendanceFilterQuery
from app.services.attendance_service import AttendanceService
from app.utils.datetime_utils import get_today
from app.utils.exceptions import BadRequestError, NotFoundError, ServiceError
from app.utils.validators import validate_date_format, validate_user_role

logger = logging.getLogger(__name__)

DASHBOARD_STATUSES = ("present", "absent")

EXPORT_COLUMNS = [
    "date",
    "employee_id",
    "name",
    "designation",
    "check_in",
    "check_out",
    "total_time",
    "status",
    "manual_entry",
    "absence_reason",
]


def summarize_attendance(records: List[dict]) -> Dict[str, Any]:
    """
    計算出勤統計。

    A present day has both check-in and check-out; an absent day has neither.
    Average hours are taken over present days only.
    """
    present = [r for r in records if r.get("check_in") and r.get("check_out")]
    absent = [r for r in records if not r.get("check_in") and not r.get("check_out")]
    total_minutes = sum(float(r.get("total_time_minutes") or 0) for r in records)
    avg_hours = round(total_minutes / len(present) / 60, 2) if present else 0

    return {
        "present": len(present),
        "absent": len(absent),
        "avgHours": avg_hours,
        "totalMinutes": round(total_minutes, 2),
    }


class ReportService:
    """報表業務邏輯服務"""

    def __init__(self, db: SupabaseService):
        self.db = db
        self.attendance_service = AttendanceService(db)

    def _table(self, name: str):
        return self.db.get_admin_client().table(name)

    def get_user_dashboard(self, user_id: str) -> Dict[str, Any]:
        """
        取得用戶儀表板。

        Args:
            user_id: 用戶 ID

        Returns:
            {"profile", "summary": {present, absent, avgHours, totalMinutes, leaves}}
        """
        if not user_id:
            raise BadRequestError("userId required")

        try:
            profile = first_row(self._table("users").select("*").eq("id", user_id).limit(1).execute())
            if profile is None:
                raise NotFoundError(f"User with id {user_id} not found")

            attendance = all_rows(self._table("attendance").select("*").eq("user_id", user_id).execute())
            leaves = all_rows(
                self._table("leaves").select("*").eq("user_id", user_id).order("leave_date", desc=True).execute()
            )
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to build dashboard for user {user_id}: {str(e)}")
            raise ServiceError("Failed to fetch dashboard")

        return {
            "profile": profile,
            "summary": {**summarize_attendance(attendance), "leaves": leaves},
        }

    def get_admin_dashboard(
        self, target_date: Optional[str] = None, role: Optional[str] = None, status: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        取得管理員儀表板，逐一用戶統計。

        Args:
            target_date: 只統計此日期 (YYYY-MM-DD)
            role: 用戶角色篩選
            status: present / absent，只保留至少有一天符合的用戶

        Returns:
            {"filters", "summary": [...]}
        """
        if target_date and validate_date_format(target_date) is None:
            raise BadRequestError("Date must be in YYYY-MM-DD format")
        if role and not validate_user_role(role):
            raise BadRequestError("Role must be either admin or user")
        if status and status not in DASHBOARD_STATUSES:
            raise BadRequestError("Status must be either present or absent")

        try:
            users_query = self._table("users").select("*")
            if role:
                users_query = users_query.eq("role", role)
            users = all_rows(users_query.execute())

            attendance_query = self._table("attendance").select("*")
            if target_date:
                attendance_query = attendance_query.eq("date", target_date)
            attendance = all_rows(attendance_query.execute())
        except Exception as e:
            logger.error(f"Failed to build admin dashboard: {str(e)}")
            raise ServiceError("Failed to fetch dashboard")

        by_user: Dict[str, List[dict]] = {}
        for record in attendance:
            by_user.setdefault(record.get("user_id"), []).append(record)

        summary = []
        for user in users:
            figures = summarize_attendance(by_user.get(user.get("id"), []))
            if status and figures[status] == 0:
                continue
            summary.append({"user": user, **figures})

        return {
            "filters": {"date": target_date, "role": role, "status": status},
            "summary": summary,
        }

    def export_attendance_csv(self, query: AttendanceFilterQuery) -> Tuple[bytes, str, str]:
        """
        匯出出勤記錄為 CSV（不分頁）。

        Returns:
            (檔案內容, 檔案名稱, 內容類型) 的元組
        """
        records = self.attendance_service.query_records(query)

        rows = [
            {
                "date": r.get("date"),
                "employee_id": r["user_info"].get("employee_id"),
                "name": r["user_info"].get("name"),
                "designation": r["user_info"].get("designation"),
                "check_in": r.get("check_in_ist"),
                "check_out": r.get("check_out_ist"),
                "total_time": r.get("total_time_formatted"),
                "status": r.get("status"),
                "manual_entry": r.get("manual_entry"),
                "absence_reason": r.get("absence_reason"),
            }
            for r in records
        ]

        filename = f"attendance_{get_today().strftime(settings.EXPORT_DATE_FORMAT)}.csv"
        logger.info(f"Exported {len(rows)} attendance records to {filename}")
        return self._export_to_csv(rows), filename, "text/csv"

    def _export_to_csv(self, data: List[Dict]) -> bytes:
        """匯出資料為 CSV 格式"""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS)

        writer.writeheader()
        for row in data:
            writer.writerow(row)

        return output.getvalue().encode('utf-8')
