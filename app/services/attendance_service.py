"""
Attendance service layer for check-in/out, manual entries, bulk actions and summaries.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from app.config import settings
from app.database import SupabaseService, first_row, all_rows
from app.schemas.attendance import (
    AttendanceFilterQuery,
    AttendanceFilters,
    AttendanceStatus,
    BulkActionRequest,
    BulkActionType,
    ManualAttendanceRequest,
    SortField,
    SortOrder,
    SummaryStatus,
)
from app.utils.datetime_utils import (
    format_duration,
    local_now,
    minutes_between,
    month_bounds,
    parse_datetime,
    parse_time_on_date,
    to_local_display,
    today_str,
    utc_now,
)
from app.utils.exceptions import BadRequestError, ServiceError
from app.utils.validators import (
    validate_date_format,
    validate_month,
    validate_pagination_params,
    validate_time_format,
    validate_year,
)

logger = logging.getLogger(__name__)

USER_INFO_COLUMNS = "id, name, email, employee_id, designation, profile_url, role"


def derive_status(record: dict) -> AttendanceStatus:
    """依打卡狀態推導出勤狀態"""
    if record.get("is_absent"):
        return AttendanceStatus.ABSENT
    if record.get("check_in") and not record.get("check_out"):
        return AttendanceStatus.CHECKED_IN
    if record.get("check_in") and record.get("check_out"):
        return AttendanceStatus.CHECKED_OUT
    return AttendanceStatus.NOT_CHECKED_IN


def summary_status(record: dict) -> SummaryStatus:
    """月報表使用的出勤狀態"""
    if record.get("is_absent"):
        return SummaryStatus.ABSENT
    if record.get("check_in") and not record.get("check_out"):
        return SummaryStatus.HALF_DAY
    if record.get("check_in") and record.get("check_out"):
        return SummaryStatus.PRESENT
    return SummaryStatus.NOT_MARKED


def decorate_record(record: dict) -> dict:
    """加上顯示用欄位（當地時間、總時長、狀態）"""
    if record.get("check_in") and record.get("check_out"):
        total_time = format_duration(record["check_in"], record["check_out"])
    elif record.get("is_absent"):
        total_time = "00:00:00"
    else:
        total_time = None

    return {
        **record,
        "check_in_ist": to_local_display(record.get("check_in")),
        "check_out_ist": to_local_display(record.get("check_out")),
        "total_time_formatted": total_time,
        "status": derive_status(record).value,
        "manual_entry": record.get("manual_entry") or False,
    }


def user_info(user: Optional[dict], fields: tuple) -> dict:
    user = user or {}
    return {field: user.get(field) for field in fields}


class AttendanceService:
    """出勤業務邏輯服務"""

    def __init__(self, db: SupabaseService):
        self.db = db

    def _table(self, name: str = "attendance"):
        return self.db.get_admin_client().table(name)

    def _find_record(self, user_id: str, day: str) -> Optional[dict]:
        response = self._table().select("*").eq("user_id", user_id).eq("date", day).limit(1).execute()
        return first_row(response)

    def _upsert_record(self, data: dict) -> dict:
        response = self._table().upsert(data, on_conflict="user_id,date", ignore_duplicates=False).execute()
        row = first_row(response)
        if row is None:
            raise ServiceError("Attendance upsert returned no row")
        return row

    def check_in(self, user_id: str) -> Dict[str, Any]:
        """
        今日上班打卡。

        Args:
            user_id: 用戶 ID

        Returns:
            {"message", "data"}，已打卡時返回現有記錄

        Raises:
            BadRequestError: 缺少用戶 ID
            ServiceError: 資料存取失敗
        """
        if not user_id:
            raise BadRequestError("userId required")

        try:
            today = today_str()
            existing = self._find_record(user_id, today)
            now = utc_now().isoformat()

            if existing:
                if existing.get("is_absent"):
                    response = self._table().update({
                        "check_in": now,
                        "is_absent": False,
                        "absence_reason": None,
                        "check_out": None,
                        "total_time_minutes": None,
                        "manual_entry": False,
                    }).eq("id", existing["id"]).execute()
                    updated = first_row(response)
                    if updated is None:
                        raise ServiceError("Failed to check in")

                    logger.info(f"User {user_id} checked in on {today} (changed from absent)")
                    return {
                        "message": "Check-in successful (changed from absent)",
                        "data": decorate_record(updated),
                    }

                return {"message": "Already checked in today", "data": decorate_record(existing)}

            response = self._table().insert({
                "user_id": user_id,
                "date": today,
                "check_in": now,
                "is_absent": False,
                "manual_entry": False,
            }).execute()
            created = first_row(response)
            if created is None:
                raise ServiceError("Failed to check in")

            logger.info(f"User {user_id} checked in on {today}")
            return {"message": "Check-in successful", "data": decorate_record(created)}

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Check-in failed for user {user_id}: {str(e)}")
            raise ServiceError("Failed to check in")

    def check_out(self, user_id: str) -> Dict[str, Any]:
        """
        今日下班打卡。

        Raises:
            BadRequestError: 今日未打卡、已標記缺勤或時間不合理
            ServiceError: 資料存取失敗
        """
        if not user_id:
            raise BadRequestError("userId required")

        try:
            today = today_str()
            row = self._find_record(user_id, today)

            if row is None:
                raise BadRequestError("No check-in found for today")

            if row.get("is_absent"):
                raise BadRequestError("Cannot check out - marked as absent today")

            if not row.get("check_in"):
                raise BadRequestError("No check-in found for today")

            if row.get("check_out"):
                return {"message": "Already checked out today", "data": decorate_record(row)}

            check_in_time = parse_datetime(row["check_in"])
            check_out_time = utc_now()
            if check_in_time is None or check_out_time < check_in_time:
                raise BadRequestError("Check-out time cannot be before check-in time")

            response = self._table().update({
                "check_out": check_out_time.isoformat(),
                "total_time_minutes": minutes_between(check_in_time, check_out_time),
            }).eq("id", row["id"]).execute()
            updated = first_row(response)
            if updated is None:
                raise ServiceError("Failed to check out")

            logger.info(f"User {user_id} checked out on {today}")
            return {"message": "Check-out successful", "data": decorate_record(updated)}

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Check-out failed for user {user_id}: {str(e)}")
            raise ServiceError("Failed to check out")

    def get_my_attendance(self, user_id: str, date_from: str = None, date_to: str = None) -> List[dict]:
        """取得用戶的出勤記錄（可選日期範圍，含首尾），新到舊排序"""
        if not user_id:
            raise BadRequestError("userId required")
        if date_from and validate_date_format(date_from) is None:
            raise BadRequestError("Invalid from date format")
        if date_to and validate_date_format(date_to) is None:
            raise BadRequestError("Invalid to date format")

        try:
            query = self._table().select("*").eq("user_id", user_id)
            if date_from:
                query = query.gte("date", date_from)
            if date_to:
                query = query.lte("date", date_to)

            rows = all_rows(query.order("date", desc=True).execute())
            return [decorate_record(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to fetch attendance for user {user_id}: {str(e)}")
            raise ServiceError("Failed to fetch attendance")

    def get_all(self, filters: AttendanceFilters) -> List[dict]:
        """
        管理員查詢所有出勤記錄。

        Check-in/out bounds are HH:mm wall times on the filter date (today when
        no date is given). The status filter compares status slugs such as
        ``checked-in`` and is applied after the rows are fetched.
        """
        if filters.date and validate_date_format(filters.date) is None:
            raise BadRequestError("Invalid date format")
        for bound in (filters.check_in_from, filters.check_out_to):
            if bound and not validate_time_format(bound):
                raise BadRequestError("Invalid time format. Use HH:mm (24-hour format)")

        try:
            query = self._table().select(f"*, users!inner({USER_INFO_COLUMNS})")

            if filters.date:
                query = query.eq("date", filters.date)
            if filters.name:
                query = query.ilike("users.name", f"%{filters.name}%")
            if filters.employee_id:
                query = query.ilike("users.employee_id", f"%{filters.employee_id}%")

            bound_day = filters.date or today_str()
            if filters.check_in_from:
                query = query.gte("check_in", parse_time_on_date(bound_day, filters.check_in_from).isoformat())
            if filters.check_out_to:
                query = query.lte("check_out", parse_time_on_date(bound_day, filters.check_out_to).isoformat())

            rows = all_rows(query.order("date", desc=True).execute())

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch all attendance: {str(e)}")
            raise ServiceError("Failed to fetch attendance records")

        wanted = (filters.status or "").strip().lower()
        if wanted:
            rows = [row for row in rows if derive_status(row).slug == wanted]

        return [
            {
                **decorate_record(row),
                "user_info": user_info(
                    row.get("users"),
                    ("id", "name", "email", "employee_id", "designation", "profile_url", "role"),
                ),
            }
            for row in rows
        ]

    def query_records(self, query: AttendanceFilterQuery) -> List[dict]:
        """
        進階出勤查詢，返回已排序、未分頁的記錄。

        Raises:
            BadRequestError: 日期、月份或年份格式錯誤
        """
        for value, label in ((query.start_date, "Start date"), (query.end_date, "End date"), (query.date, "Date")):
            if value and validate_date_format(value) is None:
                raise BadRequestError(f"{label} must be a valid date string")
        if query.month and not validate_month(query.month):
            raise BadRequestError("Month must be between 01 and 12")
        if query.year and not validate_year(query.year):
            raise BadRequestError("Year must be 4 digits")
        if bool(query.month) != bool(query.year):
            raise BadRequestError("Month and year must be provided together")

        try:
            builder = self._table().select(f"*, users!inner({USER_INFO_COLUMNS})")

            if query.date:
                builder = builder.eq("date", query.date)
            elif query.month and query.year:
                first_day, last_day = month_bounds(int(query.month), int(query.year))
                builder = builder.gte("date", first_day.isoformat()).lte("date", last_day.isoformat())

            if query.start_date:
                builder = builder.gte("date", query.start_date)
            if query.end_date:
                builder = builder.lte("date", query.end_date)
            if query.name:
                builder = builder.ilike("users.name", f"%{query.name}%")
            if query.employee_id:
                builder = builder.ilike("users.employee_id", f"%{query.employee_id}%")
            if query.designation:
                builder = builder.ilike("users.designation", f"%{query.designation}%")
            if query.manual_entry is not None:
                builder = builder.eq("manual_entry", query.manual_entry)

            rows = all_rows(builder.execute())

        except Exception as e:
            logger.error(f"Failed to filter attendance: {str(e)}")
            raise ServiceError("Failed to fetch attendance records")

        wanted = (query.status or "").strip().lower()
        if wanted:
            rows = [row for row in rows if derive_status(row).slug == wanted]

        rows = self._sort_records(rows, query.sort_by, query.sort_order)
        return [
            {
                **decorate_record(row),
                "user_info": user_info(
                    row.get("users"),
                    ("id", "name", "email", "employee_id", "designation", "profile_url", "role"),
                ),
            }
            for row in rows
        ]

    def filter_records(self, query: AttendanceFilterQuery) -> Dict[str, Any]:
        """進階出勤查詢（分頁）"""
        if not validate_pagination_params(query.page, query.limit):
            raise BadRequestError("Page must be at least 1 and limit between 1 and 100")

        records = self.query_records(query)
        total = len(records)
        start = (query.page - 1) * query.limit

        return {
            "records": records[start:start + query.limit],
            "total": total,
            "page": query.page,
            "limit": query.limit,
            "total_pages": math.ceil(total / query.limit) if total else 0,
        }

    @staticmethod
    def _sort_records(rows: List[dict], sort_by: SortField, sort_order: SortOrder) -> List[dict]:
        def sort_key(row: dict):
            if sort_by == SortField.NAME:
                name = (row.get("users") or {}).get("name")
                return name.lower() if name else None
            if sort_by in (SortField.CHECK_IN, SortField.CHECK_OUT):
                return parse_datetime(row.get(sort_by.value))
            return row.get(sort_by.value)

        keyed = [(sort_key(row), row) for row in rows]
        present = [item for item in keyed if item[0] is not None]
        missing = [row for key, row in keyed if key is None]

        present.sort(key=lambda item: item[0], reverse=sort_order == SortOrder.DESC)
        # rows without a sort value always go last
        return [row for _, row in present] + missing

    def get_attendance_by_employee_id(self, employee_id: str) -> List[dict]:
        """依員工編號查詢出勤記錄"""
        if not employee_id:
            raise BadRequestError("Employee ID is required")

        try:
            rows = all_rows(
                self._table()
                .select("*, users!inner(id, name, employee_id, designation)")
                .eq("users.employee_id", employee_id)
                .order("date", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch attendance for employee {employee_id}: {str(e)}")
            raise ServiceError("Failed to fetch attendance by employee ID")

        return [
            {**decorate_record(row), "user_info": user_info(row.get("users"), ("name", "employee_id", "designation"))}
            for row in rows
        ]

    def _validate_attendance_date(self, day: str):
        if validate_date_format(day) is None:
            raise BadRequestError("Date must be in YYYY-MM-DD format")
        if day > today_str():
            raise BadRequestError("Cannot mark attendance for future dates")

    def manual_attendance(self, dto: ManualAttendanceRequest) -> Dict[str, Any]:
        """
        管理員手動登記出勤。

        An absent entry carries no times and requires a reason. A present entry
        takes optional HH:mm check-in/out times; a missing side keeps whatever
        the existing row for that date holds.

        Raises:
            BadRequestError: 資料驗證失敗或用戶不存在
            ServiceError: 資料存取失敗
        """
        if not dto.user_id or not dto.date:
            raise BadRequestError("userId and date are required")
        self._validate_attendance_date(dto.date)

        if dto.is_absent:
            if dto.check_in or dto.check_out:
                raise BadRequestError("Cannot provide check-in/out times when marking as absent")
            if not dto.absence_reason or not dto.absence_reason.strip():
                raise BadRequestError("Absence reason is required when marking as absent")
        else:
            check_in_time = parse_time_on_date(dto.date, dto.check_in) if dto.check_in else None
            check_out_time = parse_time_on_date(dto.date, dto.check_out) if dto.check_out else None
            if check_in_time and check_out_time and check_out_time <= check_in_time:
                raise BadRequestError("Check-out time must be after check-in time")

        try:
            user = first_row(
                self._table("users")
                .select("id, name, employee_id, designation")
                .eq("id", dto.user_id)
                .limit(1)
                .execute()
            )
            if user is None:
                raise BadRequestError("User not found")

            info = user_info(user, ("name", "employee_id", "designation"))
            updated_at = utc_now().isoformat()

            if dto.is_absent:
                row = self._upsert_record({
                    "user_id": dto.user_id,
                    "date": dto.date,
                    "check_in": None,
                    "check_out": None,
                    "is_absent": True,
                    "absence_reason": dto.absence_reason.strip(),
                    "total_time_minutes": 0,
                    "manual_entry": True,
                    "updated_at": updated_at,
                })
                logger.info(f"Marked user {dto.user_id} absent on {dto.date}")
                return {
                    "message": "User marked as absent",
                    "data": {**decorate_record(row), "user_info": info},
                }

            existing = self._find_record(dto.user_id, dto.date) or {}

            data = {
                "user_id": dto.user_id,
                "date": dto.date,
                "check_in": check_in_time.isoformat() if check_in_time else existing.get("check_in"),
                "check_out": check_out_time.isoformat() if check_out_time else existing.get("check_out"),
                "is_absent": False,
                "absence_reason": None,
                "manual_entry": True,
                "updated_at": updated_at,
            }
            if check_in_time and check_out_time:
                data["total_time_minutes"] = minutes_between(check_in_time, check_out_time)
            else:
                data["total_time_minutes"] = existing.get("total_time_minutes") or None

            row = self._upsert_record(data)
            logger.info(f"Recorded manual attendance for user {dto.user_id} on {dto.date}")
            return {
                "message": "Manual attendance recorded successfully",
                "data": {**decorate_record(row), "user_info": info},
            }

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Manual attendance failed for user {dto.user_id}: {str(e)}")
            raise ServiceError("Failed to record manual attendance")

    def get_attendance_summary(self, user_id: str, month: str = None, year: str = None) -> Dict[str, Any]:
        """
        取得用戶月度出勤摘要。

        Args:
            user_id: 用戶 ID
            month: 月份 (1-12)，預設本月
            year: 年份 (YYYY)，預設今年

        Returns:
            出勤天數統計與逐日記錄
        """
        if not user_id:
            raise BadRequestError("userId required")
        if month and not validate_month(month):
            raise BadRequestError("Month must be between 01 and 12")
        if year and not validate_year(year):
            raise BadRequestError("Year must be 4 digits")

        now = local_now()
        target_month = f"{int(month):02d}" if month else f"{now.month:02d}"
        target_year = year or str(now.year)
        first_day, last_day = month_bounds(int(target_month), int(target_year))

        try:
            rows = all_rows(
                self._table()
                .select("*")
                .eq("user_id", user_id)
                .gte("date", first_day.isoformat())
                .lte("date", last_day.isoformat())
                .order("date")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch attendance summary for user {user_id}: {str(e)}")
            raise ServiceError("Failed to fetch attendance summary")

        present_days = [r for r in rows if not r.get("is_absent") and r.get("check_in")]
        absent_days = [r for r in rows if r.get("is_absent")]
        half_days = [r for r in present_days if not r.get("check_out")]
        complete_days = [r for r in present_days if r.get("check_out")]

        average_work_hours = 0
        if complete_days:
            total_minutes = sum(float(r.get("total_time_minutes") or 0) for r in complete_days)
            average_work_hours = round(total_minutes / len(complete_days) / 60, 2)

        return {
            "user_id": user_id,
            "month": target_month,
            "year": target_year,
            "total_days": len(rows),
            "present_days": len(present_days),
            "absent_days": len(absent_days),
            "half_days": len(half_days),
            "average_work_hours": average_work_hours,
            "records": [
                {
                    "date": r.get("date"),
                    "check_in": to_local_display(r.get("check_in")),
                    "check_out": to_local_display(r.get("check_out")),
                    "total_time": format_duration(r.get("check_in"), r.get("check_out")),
                    "status": summary_status(r).value,
                    "is_absent": r.get("is_absent"),
                    "absence_reason": r.get("absence_reason"),
                    "manual_entry": r.get("manual_entry") or False,
                }
                for r in rows
            ],
        }

    def bulk_attendance_update(self, records: List[ManualAttendanceRequest]) -> Dict[str, Any]:
        """
        批量手動登記出勤。

        Each record goes through manual_attendance; a failing record is
        reported in ``errors`` and does not stop the rest.
        """
        if not records:
            raise BadRequestError("Records array is required")
        if len(records) > settings.BULK_MAX_RECORDS:
            raise BadRequestError(f"Cannot process more than {settings.BULK_MAX_RECORDS} records at once")

        successful = []
        failed = []
        for record in records:
            try:
                result = self.manual_attendance(record)
                successful.append({
                    "userId": record.user_id,
                    "date": record.date,
                    "success": True,
                    "data": result,
                })
            except ServiceError as e:
                failed.append({
                    "userId": record.user_id,
                    "date": record.date,
                    "success": False,
                    "error": e.message,
                })
            except Exception as e:
                logger.error(f"Bulk attendance failed for user {record.user_id} on {record.date}: {str(e)}")
                failed.append({
                    "userId": record.user_id,
                    "date": record.date,
                    "success": False,
                    "error": str(e) or "Unknown error",
                })

        logger.info(f"Bulk attendance completed: {len(successful)} successful, {len(failed)} failed")
        result = {
            "total": len(records),
            "successful": len(successful),
            "failed": len(failed),
            "results": successful,
        }
        if failed:
            result["errors"] = failed
        return result

    def process_bulk_action(self, dto: BulkActionRequest) -> Dict[str, Any]:
        """
        批量標記多位用戶缺勤或出勤。

        Present uses the default working window from settings.
        """
        if not dto.action or not dto.date or not dto.user_ids:
            raise BadRequestError("action, date, and userIds are required")
        if dto.action not in {a.value for a in BulkActionType}:
            raise BadRequestError('Action must be either "absent" or "present"')
        self._validate_attendance_date(dto.date)

        action = BulkActionType(dto.action)
        if action == BulkActionType.ABSENT and (not dto.reason or not dto.reason.strip()):
            raise BadRequestError("Reason is required when marking as absent")

        if action == BulkActionType.PRESENT:
            check_in_time = parse_time_on_date(dto.date, settings.DEFAULT_CHECK_IN_TIME)
            check_out_time = parse_time_on_date(dto.date, settings.DEFAULT_CHECK_OUT_TIME)
            template = {
                "check_in": check_in_time.isoformat(),
                "check_out": check_out_time.isoformat(),
                "is_absent": False,
                "absence_reason": None,
                "total_time_minutes": minutes_between(check_in_time, check_out_time),
            }
            status_label = SummaryStatus.PRESENT.value
        else:
            template = {
                "check_in": None,
                "check_out": None,
                "is_absent": True,
                "absence_reason": dto.reason.strip(),
                "total_time_minutes": 0,
            }
            status_label = SummaryStatus.ABSENT.value

        results = []
        errors = []
        for user_id in dto.user_ids:
            try:
                row = self._upsert_record({
                    **template,
                    "user_id": user_id,
                    "date": dto.date,
                    "manual_entry": True,
                    "updated_at": utc_now().isoformat(),
                })
                results.append({
                    "userId": user_id,
                    "success": True,
                    "data": {
                        **row,
                        "check_in_ist": to_local_display(row.get("check_in")),
                        "check_out_ist": to_local_display(row.get("check_out")),
                        "status": status_label,
                    },
                })
            except Exception as e:
                logger.error(f"Bulk {action.value} failed for user {user_id}: {str(e)}")
                errors.append({"userId": user_id, "error": str(e) or "Unknown error"})

        result = {
            "action": action.value,
            "date": dto.date,
            "total": len(dto.user_ids),
            "successful": len(results),
            "failed": len(errors),
            "results": results,
        }
        if errors:
            result["errors"] = errors
        return result

    def get_dashboard_stats(self, target_date: str = None) -> Dict[str, Any]:
        """取得指定日期（預設今日）一般用戶的出勤統計"""
        if target_date and validate_date_format(target_date) is None:
            raise BadRequestError("Invalid date format")
        target_date = target_date or today_str()

        try:
            users_response = self._table("users").select("id", count="exact").eq("role", "user").execute()
            total_users = getattr(users_response, "count", None) or 0

            rows = all_rows(
                self._table()
                .select("*, users!inner(role)")
                .eq("date", target_date)
                .eq("users.role", "user")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch dashboard statistics: {str(e)}")
            raise ServiceError("Failed to fetch dashboard statistics")

        return {
            "date": target_date,
            "total_users": total_users,
            "today_attendance": len(rows),
            "present_today": len([r for r in rows if not r.get("is_absent") and r.get("check_in")]),
            "absent_today": len([r for r in rows if r.get("is_absent")]),
            "checked_in_today": len([r for r in rows if r.get("check_in") and not r.get("check_out")]),
            "checked_out_today": len([r for r in rows if r.get("check_in") and r.get("check_out")]),
            "pending_today": total_users - len(rows),
        }
