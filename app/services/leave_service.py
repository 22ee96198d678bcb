"""
Leave request service layer.
"""

import logging
from typing import List

from app.database import SupabaseService, first_row, all_rows
from app.schemas.leave import ApplyLeaveRequest, ApproveLeaveRequest, LeaveFilters, LeaveStatus
from app.utils.exceptions import BadRequestError, NotFoundError, ServiceError
from app.utils.validators import validate_leave_status

logger = logging.getLogger(__name__)


class LeaveService:
    """請假業務邏輯服務"""

    def __init__(self, db: SupabaseService):
        self.db = db

    def _leaves(self):
        return self.db.get_admin_client().table("leaves")

    def apply_leave(self, request: ApplyLeaveRequest) -> dict:
        """
        申請請假，狀態為 pending。

        Args:
            request: 請假申請

        Returns:
            新建立的請假記錄
        """
        reason = request.reason.strip()
        if not reason:
            raise BadRequestError("Reason is required")

        try:
            created = first_row(self._leaves().insert({
                "user_id": request.user_id,
                "leave_date": request.leave_date.isoformat(),
                "reason": reason,
                "status": LeaveStatus.PENDING.value,
            }).execute())
        except Exception as e:
            logger.error(f"Failed to apply leave for user {request.user_id}: {str(e)}")
            raise ServiceError("Failed to apply leave")

        if created is None:
            raise ServiceError("Failed to apply leave")

        logger.info(f"User {request.user_id} applied leave on {created['leave_date']}")
        return created

    def approve_leave(self, request: ApproveLeaveRequest) -> dict:
        """審核請假（approved / rejected）"""
        try:
            updated = first_row(
                self._leaves().update({"status": request.status.value}).eq("id", request.leave_id).execute()
            )
        except Exception as e:
            logger.error(f"Failed to update leave {request.leave_id}: {str(e)}")
            raise ServiceError("Failed to update leave")

        if updated is None:
            raise NotFoundError("Leave not found")

        logger.info(f"Leave {request.leave_id} {request.status.value}")
        return updated

    def my_leaves(self, user_id: str) -> List[dict]:
        if not user_id:
            raise BadRequestError("userId required")

        try:
            return all_rows(
                self._leaves().select("*").eq("user_id", user_id).order("leave_date", desc=True).execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch leaves for user {user_id}: {str(e)}")
            raise ServiceError("Failed to fetch leaves")

    def all_leaves(self, filters: LeaveFilters) -> List[dict]:
        """
        管理員查詢所有請假記錄（含用戶資料），新建立的在前。

        Raises:
            BadRequestError: 日期範圍或狀態無效
        """
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise BadRequestError("Start date must be before end date")
        if filters.status and not validate_leave_status(filters.status.value):
            raise BadRequestError("Status must be pending, approved or rejected")

        try:
            query = self._leaves().select("*, users(*)")
            if filters.start_date:
                query = query.gte("leave_date", filters.start_date.isoformat())
            if filters.end_date:
                query = query.lte("leave_date", filters.end_date.isoformat())
            if filters.status:
                query = query.eq("status", filters.status.value)

            return all_rows(query.order("created_at", desc=True).execute())

        except Exception as e:
            logger.error(f"Failed to fetch all leaves: {str(e)}")
            raise ServiceError("Failed to fetch leaves")
