from .user import UserBase, UserCreate, UserUpdate, UserReplace, UserRole, LoginRequest, ProfileUpload
from .attendance import (
    AttendanceStatus, SummaryStatus, BulkActionType, ManualAttendanceRequest,
    BulkAttendanceRequest, BulkActionRequest, AttendanceFilters, AttendanceFilterQuery,
)
from .leave import LeaveStatus, LeaveDecision, ApplyLeaveRequest, ApproveLeaveRequest, LeaveFilters

__all__ = [
    "UserBase", "UserCreate", "UserUpdate", "UserReplace", "UserRole", "LoginRequest", "ProfileUpload",
    "AttendanceStatus", "SummaryStatus", "BulkActionType", "ManualAttendanceRequest",
    "BulkAttendanceRequest", "BulkActionRequest", "AttendanceFilters", "AttendanceFilterQuery",
    "LeaveStatus", "LeaveDecision", "ApplyLeaveRequest", "ApproveLeaveRequest", "LeaveFilters",
]
