from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum


class AttendanceStatus(str, Enum):
    ABSENT = "Absent"
    CHECKED_IN = "Checked In"
    CHECKED_OUT = "Checked Out"
    NOT_CHECKED_IN = "Not Checked In"

    @property
    def slug(self) -> str:
        return self.value.lower().replace(" ", "-")


class SummaryStatus(str, Enum):
    ABSENT = "Absent"
    HALF_DAY = "Half Day"
    PRESENT = "Present"
    NOT_MARKED = "Not Marked"


class BulkActionType(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"


class SortField(str, Enum):
    DATE = "date"
    NAME = "name"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    TOTAL_TIME = "total_time_minutes"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CheckInRequest(CamelModel):
    user_id: str = Field(..., alias="userId")


class CheckOutRequest(CamelModel):
    user_id: str = Field(..., alias="userId")


class ManualAttendanceRequest(CamelModel):
    user_id: str = Field(..., alias="userId")
    date: str
    check_in: Optional[str] = Field(None, alias="checkIn")
    check_out: Optional[str] = Field(None, alias="checkOut")
    is_absent: bool = Field(False, alias="isAbsent")
    absence_reason: Optional[str] = Field(None, alias="absenceReason")


class BulkAttendanceRequest(CamelModel):
    records: List[ManualAttendanceRequest]


class BulkActionRequest(CamelModel):
    action: str
    date: str
    user_ids: List[str] = Field(..., alias="userIds")
    reason: Optional[str] = None


class AttendanceFilters(CamelModel):
    """出勤查詢條件"""
    date: Optional[str] = None
    name: Optional[str] = None
    employee_id: Optional[str] = Field(None, alias="employeeId")
    check_in_from: Optional[str] = Field(None, alias="checkInFrom")
    check_out_to: Optional[str] = Field(None, alias="checkOutTo")
    status: Optional[str] = None


class AttendanceFilterQuery(CamelModel):
    """進階出勤查詢條件（分頁、排序）"""
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    date: Optional[str] = None
    month: Optional[str] = None
    year: Optional[str] = None
    name: Optional[str] = None
    employee_id: Optional[str] = Field(None, alias="employeeId")
    designation: Optional[str] = None
    status: Optional[str] = None
    manual_entry: Optional[bool] = Field(None, alias="manualEntry")
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: SortField = Field(SortField.DATE, alias="sortBy")
    sort_order: SortOrder = Field(SortOrder.DESC, alias="sortOrder")


class AttendanceListResponse(BaseModel):
    """出勤記錄分頁回應"""
    records: List[dict]
    total: int
    page: int
    limit: int
    total_pages: int


class DashboardStats(BaseModel):
    date: str
    total_users: int
    today_attendance: int
    present_today: int
    absent_today: int
    checked_in_today: int
    checked_out_today: int
    pending_today: int
