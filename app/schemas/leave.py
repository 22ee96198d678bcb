from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date
from enum import Enum


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ApplyLeaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    leave_date: date = Field(..., alias="leaveDate")
    reason: str = Field(..., min_length=1)


class ApproveLeaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    leave_id: str = Field(..., alias="leaveId", min_length=1)
    status: LeaveDecision


class LeaveFilters(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[LeaveStatus] = None
