import csv
import io
from datetime import date

import pytest

from app.schemas.attendance import AttendanceFilterQuery
from app.schemas.leave import ApplyLeaveRequest, ApproveLeaveRequest, LeaveDecision, LeaveFilters, LeaveStatus
from app.services.leave_service import LeaveService
from app.services.report_service import ReportService, summarize_attendance
from app.utils.exceptions import BadRequestError, NotFoundError


def apply(fake_db, user_id, leave_date, reason="Family function"):
    return LeaveService(fake_db).apply_leave(
        ApplyLeaveRequest(user_id=user_id, leave_date=leave_date, reason=reason)
    )


def test_apply_leave_is_pending(fake_db, employee):
    leave = apply(fake_db, employee["id"], date(2024, 3, 20))

    assert leave["status"] == "pending"
    assert leave["leave_date"] == "2024-03-20"


def test_apply_leave_requires_reason(fake_db, employee):
    with pytest.raises(BadRequestError):
        apply(fake_db, employee["id"], date(2024, 3, 20), reason="   ")


def test_approve_leave(fake_db, employee):
    leave = apply(fake_db, employee["id"], date(2024, 3, 20))

    updated = LeaveService(fake_db).approve_leave(
        ApproveLeaveRequest(leave_id=leave["id"], status=LeaveDecision.APPROVED)
    )

    assert updated["status"] == "approved"


def test_approve_missing_leave(fake_db):
    with pytest.raises(NotFoundError) as exc:
        LeaveService(fake_db).approve_leave(ApproveLeaveRequest(leave_id="nope", status=LeaveDecision.REJECTED))

    assert exc.value.message == "Leave not found"


def test_my_leaves_newest_leave_date_first(fake_db, employee):
    apply(fake_db, employee["id"], date(2024, 3, 20))
    apply(fake_db, employee["id"], date(2024, 4, 2))

    leaves = LeaveService(fake_db).my_leaves(employee["id"])

    assert [l["leave_date"] for l in leaves] == ["2024-04-02", "2024-03-20"]


def test_all_leaves_filters_and_embeds_user(fake_db, employee):
    service = LeaveService(fake_db)
    first = apply(fake_db, employee["id"], date(2024, 3, 20))
    apply(fake_db, employee["id"], date(2024, 5, 1))
    service.approve_leave(ApproveLeaveRequest(leave_id=first["id"], status=LeaveDecision.APPROVED))

    approved = service.all_leaves(LeaveFilters(status=LeaveStatus.APPROVED))
    assert [l["id"] for l in approved] == [first["id"]]
    assert approved[0]["users"]["name"] == "Ravi Kumar"

    in_march = service.all_leaves(LeaveFilters(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)))
    assert len(in_march) == 1

    with pytest.raises(BadRequestError):
        service.all_leaves(LeaveFilters(start_date=date(2024, 4, 1), end_date=date(2024, 3, 1)))


def test_summarize_attendance():
    figures = summarize_attendance([
        {"check_in": "a", "check_out": "b", "total_time_minutes": 480},
        {"check_in": "a", "check_out": "b", "total_time_minutes": 420},
        {"check_in": None, "check_out": None, "is_absent": True},
        {"check_in": "a", "check_out": None},
    ])

    assert figures == {"present": 2, "absent": 1, "avgHours": 7.5, "totalMinutes": 900.0}
    assert summarize_attendance([])["avgHours"] == 0


def test_user_dashboard(fake_db, employee):
    fake_db.add_attendance(
        employee["id"], "2024-03-15",
        check_in="2024-03-15T03:30:00+00:00", check_out="2024-03-15T11:30:00+00:00", total_time_minutes=480,
    )
    apply(fake_db, employee["id"], date(2024, 3, 20))

    dashboard = ReportService(fake_db).get_user_dashboard(employee["id"])

    assert dashboard["profile"]["employee_id"] == "EMP001"
    assert dashboard["summary"]["present"] == 1
    assert dashboard["summary"]["avgHours"] == 8.0
    assert len(dashboard["summary"]["leaves"]) == 1


def test_user_dashboard_unknown_user(fake_db):
    with pytest.raises(NotFoundError):
        ReportService(fake_db).get_user_dashboard("missing")


def test_admin_dashboard_filters(fake_db, admin, employee):
    other = fake_db.add_user("EMP002", "Meena Iyer")
    fake_db.add_attendance(
        employee["id"], "2024-03-15",
        check_in="2024-03-15T03:30:00+00:00", check_out="2024-03-15T11:30:00+00:00", total_time_minutes=480,
    )
    fake_db.add_attendance(other["id"], "2024-03-15", is_absent=True, absence_reason="sick")
    service = ReportService(fake_db)

    everyone = service.get_admin_dashboard(target_date="2024-03-15", role="user")
    assert [row["user"]["employee_id"] for row in everyone["summary"]] == ["EMP001", "EMP002"]
    assert everyone["filters"] == {"date": "2024-03-15", "role": "user", "status": None}

    present = service.get_admin_dashboard(target_date="2024-03-15", status="present")
    assert [row["user"]["employee_id"] for row in present["summary"]] == ["EMP001"]

    absent = service.get_admin_dashboard(target_date="2024-03-15", status="absent")
    assert [row["user"]["employee_id"] for row in absent["summary"]] == ["EMP002"]

    with pytest.raises(BadRequestError):
        service.get_admin_dashboard(status="late")


def test_export_attendance_csv(fake_db, employee):
    fake_db.add_attendance(
        employee["id"], "2024-03-15",
        check_in="2024-03-15T03:30:00+00:00", check_out="2024-03-15T12:30:00+00:00", total_time_minutes=540,
    )
    fake_db.add_attendance(employee["id"], "2024-03-16", is_absent=True, absence_reason="sick")

    content, filename, content_type = ReportService(fake_db).export_attendance_csv(
        AttendanceFilterQuery(month="03", year="2024")
    )

    rows = list(csv.DictReader(io.StringIO(content.decode("utf-8"))))
    assert content_type == "text/csv"
    assert filename.startswith("attendance_") and filename.endswith(".csv")
    assert [r["date"] for r in rows] == ["2024-03-16", "2024-03-15"]
    assert rows[0]["status"] == "Absent"
    assert rows[0]["absence_reason"] == "sick"
    assert rows[1]["check_in"] == "15 Mar 2024, 09:00 AM"
    assert rows[1]["total_time"] == "09:00:00"
    assert rows[1]["employee_id"] == "EMP001"
