from datetime import date, datetime

import pytest
import pytz

from app.utils.datetime_utils import (
    format_duration,
    minutes_between,
    month_bounds,
    parse_datetime,
    parse_time_on_date,
    to_local_display,
)
from app.utils.exceptions import BadRequestError


def test_parse_time_on_date_treats_time_as_local_wall_clock():
    result = parse_time_on_date("2024-03-15", "09:00")

    assert result == datetime(2024, 3, 15, 3, 30, tzinfo=pytz.UTC)


@pytest.mark.parametrize("value", ["9am", "24:00", "12:60", "1200", "aa:bb", "0\u00b2:00", "1:5"])
def test_parse_time_on_date_rejects_bad_times(value):
    with pytest.raises(BadRequestError) as exc:
        parse_time_on_date("2024-03-15", value)

    assert exc.value.message == "Invalid time format. Use HH:mm (24-hour format)"


def test_parse_time_on_date_returns_none_without_time():
    assert parse_time_on_date("2024-03-15", None) is None


def test_parse_datetime_assumes_utc_for_naive_values():
    assert parse_datetime("2024-03-15T03:30:00") == datetime(2024, 3, 15, 3, 30, tzinfo=pytz.UTC)
    assert parse_datetime("2024-03-15T03:30:00Z") == datetime(2024, 3, 15, 3, 30, tzinfo=pytz.UTC)
    assert parse_datetime("not a time") is None
    assert parse_datetime(None) is None


def test_to_local_display_formats_in_configured_zone():
    assert to_local_display("2024-03-15T03:30:00+00:00") == "15 Mar 2024, 09:00 AM"
    assert to_local_display("2024-03-15T12:45:00+00:00") == "15 Mar 2024, 06:15 PM"
    assert to_local_display(None) is None
    assert to_local_display("garbage") is None


def test_format_duration():
    start = "2024-03-15T03:30:00+00:00"
    end = "2024-03-15T12:30:05+00:00"

    assert format_duration(start, end) == "09:00:05"
    assert format_duration(end, start) is None
    assert format_duration(start, None) is None


def test_minutes_between_rounds_to_two_places():
    assert minutes_between("2024-03-15T03:30:00+00:00", "2024-03-15T11:45:30+00:00") == 495.5
    assert minutes_between("2024-03-15T03:30:00+00:00", "2024-03-15T03:30:20+00:00") == 0.33


def test_month_bounds_handles_leap_year():
    assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(12, 2023) == (date(2023, 12, 1), date(2023, 12, 31))
