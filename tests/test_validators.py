from datetime import date

from app.utils.validators import (
    DataValidator,
    sanitize_input,
    validate_date_format,
    validate_file_extension,
    validate_file_size,
    validate_month,
    validate_pagination_params,
    validate_time_format,
    validate_year,
)


def test_validate_date_format_is_strict():
    assert validate_date_format("2024-03-15") == date(2024, 3, 15)
    assert validate_date_format("2024-3-15") is None
    assert validate_date_format("2024-02-30") is None
    assert validate_date_format("") is None


def test_validate_time_format():
    assert validate_time_format("00:00")
    assert validate_time_format("23:59")
    assert not validate_time_format("24:00")
    assert not validate_time_format("9:00")


def test_month_and_year():
    assert validate_month("3")
    assert validate_month("12")
    assert not validate_month("13")
    assert not validate_month("0")
    assert validate_year("2024")
    assert not validate_year("24")


def test_file_checks():
    allowed = ["jpg", "png"]
    assert validate_file_extension("me.PNG", allowed)
    assert not validate_file_extension("me.exe", allowed)
    assert not validate_file_extension("noext", allowed)
    assert validate_file_size(10, 100)
    assert not validate_file_size(0, 100)
    assert not validate_file_size(101, 100)


def test_pagination_and_sanitize():
    assert validate_pagination_params(1, 100)
    assert not validate_pagination_params(0, 10)
    assert not validate_pagination_params(1, 101)
    assert sanitize_input("  Ravi   Kumar ") == "Ravi Kumar"
    assert sanitize_input(None) == ""


def test_validate_user_data_collects_errors():
    ok, errors = DataValidator().validate_user_data({
        "email": "bad-email",
        "mobile": "12345",
        "ien": "9876543210",
        "role": "manager",
        "password": "abc",
    })

    assert not ok
    assert errors == [
        "Invalid email format",
        "Mobile number must be 10 digits",
        "Role must be either admin or user",
        "Password must be at least 6 characters long",
    ]


def test_validate_user_data_accepts_valid_payload():
    ok, errors = DataValidator().validate_user_data({
        "email": "ravi@example.com",
        "mobile": "9876543210",
        "role": "user",
    })

    assert ok
    assert errors == []
