import calendar
from datetime import datetime, date
from typing import Optional, Tuple, Union
import pytz

from app.config import settings
from app.utils.exceptions import BadRequestError
from app.utils.validators import validate_time_format

DISPLAY_FORMAT = "%d %b %Y, %I:%M %p"
INVALID_TIME_MESSAGE = "Invalid time format. Use HH:mm (24-hour format)"


def get_user_timezone(timezone_str: str = None) -> pytz.BaseTzInfo:
    """獲取時區，無效時回退到 Asia/Kolkata"""
    try:
        return pytz.timezone(timezone_str or settings.TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone("Asia/Kolkata")


def utc_now() -> datetime:
    """獲取當前 UTC 時間"""
    return datetime.now(pytz.UTC)


def local_now(timezone_str: str = None) -> datetime:
    """獲取設定時區當前時間"""
    return utc_now().astimezone(get_user_timezone(timezone_str))


def get_today(timezone_str: str = None) -> date:
    """獲取設定時區今天日期"""
    return local_now(timezone_str).date()


def today_str(timezone_str: str = None) -> str:
    """今天日期字串 (YYYY-MM-DD)"""
    return get_today(timezone_str).strftime("%Y-%m-%d")


def parse_date(date_str: str) -> Optional[date]:
    """解析日期字符串"""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    解析資料庫回傳的時間戳。

    Naive values are treated as UTC. Returns None for empty or unparsable input.
    """
    if not value:
        return None

    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_local_display(value: Union[str, datetime, None], timezone_str: str = None) -> Optional[str]:
    """將 UTC 時間轉換為設定時區的顯示字串"""
    dt = parse_datetime(value)
    if dt is None:
        return None
    return dt.astimezone(get_user_timezone(timezone_str)).strftime(DISPLAY_FORMAT)


def format_duration(start: Union[str, datetime, None], end: Union[str, datetime, None]) -> Optional[str]:
    """格式化時間差為 HH:MM:SS"""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return None

    total_seconds = int((end_dt - start_dt).total_seconds())
    if total_seconds < 0:
        return None

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def minutes_between(start: Union[str, datetime], end: Union[str, datetime]) -> float:
    """計算兩個時間之間的分鐘數（兩位小數）"""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    return round((end_dt - start_dt).total_seconds() / 60, 2)


def parse_time_on_date(date_str: str, time_str: str, timezone_str: str = None) -> Optional[datetime]:
    """
    將 HH:mm 時間套用在指定日期上。

    Args:
        date_str: 日期 (YYYY-MM-DD)
        time_str: 設定時區的牆上時間 (HH:mm, 24 小時制)

    Returns:
        UTC 時間，任一參數為空時返回 None

    Raises:
        BadRequestError: 時間格式錯誤
    """
    if not date_str or not time_str:
        return None

    time_str = time_str.strip()
    if not validate_time_format(time_str):
        raise BadRequestError(INVALID_TIME_MESSAGE)

    hours, minutes = (int(part) for part in time_str.split(":"))

    day = parse_date(date_str)
    if day is None:
        raise BadRequestError("Date must be in YYYY-MM-DD format")

    naive = datetime(day.year, day.month, day.day, hours, minutes)
    return get_user_timezone(timezone_str).localize(naive).astimezone(pytz.UTC)


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """取得月份的第一天和最後一天"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
