import re
from datetime import datetime, date
from typing import Optional, Tuple


DATE_PATTERN = re.compile(r'^[0-9]{4}-[0-9]{2}-[0-9]{2}$')
TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')
MOBILE_PATTERN = re.compile(r'^[0-9]{10}$')


def validate_email(email: str) -> bool:
    """驗證 Email 格式"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email or "") is not None


def validate_date_format(date_str: str) -> Optional[date]:
    """驗證並解析日期格式 (YYYY-MM-DD)"""
    if not date_str or not DATE_PATTERN.match(date_str):
        return None
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        return None


def validate_time_format(time_str: str) -> bool:
    """驗證時間格式 (HH:mm, 24 小時制)"""
    return bool(time_str) and TIME_PATTERN.match(time_str) is not None


def validate_mobile(mobile: str) -> bool:
    """驗證手機號碼（10 位數字）"""
    return bool(mobile) and MOBILE_PATTERN.match(mobile) is not None


def validate_user_role(role: str) -> bool:
    """驗證用戶角色"""
    return role in ['admin', 'user']


def validate_password(password: str) -> bool:
    """驗證密碼長度"""
    return password is not None and len(password) >= 6


def validate_leave_status(status: str) -> bool:
    """驗證請假狀態"""
    return status in ['pending', 'approved', 'rejected']


def validate_month(month: str) -> bool:
    """驗證月份 (1-12 或 01-12)"""
    return bool(month) and month.isdigit() and 1 <= int(month) <= 12


def validate_year(year: str) -> bool:
    """驗證年份 (YYYY)"""
    return bool(year) and re.match(r'^\d{4}$', year) is not None


def validate_file_extension(filename: str, allowed_extensions: list) -> bool:
    """驗證檔案副檔名"""
    if not filename or '.' not in filename:
        return False

    extension = filename.rsplit('.', 1)[1].lower()
    return extension in [ext.strip().lower() for ext in allowed_extensions]


def validate_file_size(file_size: int, max_size: int) -> bool:
    """驗證檔案大小"""
    return 0 < file_size <= max_size


def sanitize_input(text: str) -> str:
    """清理輸入文字"""
    if not text:
        return ""

    text = text.strip()
    text = re.sub(r'\s+', ' ', text)

    return text


def validate_pagination_params(page: int, limit: int) -> bool:
    """驗證分頁參數"""
    if page < 1 or limit < 1:
        return False
    if limit > 100:
        return False
    return True


class DataValidator:
    """資料驗證器"""

    def validate_user_data(self, user_data: dict) -> Tuple[bool, list]:
        """驗證用戶資料"""
        errors = []

        if 'email' in user_data and user_data['email']:
            if not validate_email(user_data['email']):
                errors.append("Invalid email format")

        if user_data.get('mobile'):
            if not validate_mobile(user_data['mobile']):
                errors.append("Mobile number must be 10 digits")

        if user_data.get('ien'):
            if not validate_mobile(user_data['ien']):
                errors.append("Emergency contact must be 10 digits")

        if user_data.get('role'):
            if not validate_user_role(user_data['role']):
                errors.append("Role must be either admin or user")

        if user_data.get('password') is not None:
            if not validate_password(user_data['password']):
                errors.append("Password must be at least 6 characters long")

        return len(errors) == 0, errors
