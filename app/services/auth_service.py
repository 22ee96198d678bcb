"""
Password login against the hosted auth API.
"""

import logging
from typing import Any, Dict

from app.database import SupabaseService, first_row
from app.schemas.user import UserRole
from app.utils.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


def _to_dict(value: Any) -> Any:
    if value is None or isinstance(value, dict):
        return value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return dict(vars(value))


class AuthService:
    """登入業務邏輯服務"""

    def __init__(self, db: SupabaseService):
        self.db = db

    def login(self, email: str, password: str, expected_role: UserRole) -> Dict[str, Any]:
        """
        以帳號密碼登入並檢查角色。

        The role comes from the auth metadata, then the profile row, then
        defaults to ``user``.

        Args:
            email: 登入 email
            password: 密碼
            expected_role: 此登入入口允許的角色

        Returns:
            {"session", "user", "profile", "role"}

        Raises:
            UnauthorizedError: 帳密錯誤或角色不符
        """
        try:
            response = self.db.get_client().auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning(f"Login failed for {email}: {str(e)}")
            raise UnauthorizedError(str(e) or "Invalid login credentials")

        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        if user is None:
            raise UnauthorizedError("Invalid login credentials")

        try:
            profile = first_row(
                self.db.get_admin_client().table("users").select("*").eq("email", email).limit(1).execute()
            )
        except Exception as e:
            logger.error(f"Failed to load profile for {email}: {str(e)}")
            profile = None

        metadata = getattr(user, "user_metadata", None) or {}
        role = metadata.get("role") or (profile or {}).get("role") or UserRole.USER.value

        if role != expected_role.value:
            logger.warning(f"Login for {email} rejected: role {role} on {expected_role.value} login")
            raise UnauthorizedError("Access denied")

        logger.info(f"User {email} logged in as {role}")
        return {
            "session": _to_dict(session),
            "user": _to_dict(user),
            "profile": profile,
            "role": role,
        }
