"""
User management service layer for profile rows, auth accounts and profile images.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from app.config import settings
from app.database import SupabaseService, first_row, all_rows
from app.schemas.user import ProfileUpload, UserCreate, UserReplace, UserUpdate
from app.utils.exceptions import BadRequestError, NotFoundError, ServiceError
from app.utils.validators import (
    DataValidator,
    sanitize_input,
    validate_file_extension,
    validate_file_size,
)

logger = logging.getLogger(__name__)

AUTH_USERS_PER_PAGE = 1000


class UserService:
    """用戶管理業務邏輯服務"""

    def __init__(self, db: SupabaseService):
        self.db = db
        self.validator = DataValidator()

    def _users(self):
        return self.db.get_admin_client().table("users")

    def _auth_admin(self):
        return self.db.get_admin_client().auth.admin

    def _bucket(self):
        return self.db.get_admin_client().storage.from_(settings.PROFILE_BUCKET)

    def _validate_user_data(self, user_data: dict):
        is_valid, errors = self.validator.validate_user_data(user_data)
        if not is_valid:
            raise BadRequestError("; ".join(errors))

    def _check_profile_image(self, upload: ProfileUpload):
        if not validate_file_extension(upload.filename, settings.ALLOWED_FILE_EXTENSIONS):
            raise BadRequestError(
                f"Invalid file type. Allowed: {', '.join(settings.ALLOWED_FILE_EXTENSIONS)}"
            )
        if not validate_file_size(len(upload.content), settings.MAX_FILE_SIZE):
            raise BadRequestError(f"File must be between 1 byte and {settings.MAX_FILE_SIZE} bytes")

    def _store_profile_image(self, path: str, upload: ProfileUpload) -> str:
        """上傳頭像到儲存空間並返回公開網址"""
        self._check_profile_image(upload)

        bucket = self._bucket()
        try:
            bucket.upload(
                path,
                upload.content,
                {"content-type": upload.content_type or "application/octet-stream", "upsert": "true"},
            )
        except Exception as e:
            logger.error(f"Profile upload failed for {path}: {str(e)}")
            raise BadRequestError(f"Failed to upload profile image: {str(e)}")

        return bucket.get_public_url(path)

    def _remove_profile_image(self, path: str):
        try:
            self._bucket().remove([path])
        except Exception as e:
            logger.error(f"Failed to remove profile image {path}: {str(e)}")

    def _remove_auth_user(self, auth_user_id: str):
        try:
            self._auth_admin().delete_user(auth_user_id)
        except Exception as e:
            logger.error(f"Failed to remove auth user {auth_user_id}: {str(e)}")

    def _find_auth_user_by_email(self, email: str) -> Optional[Any]:
        """在認證系統中以 email 查找用戶"""
        page = 1
        while True:
            users = self._auth_admin().list_users(page=page, per_page=AUTH_USERS_PER_PAGE) or []
            for auth_user in users:
                if (getattr(auth_user, "email", None) or "").lower() == email.lower():
                    return auth_user
            if len(users) < AUTH_USERS_PER_PAGE:
                return None
            page += 1

    def upload_profile(self, user_id: str, upload: Optional[ProfileUpload]) -> Dict[str, str]:
        """
        上傳用戶頭像並更新用戶資料。

        Args:
            user_id: 用戶 ID
            upload: 上傳檔案

        Returns:
            {"profileUrl": 公開網址}
        """
        if upload is None:
            raise BadRequestError("No file uploaded")
        if not user_id:
            raise BadRequestError("userId required")

        path = f"{user_id}/{int(time.time() * 1000)}_{upload.filename}"
        public_url = self._store_profile_image(path, upload)

        try:
            updated = first_row(self._users().update({"profile_url": public_url}).eq("id", user_id).execute())
        except Exception as e:
            logger.error(f"Failed to save profile url for user {user_id}: {str(e)}")
            raise ServiceError("Failed to update profile")

        if updated is None:
            raise NotFoundError(f"User with id {user_id} not found")

        logger.info(f"Updated profile image for user {user_id}")
        return {"profileUrl": public_url}

    def get_user(self, user_id: str) -> dict:
        """根據 ID 取得用戶"""
        if not user_id:
            raise BadRequestError("userId required")

        try:
            user = first_row(self._users().select("*").eq("id", user_id).limit(1).execute())
        except Exception as e:
            logger.error(f"Failed to fetch user {user_id}: {str(e)}")
            raise ServiceError("Failed to fetch user")

        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    def get_user_by_employee_id(self, employee_id: str) -> dict:
        """根據員工編號取得用戶"""
        if not employee_id:
            raise BadRequestError("Employee ID is required")

        try:
            user = first_row(self._users().select("*").eq("employee_id", employee_id).limit(1).execute())
        except Exception as e:
            logger.error(f"Failed to fetch user by employee id {employee_id}: {str(e)}")
            raise ServiceError("Failed to fetch user")

        if user is None:
            raise NotFoundError("User not found")
        return user

    def list_users(self, role: str = None, name: str = None, employee_id: str = None) -> List[dict]:
        """
        取得用戶列表。

        Args:
            role: 角色篩選（精確）
            name: 姓名篩選（部分、不分大小寫）
            employee_id: 員工編號篩選（部分、不分大小寫）

        Returns:
            用戶列表，新建立的在前
        """
        role = sanitize_input(role)
        name = sanitize_input(name)
        employee_id = sanitize_input(employee_id)

        try:
            query = self._users().select("*")
            if role:
                query = query.eq("role", role)
            if name:
                query = query.ilike("name", f"%{name}%")
            if employee_id:
                query = query.ilike("employee_id", f"%{employee_id}%")

            return all_rows(query.order("created_at", desc=True).execute())

        except Exception as e:
            logger.error(f"Failed to get users list: {str(e)}")
            raise ServiceError("Failed to fetch users")

    def create_user(self, user_data: UserCreate, upload: Optional[ProfileUpload] = None) -> dict:
        """
        建立新用戶（認證帳號 + 用戶資料）。

        The profile row reuses the auth user id. The image is uploaded only
        after the auth account exists; when a later step fails the auth account
        and the uploaded image are removed again.

        Raises:
            BadRequestError: 用戶已存在或資料無效
        """
        self._validate_user_data(user_data.model_dump(mode="json"))

        if upload is not None:
            self._check_profile_image(upload)

        try:
            for column, value in (("email", user_data.email), ("employee_id", user_data.employee_id)):
                existing = first_row(self._users().select("id").eq(column, value).limit(1).execute())
                if existing:
                    raise BadRequestError("User with this email or employee ID already exists")

            if self._find_auth_user_by_email(user_data.email):
                raise BadRequestError("User with this email already exists in authentication system")
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to check existing users: {str(e)}")
            raise ServiceError("Failed to create user")

        try:
            response = self._auth_admin().create_user({
                "email": user_data.email,
                "password": user_data.password,
                "email_confirm": True,
                "user_metadata": {"role": user_data.role.value, "name": user_data.name},
            })
        except Exception as e:
            message = str(e)
            logger.error(f"Auth user creation failed for {user_data.email}: {message}")
            if "already" in message.lower() or "duplicate" in message.lower():
                raise BadRequestError("User with this email already exists")
            raise BadRequestError(f"Failed to create user: {message}")

        auth_user = getattr(response, "user", None)
        if auth_user is None:
            raise BadRequestError("Failed to create user: no user returned")

        image_path = None
        profile_url = None
        if upload is not None:
            image_path = f"profiles/{int(time.time() * 1000)}-{upload.filename}"
            try:
                profile_url = self._store_profile_image(image_path, upload)
            except ServiceError:
                self._remove_auth_user(auth_user.id)
                raise

        row = {
            "id": auth_user.id,
            "employee_id": user_data.employee_id,
            "username": user_data.username,
            "email": user_data.email,
            "name": user_data.name,
            "designation": user_data.designation,
            "mobile": user_data.mobile,
            "ien": user_data.ien,
            "role": user_data.role.value,
            "profile_url": profile_url,
        }

        try:
            created = first_row(self._users().insert(row).execute())
            if created is None:
                raise ServiceError("Insert returned no row")
        except Exception as e:
            logger.error(f"Failed to insert user {user_data.email}, removing auth user: {str(e)}")
            self._remove_auth_user(auth_user.id)
            if image_path:
                self._remove_profile_image(image_path)
            raise BadRequestError(f"Failed to create user: {str(e)}")

        logger.info(f"Created new user: {created['employee_id']} - {created['name']}")
        return created

    def _apply_update(
        self,
        employee_id: str,
        changes: Dict[str, Any],
        password: Optional[str],
        upload: Optional[ProfileUpload],
    ) -> dict:
        user = self.get_user_by_employee_id(employee_id)

        try:
            auth_user = self._find_auth_user_by_email(user["email"])
        except Exception as e:
            logger.error(f"Failed to look up auth user for {employee_id}: {str(e)}")
            raise ServiceError("Failed to update user")
        if auth_user is None:
            raise NotFoundError("Authentication user not found")

        if upload is not None:
            changes["profile_url"] = self._store_profile_image(
                f"profiles/{int(time.time() * 1000)}-{upload.filename}", upload
            )

        auth_changes = {}
        if password:
            auth_changes["password"] = password
        if changes.get("role"):
            metadata = dict(getattr(auth_user, "user_metadata", None) or {})
            metadata["role"] = changes["role"]
            if changes.get("name"):
                metadata["name"] = changes["name"]
            auth_changes["user_metadata"] = metadata

        if auth_changes:
            try:
                self._auth_admin().update_user_by_id(auth_user.id, auth_changes)
            except Exception as e:
                logger.error(f"Auth update failed for {employee_id}: {str(e)}")
                raise BadRequestError(f"Failed to update auth user: {str(e)}")

        if not changes:
            return user

        try:
            updated = first_row(self._users().update(changes).eq("employee_id", employee_id).execute())
        except Exception as e:
            logger.error(f"Failed to update user {employee_id}: {str(e)}")
            raise ServiceError("Failed to update user")

        if updated is None:
            raise NotFoundError("User not found")

        logger.info(f"Updated user: {employee_id} ({', '.join(sorted(changes))})")
        return updated

    def update_user_full(
        self, employee_id: str, user_data: UserReplace, upload: Optional[ProfileUpload] = None
    ) -> dict:
        """
        整筆更新用戶資料。

        Args:
            employee_id: 員工編號
            user_data: 完整用戶資料，未提供的選填欄位會清空
            upload: 新頭像（選填）

        Returns:
            更新後的用戶
        """
        data = user_data.model_dump(mode="json")
        self._validate_user_data(data)
        password = data.pop("password", None)
        return self._apply_update(employee_id, data, password, upload)

    def update_user_partial(
        self, employee_id: str, user_data: UserUpdate, upload: Optional[ProfileUpload] = None
    ) -> dict:
        """部分更新用戶資料，只寫入有提供的欄位"""
        data = user_data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        self._validate_user_data(data)
        password = data.pop("password", None)
        return self._apply_update(employee_id, data, password, upload)

    def delete_user(self, employee_id: str) -> Dict[str, str]:
        """
        刪除用戶（先刪認證帳號，再刪用戶資料）。

        Raises:
            NotFoundError: 用戶或認證帳號不存在
        """
        user = self.get_user_by_employee_id(employee_id)

        try:
            auth_user = self._find_auth_user_by_email(user["email"])
        except Exception as e:
            logger.error(f"Failed to look up auth user for {employee_id}: {str(e)}")
            raise ServiceError("Failed to delete user")
        if auth_user is None:
            raise NotFoundError("Authentication user not found")

        try:
            self._auth_admin().delete_user(auth_user.id)
        except Exception as e:
            logger.error(f"Auth delete failed for {employee_id}: {str(e)}")
            raise BadRequestError(f"Failed to delete auth user: {str(e)}")

        try:
            self._users().delete().eq("employee_id", employee_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete user row {employee_id}: {str(e)}")
            raise ServiceError("Failed to delete user")

        logger.info(f"Deleted user: {employee_id}")
        return {"message": "User deleted successfully"}
