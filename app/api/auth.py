"""
Authentication API routes: account creation and role-specific login.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.api.forms import build_form_model, read_upload
from app.database import SupabaseService, get_db
from app.schemas.user import LoginRequest, UserCreate, UserRole
from app.services.auth_service import AuthService
from app.services.user_service import UserService
from app.utils.auth import get_current_admin_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/create-user", status_code=status.HTTP_201_CREATED, summary="建立用戶")
async def create_user(
    employee_id: str = Form(...),
    username: str = Form(...),
    email: str = Form(...),
    name: str = Form(...),
    password: str = Form(...),
    designation: Optional[str] = Form(None),
    mobile: Optional[str] = Form(None),
    ien: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    profile: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """
    建立認證帳號與用戶資料（需要管理員權限）。

    - 可選擇同時上傳頭像 (profile)
    """
    payload = build_form_model(
        UserCreate,
        employee_id=employee_id,
        username=username,
        email=email,
        name=name,
        password=password,
        designation=designation,
        mobile=mobile,
        ien=ien,
        role=role,
    )
    upload = await read_upload(profile)

    user = UserService(db).create_user(payload, upload)
    logger.info(f"Admin {current_user.get('employee_id')} created user {user.get('employee_id')}")
    return {"message": "User created successfully", "user": user}


@router.post("/login/admin", summary="管理員登入")
async def login_admin(request: LoginRequest, db: SupabaseService = Depends(get_db)):
    return AuthService(db).login(request.email, request.password, UserRole.ADMIN)


@router.post("/login/user", summary="用戶登入")
async def login_user(request: LoginRequest, db: SupabaseService = Depends(get_db)):
    return AuthService(db).login(request.email, request.password, UserRole.USER)
