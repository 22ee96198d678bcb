"""
User management API routes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.api.forms import build_form_model, read_upload
from app.database import SupabaseService, get_db
from app.schemas.user import UserReplace, UserUpdate
from app.services.user_service import UserService
from app.utils.auth import get_current_user, get_current_admin_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/upload-profile", status_code=status.HTTP_201_CREATED, summary="上傳頭像")
async def upload_profile(
    userId: str = Form(...),
    file: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    """上傳用戶頭像並返回公開網址"""
    upload = await read_upload(file)
    return UserService(db).upload_profile(userId, upload)


@router.get("/me", summary="取得用戶資料")
async def get_me(
    userId: str = Query(..., description="用戶 ID"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return UserService(db).get_user(userId)


@router.get("/all", response_model=List[dict], summary="取得用戶列表")
async def list_users(
    role: Optional[str] = Query(None, description="角色篩選"),
    name: Optional[str] = Query(None, description="姓名（部分符合）"),
    employeeId: Optional[str] = Query(None, description="員工編號（部分符合）"),
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    """取得用戶列表，支援角色、姓名、員工編號篩選"""
    return UserService(db).list_users(role, name, employeeId)


@router.get("/{employee_id}", summary="依員工編號取得用戶")
async def get_user_by_employee_id(
    employee_id: str,
    current_user: dict = Depends(get_current_user),
    db: SupabaseService = Depends(get_db)
):
    return UserService(db).get_user_by_employee_id(employee_id)


@router.put("/{employee_id}", summary="整筆更新用戶")
async def replace_user(
    employee_id: str,
    username: str = Form(...),
    name: str = Form(...),
    designation: Optional[str] = Form(None),
    mobile: Optional[str] = Form(None),
    ien: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    profile: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """
    整筆更新用戶資料（需要管理員權限）。

    - 未提供的選填欄位會被清空
    - 提供 password 時同步更新認證帳號
    """
    payload = build_form_model(
        UserReplace,
        username=username,
        name=name,
        designation=designation,
        mobile=mobile,
        ien=ien,
        role=role,
        password=password,
    )
    upload = await read_upload(profile)
    return UserService(db).update_user_full(employee_id, payload, upload)


@router.patch("/{employee_id}", summary="部分更新用戶")
async def update_user(
    employee_id: str,
    username: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    designation: Optional[str] = Form(None),
    mobile: Optional[str] = Form(None),
    ien: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    profile: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    """部分更新用戶資料（需要管理員權限），只寫入有提供的欄位"""
    payload = build_form_model(
        UserUpdate,
        username=username,
        name=name,
        designation=designation,
        mobile=mobile,
        ien=ien,
        role=role,
        password=password,
    )
    upload = await read_upload(profile)
    return UserService(db).update_user_partial(employee_id, payload, upload)


@router.delete("/{employee_id}", summary="刪除用戶")
async def delete_user(
    employee_id: str,
    current_user: dict = Depends(get_current_admin_user),
    db: SupabaseService = Depends(get_db)
):
    return UserService(db).delete_user(employee_id)
