from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum


MOBILE_REGEX = r"^[0-9]{10}$"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class UserBase(BaseModel):
    employee_id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: EmailStr
    name: str = Field(..., min_length=1)
    designation: Optional[str] = None
    mobile: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    ien: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    role: UserRole = UserRole.USER


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    designation: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    mobile: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    ien: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    role: Optional[UserRole] = None
    password: Optional[str] = Field(None, min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpload(BaseModel):
    """上傳檔案內容"""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class UserReplace(BaseModel):
    """整筆更新用戶資料，未提供的欄位會被清空"""
    username: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    designation: Optional[str] = None
    mobile: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    ien: Optional[str] = Field(None, pattern=MOBILE_REGEX)
    role: UserRole = UserRole.USER
    password: Optional[str] = Field(None, min_length=6)
