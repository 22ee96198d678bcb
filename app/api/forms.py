"""
Helpers for multipart form endpoints.
"""

from typing import Optional, Type, TypeVar

from fastapi import UploadFile
from pydantic import BaseModel, ValidationError

from app.schemas.user import ProfileUpload
from app.utils.exceptions import BadRequestError

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_form_model(model: Type[ModelT], **fields) -> ModelT:
    """以表單欄位建立 pydantic 模型，空字串視為未提供"""
    data = {key: value for key, value in fields.items() if value not in (None, "")}
    try:
        return model(**data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ()))
        raise BadRequestError(f"{field}: {error.get('msg')}" if field else error.get("msg"))


async def read_upload(file: Optional[UploadFile]) -> Optional[ProfileUpload]:
    """讀取上傳檔案"""
    if file is None or not file.filename:
        return None
    content = await file.read()
    return ProfileUpload(filename=file.filename, content=content, content_type=file.content_type)
