"""
Supabase client access for the hosted users/attendance/leaves tables, auth and storage.
"""

import logging
from functools import lru_cache
from typing import Any, Optional

from supabase import Client, create_client

from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseService:
    """Supabase 連線服務"""

    def __init__(self, url: str = None, service_key: str = None, anon_key: str = None):
        url = url or settings.SUPABASE_URL
        service_key = service_key or settings.SUPABASE_SERVICE_ROLE_KEY
        anon_key = anon_key or settings.SUPABASE_ANON_KEY

        if not url or not service_key or not anon_key:
            logger.error("Missing Supabase environment variables. Please check your .env file")
            raise RuntimeError("Missing Supabase environment variables. Please check your .env file")

        # service role key, bypasses row level security
        self._admin_client: Client = create_client(url, service_key)
        # anon key, subject to row level security
        self._client: Client = create_client(url, anon_key)

    def get_admin_client(self) -> Client:
        return self._admin_client

    def get_client(self) -> Client:
        return self._client


def first_row(response: Any) -> Optional[dict]:
    """取出查詢結果的第一筆資料"""
    data = getattr(response, "data", None) if response is not None else None
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


def all_rows(response: Any) -> list:
    """取出查詢結果的所有資料"""
    data = getattr(response, "data", None) if response is not None else None
    return list(data or [])


@lru_cache()
def get_supabase() -> SupabaseService:
    return SupabaseService()


def get_db() -> SupabaseService:
    """FastAPI 依賴：取得 Supabase 服務"""
    return get_supabase()
