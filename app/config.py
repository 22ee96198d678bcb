import os
from typing import Optional


class Settings:
    """應用程式配置設定"""

    # Supabase 設定
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_JWT_SECRET: str = os.getenv("SUPABASE_JWT_SECRET", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "authenticated")

    # 檔案儲存設定
    PROFILE_BUCKET: str = os.getenv("PROFILE_BUCKET", "profiles")
    MAX_FILE_SIZE: int = int(os.getenv("MAX_FILE_SIZE", "5242880"))  # 5MB
    ALLOWED_FILE_EXTENSIONS: list = os.getenv("ALLOWED_FILE_EXTENSIONS", "jpg,jpeg,png,webp,gif").split(",")

    # 應用設定
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")

    # 出勤設定
    DEFAULT_CHECK_IN_TIME: str = os.getenv("DEFAULT_CHECK_IN_TIME", "09:00")
    DEFAULT_CHECK_OUT_TIME: str = os.getenv("DEFAULT_CHECK_OUT_TIME", "18:00")
    BULK_MAX_RECORDS: int = int(os.getenv("BULK_MAX_RECORDS", "100"))

    # 部署設定
    PORT: int = int(os.getenv("PORT", "3000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    CORS_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    ]

    # 日誌設定
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # 報表設定
    EXPORT_DATE_FORMAT: str = os.getenv("EXPORT_DATE_FORMAT", "%Y-%m-%d")

    # API 設定
    API_PREFIX: str = os.getenv("API_PREFIX", "")

    def get_jwt_secret(self) -> Optional[str]:
        """獲取 Supabase JWT Secret"""
        return self.SUPABASE_JWT_SECRET if self.SUPABASE_JWT_SECRET else None

    def validate_required_settings(self) -> list:
        """驗證必要設定"""
        missing = []

        if not self.SUPABASE_URL:
            missing.append("SUPABASE_URL")

        if not self.SUPABASE_SERVICE_ROLE_KEY:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")

        if not self.SUPABASE_ANON_KEY:
            missing.append("SUPABASE_ANON_KEY")

        return missing

    def get_logging_config(self) -> dict:
        """獲取日誌配置"""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": self.LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "formatter": "default",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": self.LOG_LEVEL,
                "handlers": ["default"],
            },
        }


# 全域設定實例
settings = Settings()
