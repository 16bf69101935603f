# helpdesk/core/config.py
"""
Application settings read from the environment (and .env via python-dotenv).
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "data")
DEFAULT_DATABASE_FILE = os.path.join(DATA_DIR, "db", "helpdesk.sqlite")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: Optional[str] = None
    secret_key: str = ""
    app_env: str = "development"
    allowed_origins: str = "http://localhost:5173"
    allowed_hosts: str = "localhost,127.0.0.1"
    log_level: str = "INFO"
    access_token_lifetime_seconds: int = 28800  # 8 hours (standard work day)

    # ERP integration
    encryption_key: Optional[str] = None
    erp_webhook_api_key: Optional[str] = None
    erp_system_user_email: Optional[str] = None
    webhook_rate_limit: str = "60/minute"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        os.makedirs(os.path.dirname(DEFAULT_DATABASE_FILE), exist_ok=True)
        return f"sqlite+aiosqlite:///{DEFAULT_DATABASE_FILE}"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
