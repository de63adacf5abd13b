from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Edit turn budget
    EDIT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    EDIT_MAX_STEPS: int = Field(default=5, ge=1)
    EDIT_TIMEOUT_DISCARDS_PARTIAL: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
