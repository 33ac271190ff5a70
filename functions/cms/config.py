"""
Configuration and settings for the CMS backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.site_config import DEFAULT_ADMIN_USERNAME


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)
    db_connect_timeout_seconds: int = Field(default=5, ge=1)
    db_retry_interval_seconds: float = Field(default=5.0, ge=0)
    # None retries forever.
    db_max_connect_attempts: Optional[int] = Field(default=None, ge=1)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Cross-origin policy: only the production site by default.
    cors_origins: list[str] = Field(default=["https://uniunity.space"])

    # Session tokens. Unset means a random per-process secret.
    jwt_secret: Optional[str] = Field(default=None, min_length=32)
    jwt_algorithm: str = Field(default="HS256")
    session_ttl_minutes: int = Field(default=60, ge=1)

    # Admin seed
    admin_username: str = Field(default=DEFAULT_ADMIN_USERNAME)
    admin_default_password: str = Field(default="UniUnity2025!")
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
