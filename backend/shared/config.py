"""
Centralized configuration for the PathPal backend.

All settings are loaded from environment variables with sensible defaults.
Variables are prefixed with PATHPAL_ (e.g., PATHPAL_DATABASE_URL).
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PATHPAL_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PathPal API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["GET", "POST", "PATCH", "DELETE"]
    cors_allow_headers: list[str] = ["*"]

    # Credential store
    storage_backend: Literal["postgres", "memory"] = "postgres"
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_connect_timeout: int = 5  # seconds
    db_statement_timeout_ms: int = 5000
    # Seconds, per store or hashing call. A timed-out call keeps running in
    # its worker thread and may still commit, so with Postgres it must exceed
    # db_statement_timeout_ms (checked below).
    store_call_timeout: float = 10.0

    # Password hashing
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Sessions
    session_ttl_days: int = Field(default=7, ge=1)
    session_cookie_name: str = "pathpal_session"
    session_cookie_secure: bool = True
    session_cookie_httponly: bool = True
    session_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    @model_validator(mode="after")
    def check_store_call_timeout(self) -> "Settings":
        if self.storage_backend == "postgres" and self.store_call_timeout * 1000 <= self.db_statement_timeout_ms:
            raise ValueError("store_call_timeout must be longer than db_statement_timeout_ms")
        return self

    @property
    def session_ttl(self) -> timedelta:
        """Lifetime of a freshly issued session."""
        return timedelta(days=self.session_ttl_days)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
