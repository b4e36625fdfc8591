"""
Configuration and settings for the alumni portal backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Key-value store (SQL table or Redis keyspace)
    database_url: Optional[str] = Field(default=None)
    redis_url: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="alumni-portal:")

    # Identity service (Supabase-compatible auth REST API)
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    identity_timeout_seconds: float = Field(default=10.0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Listing
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # Counter updates retry a compare-and-swap this many times.
    counter_update_attempts: int = Field(default=10)

    # Roles and analytics
    admin_role: str = Field(default="Admin")
    default_signup_role: str = Field(default="Student")
    fallback_profile_role: str = Field(default="Alumni")
    recent_activity_days: int = Field(default=30)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
