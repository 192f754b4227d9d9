"""
Configuration and settings for the Recipe Simplifier backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from models import api_config


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    app_url: str = Field(default="http://localhost:3000")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    # Database (Postgres expected)
    database_url: Optional[str] = None

    # LLM / Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = Field(default=api_config.DEFAULT_MODEL)

    # Hosted auth (Supabase)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    # Billing (Stripe)
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id: Optional[str] = None
    stripe_publishable_key: Optional[str] = None

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
