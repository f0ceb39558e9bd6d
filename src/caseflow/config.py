"""Client configuration via pydantic-settings.

Reads from .env file or CASEFLOW_* environment variables.

Usage:
    from caseflow.config import get_settings
    settings = get_settings()
    print(settings.api_base_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the case engagement client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CASEFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_log_level: str = "INFO"

    # --- Backend API ---
    api_base_url: str = "http://localhost:5050"
    api_token: str = ""
    api_timeout_seconds: float = 30.0
    api_max_connections: int = 10

    # --- Case lists ---
    cases_page_limit: int = 100
    archived_page_limit: int = 100

    # --- Purge countdown ---
    countdown_interval_seconds: float = 60.0

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def normalized_base_url(self) -> str:
        return self.api_base_url.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the client settings."""
    return Settings()
