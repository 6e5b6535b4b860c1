"""
Application-wide configuration utilities.

The toggle service runs next to the TeamMove API and reads everything from environment
variables (or a local ``.env`` during development).  Values are parsed once through Pydantic
BaseSettings and cached, so the startup hook, the routers and the CLI share one object.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration parsed from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    app_env: Literal["dev", "test", "stage", "prod"] = "dev"
    log_level: str = "INFO"

    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_db: str = Field(default="teammove")
    feature_toggle_collection: str = Field(default="feature_toggles")
    redis_url: str = Field(default="redis://localhost:6379/0")

    feature_toggle_cache_ttl_seconds: int = Field(default=300, ge=1)
    seed_defaults_on_startup: bool = Field(default=True)

    admin_rate_limit: int = Field(default=120, ge=1)
    admin_rate_limit_window_seconds: int = Field(default=60, ge=1)

    metrics_refresh_interval_seconds: int = Field(default=60, ge=5)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
