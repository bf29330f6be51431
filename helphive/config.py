"""
Application settings (Pydantic).

Defaults live on the models below and can be overridden by a short whitelist
of environment variables:

- `HELPHIVE_LOG_LEVEL`
- `HELPHIVE_DEFAULT_EXPIRY_HOURS`
- `HELPHIVE_MAX_EXPIRY_HOURS`
- `HELPHIVE_CORS_ORIGINS` (comma separated)
"""

import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, model_validator


class AppSettings(BaseModel):
    name: str = "HelpHive"
    log_level: str = "INFO"
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )


class ExpirySettings(BaseModel):
    default_hours: int = Field(24, ge=1, le=72)
    min_hours: int = Field(1, ge=1, le=72)
    max_hours: int = Field(72, ge=1, le=72)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ExpirySettings":
        if not self.min_hours <= self.default_hours <= self.max_hours:
            raise ValueError(
                "expiry default_hours must lie within [min_hours, max_hours]"
            )
        return self


class FeedSettings(BaseModel):
    unknown_user_name: str = "Unknown User"


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    expiry: ExpirySettings = Field(default_factory=ExpirySettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    data = dict(data)

    log_level = os.getenv("HELPHIVE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    cors_origins = os.getenv("HELPHIVE_CORS_ORIGINS")
    if cors_origins:
        data.setdefault("app", {})["cors_origins"] = [
            s.strip() for s in cors_origins.split(",") if s.strip()
        ]

    default_hours = os.getenv("HELPHIVE_DEFAULT_EXPIRY_HOURS")
    if default_hours:
        data.setdefault("expiry", {})["default_hours"] = default_hours

    max_hours = os.getenv("HELPHIVE_MAX_EXPIRY_HOURS")
    if max_hours:
        data.setdefault("expiry", {})["max_hours"] = max_hours

    return data


def load_settings() -> Settings:
    return Settings.model_validate(_apply_env_overrides({}))


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    return load_settings()
