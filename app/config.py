"""
app/config.py — Pydantic BaseSettings configuration
Rate-limit profiles, reference data location, timezone and auth secrets.
All values can be overridden through environment variables or `.env`.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8000

    # ── Authentication ────────────────────────────────────────────────────────
    # Placeholders are accepted so the app can boot; startup warns about them.
    api_key: str = "change-me-immediately"
    dashboard_user: str = "calendar-user"
    dashboard_pass: str = "change-me-immediately"

    # ── Calendar ──────────────────────────────────────────────────────────────
    timezone: str = "Asia/Tokyo"
    people_data_path: str = "data/great_people.json"
    # None → progress kept in memory only
    progress_store_path: Optional[str] = None
    max_offset_days: int = 365
    profession_delimiter: str = "/"

    # ── Rate limiting ─────────────────────────────────────────────────────────
    rate_limit_cleanup_interval_seconds: int = 60 * 60
    rate_limit_stale_after_hours: int = 24

    # One profile per protected operation class. Override as JSON via
    # RATE_LIMIT_PROFILES; a partial override replaces only the named profiles.
    rate_limit_profiles: dict[str, dict[str, Any]] = {
        "general": {
            "window_ms": 15 * _MINUTE_MS,
            "max_requests": 100,
            "block_duration_ms": 15 * _MINUTE_MS,
            "message": "Too many requests. Please wait a while and try again.",
        },
        "auth": {
            "window_ms": 15 * _MINUTE_MS,
            "max_requests": 5,
            "block_duration_ms": 30 * _MINUTE_MS,
            "message": "Too many login attempts. Please try again in 30 minutes.",
        },
        "signup": {
            "window_ms": _HOUR_MS,
            "max_requests": 3,
            "block_duration_ms": _HOUR_MS,
            "message": "Too many account creation attempts. Please try again in 1 hour.",
        },
        "password_reset": {
            "window_ms": _HOUR_MS,
            "max_requests": 3,
            "block_duration_ms": _HOUR_MS,
            "message": "Too many password reset attempts. Please try again in 1 hour.",
        },
        "progress": {
            "window_ms": _MINUTE_MS,
            "max_requests": 30,
            "block_duration_ms": 5 * _MINUTE_MS,
            "message": "Too many progress updates. Please wait 5 minutes.",
        },
    }

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("rate_limit_profiles", mode="before")
    @classmethod
    def merge_profiles(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        defaults = cls.model_fields["rate_limit_profiles"].default
        merged = {name: dict(profile) for name, profile in defaults.items()}
        for name, profile in v.items():
            merged.setdefault(name, {}).update(profile)
        return merged

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
