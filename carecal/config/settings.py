"""Configuration settings for CareCal with caching utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATEGORY_COLORS: dict[str, str] = {
    "personal": "#FF9500",
    "work": "#007AFF",
    "social": "#FF2D55",
    "health": "#4CD964",
    "other": "#8E8E93",
}


class Settings(BaseSettings):
    """CareCal application settings"""

    model_config = SettingsConfigDict(
        env_file=[".env.test", ".env"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "personal"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Storage root for the file-backed gateway
    data_dir: Path = Path("./data")

    # Working-hours policy for slot generation
    slot_start_hour: int = Field(default=9, ge=0, le=23)
    slot_end_hour: int = Field(default=17, ge=1, le=24)
    slot_interval_minutes: int = Field(default=30, gt=0, le=60)

    # Appointment duration bounds (minutes)
    min_duration_minutes: int = 15
    max_duration_minutes: int = 240
    default_duration_minutes: int = 30

    # Reminder defaults
    default_reminder_minutes: int = 30
    default_reminder_channel: str = "notification"

    # Colors
    default_appointment_color: str = "#0A7EA4"
    event_category_colors: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_COLORS)
    )

    # Informational only, never used for date arithmetic
    default_time_zone: str = "UTC"

    @field_validator("slot_end_hour")
    @classmethod
    def validate_slot_window(cls, v: int, info: ValidationInfo) -> int:
        """Validate the working window is not empty."""
        start = info.data.get("slot_start_hour")
        if start is not None and v <= start:
            raise ValueError("slot_end_hour must be after slot_start_hour")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment.lower() in ["development", "dev"]

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment.lower() in ["testing", "test"]

    def category_color(self, category: str) -> str:
        """Return the marker color for an event category."""
        return self.event_category_colors.get(
            category, self.event_category_colors.get("other", "#8E8E93")
        )


_SETTINGS_LOCK = RLock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, refresh: bool = False) -> Settings:
    """Return a cached ``Settings`` instance.

    Parameters
    ----------
    refresh:
        When ``True`` the cached instance is discarded and a new one is created.
    """

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        if refresh or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear the cached settings instance."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


get_settings.cache_clear = clear_settings_cache  # type: ignore[attr-defined]


@contextmanager
def override_settings(**overrides: Any) -> Iterator[Settings]:
    """Temporarily override the cached settings within a context."""

    global _SETTINGS_CACHE

    with _SETTINGS_LOCK:
        previous_settings = _SETTINGS_CACHE

    base_settings = previous_settings or Settings()
    patched_settings = base_settings.model_copy(update=overrides)

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = patched_settings

    try:
        yield patched_settings
    finally:
        with _SETTINGS_LOCK:
            _SETTINGS_CACHE = previous_settings
