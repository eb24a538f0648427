"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This keeps the kiosk timings,
backend location and display options in one validated place.
"""

from functools import lru_cache
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Kiosk settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Backend serving the /api/kiosk/* contract
    backend_url: str = "http://localhost:5000"
    request_timeout_seconds: float = 10.0

    # ==========================================================================
    # Kiosk flow timings
    # ==========================================================================
    countdown_seconds: int = 5
    success_display_seconds: float = 3.0
    idle_timeout_seconds: float = 60.0
    clock_tick_seconds: float = 1.0
    pin_submit_delay_seconds: float = 0.1
    pin_length: int = 4

    # IANA zone used for pay periods and entry date/time fields.
    # When unset the host's local zone is used.
    timezone: Optional[str] = None

    # ==========================================================================
    # Display
    # ==========================================================================
    wake_lock_enabled: bool = True
    display: Optional[str] = None  # X11 DISPLAY of the kiosk screen

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    request_logging_enabled: bool = True

    # API
    api_v1_prefix: str = "/api/v1"

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v:
            try:
                ZoneInfo(v)
            except ZoneInfoNotFoundError as e:
                raise ValueError(f"Unknown timezone: {v}") from e
        return v or None

    @field_validator("countdown_seconds", "pin_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        """Kiosk zone, or None for the host's local zone."""
        return ZoneInfo(self.timezone) if self.timezone else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
