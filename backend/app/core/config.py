# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .enums import ResolverMode


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


_BACKEND_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _BACKEND_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the reservation engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "test", "staging", "production"] = "development"
    log_level: str = "INFO"
    is_testing: bool = False

    # Persistence
    database_url: str = Field(
        default=f"sqlite:///{_BACKEND_ROOT / 'drivebook.db'}",
        description="SQLAlchemy URL of the authoritative transactional store",
    )
    database_echo: bool = False
    redis_url: Optional[str] = "redis://localhost:6379/0"

    # Schedule
    schedule_timezone: str = Field(
        default="Europe/Stockholm",
        description="Wall-clock zone that template and slot times are expressed in",
    )
    resource_key: str = Field(
        default="default",
        description="Key of the single bookable resource one-to-one lessons compete for",
    )
    slot_granularity_minutes: int = 30
    default_duration_minutes: int = 45
    max_resolve_days: int = 62
    resolver_mode: ResolverMode = ResolverMode.STRICT_OVERLAP

    # Reservation lifecycle
    hold_ttl_minutes: int = 10
    pending_confirmation_ttl_minutes: int = 24 * 60
    cancelled_retention_minutes: int = 15
    lead_time_minutes: int = 120

    # Background work
    reaper_interval_seconds: int = 60
    capacity_reconcile_minutes: int = 30
    outbox_dispatch_seconds: int = 30

    # Shared secrets
    reaper_secret: SecretStr = SecretStr("change-me-reaper-secret")
    admin_token: SecretStr = SecretStr("change-me-admin-token")

    @field_validator(
        "slot_granularity_minutes",
        "default_duration_minutes",
        "max_resolve_days",
        "hold_ttl_minutes",
        "pending_confirmation_ttl_minutes",
        "reaper_interval_seconds",
        "capacity_reconcile_minutes",
        "outbox_dispatch_seconds",
    )
    @classmethod
    def _must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("cancelled_retention_minutes", "lead_time_minutes")
    @classmethod
    def _must_not_be_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("schedule_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def get_database_url(self) -> str:
        """Return the database URL, switching to in-memory SQLite under pytest."""
        if self.is_testing or is_running_tests():
            return os.getenv("TEST_DATABASE_URL", "sqlite://")
        return self.database_url


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency hook for the process-wide settings."""
    return settings


def override_settings(**overrides: Any) -> Settings:
    """Return a copy of the settings with the given fields replaced (used by tests)."""
    return settings.model_copy(update=overrides)
