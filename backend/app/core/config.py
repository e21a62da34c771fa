# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    BRAND_NAME,
    CANCELLATION_WINDOW_HOURS,
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_CUSTOMER_COMMISSION_PCT,
    DEFAULT_MINIMUM_PAYOUT,
    DEFAULT_PARTNER_COMMISSION_PCT,
    DEFAULT_SLOT_DURATION_MINUTES,
    MAX_ADVANCE_BOOKING_DAYS,
    MAX_RESCHEDULES,
    MIN_ADVANCE_BOOKING_HOURS,
    SLOT_STEP_MINUTES,
)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    app_name: str = BRAND_NAME
    environment: str = Field(default="development", description="development | staging | production")
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    cors_origins: str = Field(
        default="http://localhost:3000", description="Comma separated list of allowed origins"
    )

    # Persistence
    database_url: str = Field(
        default="sqlite:///./plindo.db",
        description="SQLAlchemy URL; PostgreSQL in production",
    )
    database_echo: bool = False
    auto_create_tables: bool = True

    # Distributed capacity lock; empty disables the Redis layer
    redis_url: str = ""
    capacity_lock_ttl_seconds: int = Field(default=10, ge=1)
    capacity_lock_wait_seconds: float = Field(default=5.0, gt=0)

    # Scheduling
    business_timezone: str = "Europe/Nicosia"
    slot_step_minutes: int = Field(default=SLOT_STEP_MINUTES, gt=0)
    default_buffer_minutes: int = Field(default=DEFAULT_BUFFER_MINUTES, ge=0)
    default_slot_duration_minutes: int = Field(default=DEFAULT_SLOT_DURATION_MINUTES, gt=0)
    enforce_start_time_guard: bool = True

    # Commission defaults (seed the platform settings row)
    default_customer_commission_pct: float = Field(
        default=float(DEFAULT_CUSTOMER_COMMISSION_PCT), ge=0, le=100
    )
    default_partner_commission_pct: float = Field(
        default=float(DEFAULT_PARTNER_COMMISSION_PCT), ge=0, le=100
    )
    default_minimum_payout: float = Field(default=float(DEFAULT_MINIMUM_PAYOUT), ge=0)
    default_payout_schedule: str = "weekly"

    # Booking rule defaults (seed the platform settings row)
    min_advance_booking_hours: int = Field(default=MIN_ADVANCE_BOOKING_HOURS, ge=0)
    max_advance_booking_days: int = Field(default=MAX_ADVANCE_BOOKING_DAYS, ge=1)
    cancellation_window_hours: int = Field(default=CANCELLATION_WINDOW_HOURS, ge=0)
    allow_rescheduling: bool = True
    max_reschedules: int = Field(default=MAX_RESCHEDULES, ge=0)

    metrics_enabled: bool = True

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("default_payout_schedule")
    @classmethod
    def _validate_payout_schedule(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"daily", "weekly", "monthly"}:
            raise ValueError("default_payout_schedule must be daily, weekly or monthly")
        return normalized

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
