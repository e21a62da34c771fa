"""Service helpers for platform commission and booking-rule settings."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationException
from app.core.timezone_utils import utc_now
from app.models.platform_config import BOOKING_RULES_KEY, COMMISSION_KEY
from app.repositories.factory import RepositoryFactory
from app.schemas.platform_config import (
    BookingRules,
    BookingRulesUpdate,
    CommissionSettings,
    CommissionSettingsUpdate,
)
from app.services.base import BaseService


def default_commission() -> Dict[str, Any]:
    return {
        "customer_commission_pct": str(settings.default_customer_commission_pct),
        "partner_commission_pct": str(settings.default_partner_commission_pct),
        "minimum_payout": str(settings.default_minimum_payout),
        "payout_schedule": settings.default_payout_schedule,
    }


def default_booking_rules() -> Dict[str, Any]:
    return {
        "min_advance_booking_hours": settings.min_advance_booking_hours,
        "max_advance_booking_days": settings.max_advance_booking_days,
        "cancellation_window_hours": settings.cancellation_window_hours,
        "allow_rescheduling": settings.allow_rescheduling,
        "max_reschedules": settings.max_reschedules,
    }


def _check_pct(name: str, value: Decimal) -> None:
    if value < 0 or value > 100:
        raise ValidationException(
            f"{name} must be between 0 and 100",
            code="INVALID_COMMISSION",
            details={"field": name, "value": str(value)},
        )


class ConfigService(BaseService):
    """Business logic for reading/writing platform settings. Last write wins."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repo = RepositoryFactory.create_platform_config_repository(db)

    def get_commission(self) -> CommissionSettings:
        record = self.repo.get_by_key(COMMISSION_KEY)
        value = {**default_commission(), **(record.value_json if record else {})}
        return CommissionSettings(**value, updated_at=record.updated_at if record else None)

    @BaseService.measure_operation("update_commission")
    def update_commission(self, update: CommissionSettingsUpdate) -> CommissionSettings:
        current = self.get_commission()
        changes = update.model_dump(exclude_none=True)
        merged = {**current.model_dump(exclude={"updated_at"}), **changes}

        for field in ("customer_commission_pct", "partner_commission_pct"):
            _check_pct(field, Decimal(str(merged[field])))
        if Decimal(str(merged["minimum_payout"])) < 0:
            raise ValidationException(
                "minimum_payout cannot be negative", code="INVALID_COMMISSION"
            )

        stored = {key: str(value) for key, value in merged.items()}
        with self.transaction():
            self.repo.upsert(key=COMMISSION_KEY, value=stored, updated_at=utc_now())
        self.log_operation("update_commission", **stored)
        return self.get_commission()

    def get_booking_rules(self) -> BookingRules:
        record = self.repo.get_by_key(BOOKING_RULES_KEY)
        value = {**default_booking_rules(), **(record.value_json if record else {})}
        return BookingRules(**value, updated_at=record.updated_at if record else None)

    @BaseService.measure_operation("update_booking_rules")
    def update_booking_rules(self, update: BookingRulesUpdate) -> BookingRules:
        current = self.get_booking_rules()
        merged = {
            **current.model_dump(exclude={"updated_at"}),
            **update.model_dump(exclude_none=True),
        }
        with self.transaction():
            self.repo.upsert(key=BOOKING_RULES_KEY, value=merged, updated_at=utc_now())
        self.log_operation("update_booking_rules", **merged)
        return self.get_booking_rules()
