"""Schemas for platform commission and booking-rule settings."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..core.enums import PayoutSchedule
from .base import Money, RequestModel, StandardizedModel


class CommissionSettings(StandardizedModel):
    customer_commission_pct: Money = Field(
        ..., description="Percentage added on top of the gross price"
    )
    partner_commission_pct: Money = Field(
        ..., description="Percentage withheld from the partner payout"
    )
    minimum_payout: Money
    payout_schedule: PayoutSchedule = PayoutSchedule.WEEKLY
    updated_at: Optional[datetime] = None


class CommissionSettingsUpdate(RequestModel):
    customer_commission_pct: Optional[Money] = None
    partner_commission_pct: Optional[Money] = None
    minimum_payout: Optional[Money] = None
    payout_schedule: Optional[PayoutSchedule] = None


class BookingRules(StandardizedModel):
    min_advance_booking_hours: int = Field(..., ge=0)
    max_advance_booking_days: int = Field(..., ge=1)
    cancellation_window_hours: int = Field(..., ge=0)
    allow_rescheduling: bool = True
    max_reschedules: int = Field(..., ge=0)
    updated_at: Optional[datetime] = None


class BookingRulesUpdate(RequestModel):
    min_advance_booking_hours: Optional[int] = Field(default=None, ge=0)
    max_advance_booking_days: Optional[int] = Field(default=None, ge=1, le=365)
    cancellation_window_hours: Optional[int] = Field(default=None, ge=0)
    allow_rescheduling: Optional[bool] = None
    max_reschedules: Optional[int] = Field(default=None, ge=0)
