"""Schemas for partner weekly availability, bay capacity and bookable windows."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import Field

from ..core.enums import ServiceCategory
from .base import RequestModel, StandardizedModel

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeBlock(StandardizedModel):
    start: str = Field(..., pattern=HHMM_PATTERN, examples=["08:00"])
    end: str = Field(..., pattern=HHMM_PATTERN, examples=["18:00"])


class DayAvailability(StandardizedModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")
    day_name: Optional[str] = None
    is_enabled: bool = False
    time_blocks: List[TimeBlock] = Field(default_factory=list)


class WeeklyAvailabilityResponse(StandardizedModel):
    partner_id: str
    schedule: List[DayAvailability]
    buffer_time_minutes: int
    max_advance_booking_days: int
    updated_at: Optional[datetime] = None


class WeeklyAvailabilityUpdate(RequestModel):
    schedule: List[DayAvailability] = Field(..., min_length=7, max_length=7)
    buffer_time_minutes: Optional[int] = Field(default=None, ge=0, le=240)
    max_advance_booking_days: Optional[int] = Field(default=None, ge=1, le=365)


class Bay(StandardizedModel):
    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    service_category: ServiceCategory
    is_active: bool = True


class PartnerCapacityResponse(StandardizedModel):
    partner_id: str
    bays: List[Bay]
    capacity_by_category: Dict[str, int]
    buffer_time_minutes: int
    updated_at: Optional[datetime] = None


class PartnerCapacityUpdate(RequestModel):
    bays: Optional[List[Bay]] = None
    capacity_by_category: Optional[Dict[ServiceCategory, int]] = None
    buffer_time_minutes: Optional[int] = Field(default=None, ge=0, le=240)


class AvailableWindowResponse(StandardizedModel):
    start_time: str
    end_time: str
    remaining_capacity: int
    total_capacity: int
    bay_id: Optional[str] = None
    bay_name: Optional[str] = None


class AvailableWindowsResponse(StandardizedModel):
    partner_id: str
    slot_date: date = Field(..., alias="date")
    service_category: ServiceCategory
    duration_minutes: int
    windows: List[AvailableWindowResponse]
    capacity: Dict[str, int]
    message: Optional[str] = None
