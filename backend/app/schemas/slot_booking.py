# backend/app/schemas/slot_booking.py
"""
Slot booking schemas for the Plindo platform.

Slot dates are calendar dates and slot times are ``HH:MM`` wall-clock
strings in the business timezone. Response models are built from the ORM
row with ``SlotBookingResponse.from_model`` so the nested wire shape
(slot, pricing, rating, timeline) stays in one place.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_NOTE_LENGTH, MAX_REASON_LENGTH
from ..core.enums import (
    CancelledBy,
    CarType,
    PaymentMethod,
    ServiceCategory,
    ServiceType,
    SlotBookingStatus,
)
from ..core.timezone_utils import ensure_utc, format_hhmm
from .availability import HHMM_PATTERN
from .base import Money, RequestModel, StandardizedModel


class VehicleInfo(StandardizedModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: Optional[int] = Field(default=None, ge=1950, le=2100)
    color: Optional[str] = Field(default=None, max_length=50)
    plate_number: str = Field(..., min_length=1, max_length=20)
    type: CarType = CarType.SEDAN


class SlotBookingCreate(RequestModel):
    """
    Book one window of a partner's category capacity.

    Duration, category and service type come from the service; only the
    start of the window is chosen by the caller.
    """

    partner_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    customer_id: Optional[str] = Field(
        default=None, description="Defaults to the calling customer"
    )
    slot_date: date = Field(..., alias="date")
    start_time: str = Field(..., pattern=HHMM_PATTERN, examples=["10:00"])
    vehicle: VehicleInfo
    payment_method: PaymentMethod = PaymentMethod.CARD
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)


class SlotBookingStatusUpdate(RequestModel):
    status: SlotBookingStatus
    note: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)

    @field_validator("status")
    @classmethod
    def _not_side_transition(cls, value: Any) -> Any:
        if value in (SlotBookingStatus.RESCHEDULED, SlotBookingStatus.RESCHEDULED.value):
            raise ValueError("Use the reschedule endpoint to move a booking")
        return value


class SlotBookingReschedule(RequestModel):
    slot_date: date = Field(..., alias="date")
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class SlotBookingCancel(RequestModel):
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class PriceCalculationRequest(RequestModel):
    service_id: str = Field(..., min_length=1)
    car_type: CarType = CarType.COMPACT
    customer_id: Optional[str] = None


class PriceQuoteResponse(StandardizedModel):
    service_id: str
    base_price: Money
    car_type: str
    car_type_multiplier: Money
    subscription_discount: Money
    gross_amount: Money
    customer_commission_pct: Money
    partner_commission_pct: Money
    customer_charge: Money
    platform_fee: Money
    partner_payout: Money


class TimelineEntry(StandardizedModel):
    status: SlotBookingStatus
    previous_status: Optional[SlotBookingStatus] = None
    event: str
    actor: Optional[str] = None
    note: Optional[str] = None
    timestamp: datetime


class SlotWindow(StandardizedModel):
    slot_date: date = Field(..., alias="date")
    start_time: str
    end_time: str


class SlotPricing(StandardizedModel):
    base_price: Money
    car_type_multiplier: Money
    subscription_discount: Money
    gross_amount: Money
    customer_charge: Money
    platform_fee: Money
    partner_payout: Money


class RatingInfo(StandardizedModel):
    score: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class SlotBookingResponse(StandardizedModel):
    id: str
    booking_number: str
    customer_id: str
    customer_name: str
    customer_phone: Optional[str] = None
    partner_id: str
    partner_name: str
    partner_address: Optional[str] = None
    vehicle: VehicleInfo
    service_id: Optional[str] = None
    service_name: str
    service_type: ServiceType
    service_category: ServiceCategory
    duration_minutes: int
    slot: SlotWindow
    bay_id: Optional[str] = None
    bay_name: Optional[str] = None
    pricing: SlotPricing
    status: SlotBookingStatus
    timeline: List[TimelineEntry]
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[CancelledBy] = None
    cancellation_reason: Optional[str] = None
    late_cancellation: bool = False
    reschedule_count: int = 0
    rescheduled_from: Optional[SlotWindow] = None
    rescheduled_at: Optional[datetime] = None
    rescheduled_by: Optional[str] = None
    rating: Optional[RatingInfo] = None

    @classmethod
    def from_model(cls, booking: Any) -> "SlotBookingResponse":
        rescheduled_from = None
        if booking.rescheduled_from_date is not None:
            rescheduled_from = SlotWindow(
                slot_date=booking.rescheduled_from_date,
                start_time=format_hhmm(booking.rescheduled_from_start_time),
                end_time=format_hhmm(booking.rescheduled_from_end_time),
            )
        rating = None
        if booking.rating_score is not None:
            rating = RatingInfo(
                score=booking.rating_score,
                comment=booking.rating_comment,
                created_at=ensure_utc(booking.rated_at),
            )
        return cls(
            id=booking.id,
            booking_number=booking.booking_number,
            customer_id=booking.customer_id,
            customer_name=booking.customer_name,
            customer_phone=booking.customer_phone,
            partner_id=booking.partner_id,
            partner_name=booking.partner_name,
            partner_address=booking.partner_address,
            vehicle=VehicleInfo.model_validate(booking.vehicle or {}),
            service_id=booking.service_id,
            service_name=booking.service_name,
            service_type=booking.service_type,
            service_category=booking.service_category,
            duration_minutes=booking.duration_minutes,
            slot=SlotWindow(
                slot_date=booking.slot_date,
                start_time=format_hhmm(booking.start_time),
                end_time=format_hhmm(booking.end_time),
            ),
            bay_id=booking.bay_id,
            bay_name=booking.bay_name,
            pricing=SlotPricing(
                base_price=booking.base_price,
                car_type_multiplier=booking.car_type_multiplier,
                subscription_discount=booking.subscription_discount,
                gross_amount=booking.gross_amount,
                customer_charge=booking.customer_charge,
                platform_fee=booking.platform_fee,
                partner_payout=booking.partner_payout,
            ),
            status=booking.status,
            timeline=[
                TimelineEntry(
                    status=event.status,
                    previous_status=event.previous_status,
                    event=event.event,
                    actor=event.actor,
                    note=event.note,
                    timestamp=ensure_utc(event.created_at),
                )
                for event in booking.events
            ],
            notes=booking.notes,
            created_at=ensure_utc(booking.created_at),
            updated_at=ensure_utc(booking.updated_at),
            started_at=ensure_utc(booking.started_at),
            completed_at=ensure_utc(booking.completed_at),
            cancelled_at=ensure_utc(booking.cancelled_at),
            cancelled_by=booking.cancelled_by,
            cancellation_reason=booking.cancellation_reason,
            late_cancellation=bool(booking.late_cancellation),
            reschedule_count=booking.reschedule_count or 0,
            rescheduled_from=rescheduled_from,
            rescheduled_at=ensure_utc(booking.rescheduled_at),
            rescheduled_by=booking.rescheduled_by,
            rating=rating,
        )


class TimelineDay(StandardizedModel):
    slot_date: date = Field(..., alias="date")
    day_name: str
    bookings: List[SlotBookingResponse]


class PartnerWeekTimeline(StandardizedModel):
    partner_id: str
    week_start: date
    week_end: date
    days: List[TimelineDay]
    total_bookings: int
