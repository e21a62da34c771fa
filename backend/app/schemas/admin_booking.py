# backend/app/schemas/admin_booking.py
"""Schemas for the admin booking view, refunds, disputes and ratings."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..core.constants import MAX_NOTE_LENGTH, MAX_REASON_LENGTH
from ..core.enums import (
    BookingStatus,
    DisputeResolution,
    DisputeStatus,
    PaymentMethod,
    PaymentStatus,
    ServiceCategory,
    ServiceType,
    SlotBookingStatus,
)
from .base import Money, RequestModel, StandardizedModel
from .slot_booking import RatingInfo, VehicleInfo


class AdminBookingCustomer(StandardizedModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class AdminBookingPartner(StandardizedModel):
    id: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class AdminBookingService(StandardizedModel):
    id: Optional[str] = None
    name: str
    price: Money
    duration: int
    service_type: ServiceType
    service_category: ServiceCategory


class AdminTimelineEntry(StandardizedModel):
    status: BookingStatus
    timestamp: datetime
    note: Optional[str] = None


class AdminPayment(StandardizedModel):
    method: PaymentMethod
    amount: Money
    platform_fee: Money
    partner_payout: Money
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    refund_amount: Optional[Money] = None
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None


class DisputeInfo(StandardizedModel):
    reason: str
    description: Optional[str] = None
    customer_evidence: List[str] = Field(default_factory=list)
    partner_response: Optional[str] = None
    partner_responded_at: Optional[datetime] = None
    status: DisputeStatus
    resolution: Optional[DisputeResolution] = None
    resolution_notes: Optional[str] = None
    refund_amount: Optional[Money] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class AdminBookingResponse(StandardizedModel):
    id: str
    booking_number: str
    customer: AdminBookingCustomer
    partner: AdminBookingPartner
    vehicle: VehicleInfo
    service: AdminBookingService
    scheduled_date: datetime
    slot_date: date
    start_time: str
    end_time: str
    created_at: Optional[datetime] = None
    status: BookingStatus
    slot_status: SlotBookingStatus
    status_timeline: List[AdminTimelineEntry]
    payment: Optional[AdminPayment] = None
    rating: Optional[RatingInfo] = None
    dispute: Optional[DisputeInfo] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    late_cancellation: bool = False


class RefundRequest(RequestModel):
    amount: Money
    reason: str = Field(..., min_length=1, max_length=MAX_REASON_LENGTH)


class DisputeCreate(RequestModel):
    reason: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)
    customer_evidence: List[str] = Field(default_factory=list, max_length=10)


class DisputeResponseRequest(RequestModel):
    response: str = Field(..., min_length=1, max_length=MAX_NOTE_LENGTH)


class DisputeResolveRequest(RequestModel):
    action: DisputeResolution
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)
    refund_amount: Optional[Money] = None


class RatingCreate(RequestModel):
    score: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)
