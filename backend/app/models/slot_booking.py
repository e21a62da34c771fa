# backend/app/models/slot_booking.py
"""
Slot booking model for the Plindo platform.

A slot booking holds one unit of a partner's category capacity for a time
window. Customer, partner, vehicle and service details are snapshotted at
booking time so later edits never rewrite history. Every status change is
appended to ``booking_status_events``; that log is never edited.
"""

from datetime import date, datetime, time, timedelta
import logging
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import CancelledBy, ServiceCategory, ServiceType, SlotBookingStatus
from ..core.timezone_utils import ensure_utc
from ..database import Base
from .base_enum import create_safe_enum

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(
    {SlotBookingStatus.COMPLETED, SlotBookingStatus.DELIVERED, SlotBookingStatus.CANCELLED}
)
FINISHED_STATUSES = frozenset({SlotBookingStatus.COMPLETED, SlotBookingStatus.DELIVERED})


class SlotBooking(Base):
    """
    Capacity-holding booking for one partner time window.

    Status follows the slot state machine (see app.domain.booking_state_machine);
    cancelled bookings release their capacity.
    """

    __tablename__ = "slot_bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_number = Column(String(20), nullable=False, unique=True, index=True)

    # Core relationships
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False, index=True)
    partner_id = Column(String(26), ForeignKey("partners.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("partner_services.id"), nullable=True)

    # Customer / partner snapshot
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(40), nullable=True)
    partner_name = Column(String(200), nullable=False)
    partner_phone = Column(String(40), nullable=True)
    partner_address = Column(Text, nullable=True)

    # Vehicle snapshot: make, model, year, color, plate_number, type
    vehicle = Column(JSON, nullable=False, default=dict)

    # Service snapshot
    service_name = Column(String(200), nullable=False)
    service_type = Column(create_safe_enum(ServiceType, "service_type"), nullable=False)
    service_category = Column(
        create_safe_enum(ServiceCategory, "service_category"), nullable=False
    )
    duration_minutes = Column(Integer, nullable=False)

    # Slot
    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    bay_id = Column(String(50), nullable=True)
    bay_name = Column(String(100), nullable=True)

    # Pricing snapshot
    base_price = Column(Numeric(10, 2), nullable=False)
    car_type_multiplier = Column(Numeric(4, 2), nullable=False, default=1)
    subscription_discount = Column(Numeric(10, 2), nullable=False, default=0)
    gross_amount = Column(Numeric(10, 2), nullable=False)
    customer_commission_pct = Column(Numeric(5, 2), nullable=False)
    partner_commission_pct = Column(Numeric(5, 2), nullable=False)
    customer_charge = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    partner_payout = Column(Numeric(10, 2), nullable=False)

    # Lifecycle
    status = Column(
        create_safe_enum(SlotBookingStatus, "slot_booking_status"),
        nullable=False,
        default=SlotBookingStatus.BOOKED,
        index=True,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation tracking
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(create_safe_enum(CancelledBy, "cancelled_by"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    late_cancellation = Column(Boolean, nullable=False, default=False)

    # Reschedule tracking
    reschedule_count = Column(Integer, nullable=False, default=0)
    rescheduled_from_date = Column(Date, nullable=True)
    rescheduled_from_start_time = Column(Time, nullable=True)
    rescheduled_from_end_time = Column(Time, nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=True)
    rescheduled_by = Column(String(20), nullable=True)

    # Rating
    rating_score = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)
    rated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    customer = relationship("Customer")
    partner = relationship("Partner")
    service = relationship("PartnerService")
    events = relationship(
        "BookingStatusEvent",
        back_populates="booking",
        order_by="BookingStatusEvent.sequence",
        cascade="all, delete-orphan",
    )
    payment = relationship(
        "BookingPayment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    dispute = relationship(
        "BookingDispute", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_slot_bookings_capacity", "partner_id", "slot_date", "service_category", "status"),
        CheckConstraint("duration_minutes > 0", name="ck_slot_bookings_duration_positive"),
        CheckConstraint("gross_amount >= 0", name="ck_slot_bookings_gross_non_negative"),
        CheckConstraint(
            "rating_score IS NULL OR (rating_score >= 1 AND rating_score <= 5)",
            name="ck_slot_bookings_rating_range",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SlotBooking {self.booking_number}: partner={self.partner_id}, "
            f"date={self.slot_date}, time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def append_event(
        self,
        status: SlotBookingStatus,
        *,
        at: datetime,
        previous_status: Optional[SlotBookingStatus] = None,
        event: Optional[str] = None,
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> "BookingStatusEvent":
        """
        Append a timeline entry.

        Timestamps are strictly increasing: an entry that would not sort after
        the previous one is moved one microsecond past it.
        """
        created_at = ensure_utc(at)
        sequence = 1
        if self.events:
            last = self.events[-1]
            sequence = last.sequence + 1
            last_at = ensure_utc(last.created_at)
            if last_at is not None and created_at <= last_at:
                created_at = last_at + timedelta(microseconds=1)
        entry = BookingStatusEvent(
            sequence=sequence,
            status=status,
            previous_status=previous_status,
            event=event or status.value,
            actor=actor,
            note=note,
            created_at=created_at,
        )
        self.events.append(entry)
        return entry

    def move_to(self, slot_date: date, start_time: time, end_time: time) -> None:
        """Remember the current window and move to a new one."""
        self.rescheduled_from_date = self.slot_date
        self.rescheduled_from_start_time = self.start_time
        self.rescheduled_from_end_time = self.end_time
        self.slot_date = slot_date
        self.start_time = start_time
        self.end_time = end_time
        self.reschedule_count = (self.reschedule_count or 0) + 1
        logger.info(f"Slot booking {self.id} moved to {slot_date} {start_time}")


class BookingStatusEvent(Base):
    """Append-only status timeline entry."""

    __tablename__ = "booking_status_events"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("slot_bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)
    status = Column(create_safe_enum(SlotBookingStatus, "slot_booking_status"), nullable=False)
    previous_status = Column(
        create_safe_enum(SlotBookingStatus, "slot_booking_status"), nullable=True
    )
    event = Column(String(30), nullable=False)
    actor = Column(String(20), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("SlotBooking", back_populates="events")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "previous_status": self.previous_status,
            "event": self.event,
            "actor": self.actor,
            "note": self.note,
            "created_at": ensure_utc(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<BookingStatusEvent {self.booking_id}#{self.sequence} {self.event}>"
