"""Booking dispute satellite table."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import DisputeResolution, DisputeStatus
from ..database import Base
from .base_enum import create_safe_enum


class BookingDispute(Base):
    """Customer dispute raised against a finished booking. One per booking."""

    __tablename__ = "booking_disputes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("slot_bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    reason = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    customer_evidence = Column(JSON, nullable=False, default=list)
    partner_response = Column(Text, nullable=True)
    partner_responded_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        create_safe_enum(DisputeStatus, "dispute_status"),
        nullable=False,
        default=DisputeStatus.PENDING,
        index=True,
    )
    resolution = Column(create_safe_enum(DisputeResolution, "dispute_resolution"), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("SlotBooking", back_populates="dispute")

    def __repr__(self) -> str:
        return f"<BookingDispute booking={self.booking_id} status={self.status}>"
