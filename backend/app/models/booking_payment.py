"""Booking payment satellite table."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import PaymentMethod, PaymentStatus
from ..database import Base
from .base_enum import create_safe_enum


class BookingPayment(Base):
    """Charge, commission split and refund state for a single slot booking."""

    __tablename__ = "booking_payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("slot_bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    method = Column(
        create_safe_enum(PaymentMethod, "payment_method"),
        nullable=False,
        default=PaymentMethod.CARD,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    partner_payout = Column(Numeric(10, 2), nullable=False)
    status = Column(
        create_safe_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)

    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("SlotBooking", back_populates="payment")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_booking_payments_amount_non_negative"),
        CheckConstraint(
            "refund_amount IS NULL OR refund_amount <= amount",
            name="ck_booking_payments_refund_within_amount",
        ),
    )

    def __repr__(self) -> str:
        return f"<BookingPayment booking={self.booking_id} status={self.status}>"
