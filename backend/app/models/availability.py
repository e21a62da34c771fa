# backend/app/models/availability.py
"""
Partner working hours and bay capacity.

Both are one row per partner. The weekly schedule and bay list are small,
always read whole, and replaced whole on update, so they live in JSON
columns rather than child tables.
"""

from copy import deepcopy
from typing import Any, Dict, List

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func
import ulid

from ..core.constants import (
    DEFAULT_BAYS,
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_CAPACITY_BY_CATEGORY,
    DEFAULT_WEEKLY_SCHEDULE,
    MAX_ADVANCE_BOOKING_DAYS,
)
from ..database import Base


class PartnerAvailability(Base):
    """Weekly schedule: seven days (0 = Sunday) each with ``HH:MM`` time blocks."""

    __tablename__ = "partner_availability"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    partner_id = Column(
        String(26),
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    schedule = Column(JSON, nullable=False, default=lambda: deepcopy(DEFAULT_WEEKLY_SCHEDULE))
    buffer_time_minutes = Column(Integer, nullable=False, default=DEFAULT_BUFFER_MINUTES)
    max_advance_booking_days = Column(Integer, nullable=False, default=MAX_ADVANCE_BOOKING_DAYS)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def day(self, day_of_week: int) -> Dict[str, Any]:
        for entry in self.schedule or []:
            if int(entry.get("day_of_week", -1)) == day_of_week:
                return entry
        return {"day_of_week": day_of_week, "is_enabled": False, "time_blocks": []}

    def __repr__(self) -> str:
        return f"<PartnerAvailability partner={self.partner_id}>"


class PartnerCapacity(Base):
    """Bays and the number of concurrent bookings allowed per service category."""

    __tablename__ = "partner_capacity"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    partner_id = Column(
        String(26),
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    bays = Column(JSON, nullable=False, default=lambda: deepcopy(DEFAULT_BAYS))
    capacity_by_category = Column(
        JSON, nullable=False, default=lambda: dict(DEFAULT_CAPACITY_BY_CATEGORY)
    )
    buffer_time_minutes = Column(Integer, nullable=False, default=DEFAULT_BUFFER_MINUTES)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def active_bays(self, category: str) -> List[Dict[str, Any]]:
        return [
            bay
            for bay in (self.bays or [])
            if bay.get("service_category") == category and bay.get("is_active", True)
        ]

    def __repr__(self) -> str:
        return f"<PartnerCapacity partner={self.partner_id} {self.capacity_by_category}>"
