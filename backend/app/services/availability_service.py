# backend/app/services/availability_service.py
"""
Availability Service for the Plindo platform

Owns partner working hours and bay capacity, and resolves which time
windows on a date can still take a booking for a service category.

Resolution rules:
- Candidate windows start every ``slot_step_minutes`` inside each enabled
  time block and must end by the block end.
- A booking overlaps a window when ``window.start < booking.end + buffer``
  and ``booking.start < window.end``. Cancelled bookings hold nothing.
- Category capacity is ``capacity_by_category[category]``, capped by the
  number of active bays for that category when bays are configured.
- Remaining capacity is the category capacity minus the peak number of
  bookings held at once inside the window, and never more than the bays
  left free for the whole window.
- Windows with no remaining capacity are left out.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    DAYS_OF_WEEK,
    DEFAULT_BAYS,
    DEFAULT_CAPACITY_BY_CATEGORY,
    DEFAULT_WEEKLY_SCHEDULE,
    MAX_SLOT_DURATION_MINUTES,
    MIN_SLOT_DURATION_MINUTES,
)
from ..core.enums import ServiceCategory
from ..core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from ..core.timezone_utils import (
    business_today,
    format_hhmm,
    localize_slot,
    minutes_of,
    parse_hhmm,
    time_from_minutes,
    utc_now,
)
from ..models.availability import PartnerAvailability, PartnerCapacity
from ..models.partner import Partner
from ..models.slot_booking import SlotBooking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.availability import PartnerCapacityUpdate, WeeklyAvailabilityUpdate
from .base import BaseService
from .config_service import ConfigService

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class AvailableWindow:
    start_time: time
    end_time: time
    remaining_capacity: int
    total_capacity: int
    bay_id: Optional[str] = None
    bay_name: Optional[str] = None


@dataclass
class AvailableWindows:
    partner_id: str
    slot_date: date
    service_category: ServiceCategory
    duration_minutes: int
    windows: List[AvailableWindow] = field(default_factory=list)
    capacity: Dict[str, int] = field(default_factory=dict)
    message: Optional[str] = None


@dataclass(frozen=True)
class WindowCheck:
    """Outcome of checking one concrete window while holding the capacity lock."""

    start_time: time
    end_time: time
    total_capacity: int
    remaining_capacity: int
    bay_id: Optional[str]
    bay_name: Optional[str]


def _coerce_category(category: Optional[ServiceCategory | str]) -> ServiceCategory:
    if category is None:
        return ServiceCategory.WASH
    try:
        return category if isinstance(category, ServiceCategory) else ServiceCategory(category)
    except ValueError as exc:
        raise ValidationException(
            f"Unknown service category: {category}",
            code="INVALID_SERVICE_CATEGORY",
            details={"allowed": [c.value for c in ServiceCategory]},
        ) from exc


def _category_key(value: Any) -> str:
    return value.value if isinstance(value, ServiceCategory) else str(value)


def day_of_week(value: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


def _block_minutes(blocks: Sequence[Dict[str, str]]) -> List[Tuple[int, int]]:
    spans = []
    for block in blocks:
        start = minutes_of(parse_hhmm(block["start"], "start"))
        end = minutes_of(parse_hhmm(block["end"], "end"))
        spans.append((start, end))
    return sorted(spans)


def effective_capacity(capacity: PartnerCapacity, category: ServiceCategory) -> int:
    """Configured category capacity, capped by active bays when any bays exist."""
    configured = int((capacity.capacity_by_category or {}).get(category.value, 0) or 0)
    if capacity.bays:
        return min(configured, len(capacity.active_bays(category.value)))
    return configured


class AvailabilityService(BaseService):
    """
    Partner availability, capacity configuration and window resolution.
    """

    def __init__(self, db: Session, config_service: Optional[ConfigService] = None):
        super().__init__(db)
        self.partner_repository = RepositoryFactory.create_partner_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.capacity_repository = RepositoryFactory.create_capacity_repository(db)
        self.booking_repository = RepositoryFactory.create_slot_booking_repository(db)
        self.config_service = config_service or ConfigService(db)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _require_partner(self, partner_id: str) -> Partner:
        partner = self.partner_repository.get_by_id(partner_id, load_relationships=False)
        if partner is None:
            raise NotFoundException("Partner not found", code="PARTNER_NOT_FOUND")
        return partner

    def get_weekly_availability(self, partner_id: str) -> PartnerAvailability:
        """The stored schedule, or an unsaved default one."""
        self._require_partner(partner_id)
        availability = self.availability_repository.get_for_partner(partner_id)
        if availability is not None:
            return availability
        return PartnerAvailability(
            partner_id=partner_id,
            schedule=deepcopy(DEFAULT_WEEKLY_SCHEDULE),
            buffer_time_minutes=settings.default_buffer_minutes,
            max_advance_booking_days=settings.max_advance_booking_days,
        )

    @BaseService.measure_operation("update_weekly_availability")
    def update_weekly_availability(
        self, partner_id: str, update: WeeklyAvailabilityUpdate
    ) -> PartnerAvailability:
        self._require_partner(partner_id)
        schedule = self._validate_schedule([day.model_dump() for day in update.schedule])

        with self.transaction():
            availability = self.availability_repository.get_or_create(partner_id)
            availability.schedule = schedule
            if update.buffer_time_minutes is not None:
                availability.buffer_time_minutes = update.buffer_time_minutes
            if update.max_advance_booking_days is not None:
                availability.max_advance_booking_days = update.max_advance_booking_days
            self.db.flush()

        self.log_operation(
            "update_weekly_availability",
            partner_id=partner_id,
            enabled_days=[d["day_of_week"] for d in schedule if d["is_enabled"]],
        )
        return availability

    def _validate_schedule(self, days: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        seen = sorted(int(day["day_of_week"]) for day in days)
        if seen != list(range(7)):
            raise ValidationException(
                "Schedule must contain each day of the week exactly once",
                code="INVALID_SCHEDULE",
                details={"days": seen},
            )

        normalized = []
        for day in sorted(days, key=lambda d: int(d["day_of_week"])):
            index = int(day["day_of_week"])
            blocks = [{"start": b["start"], "end": b["end"]} for b in day.get("time_blocks") or []]
            spans = _block_minutes(blocks)
            for start, end in spans:
                if start >= end:
                    raise ValidationException(
                        f"Time block must end after it starts on {DAYS_OF_WEEK[index]}",
                        code="INVALID_TIME_BLOCK",
                        details={"day_of_week": index, "start": format_hhmm(time_from_minutes(start))},
                    )
            for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
                if next_start < prev_end:
                    raise ValidationException(
                        f"Time blocks overlap on {DAYS_OF_WEEK[index]}",
                        code="OVERLAPPING_TIME_BLOCKS",
                        details={"day_of_week": index},
                    )
            is_enabled = bool(day.get("is_enabled")) and bool(blocks)
            normalized.append(
                {
                    "day_of_week": index,
                    "day_name": DAYS_OF_WEEK[index],
                    "is_enabled": is_enabled,
                    "time_blocks": sorted(blocks, key=lambda b: b["start"]),
                }
            )
        return normalized

    def get_capacity(self, partner_id: str) -> PartnerCapacity:
        """The stored capacity, or an unsaved default one."""
        self._require_partner(partner_id)
        capacity = self.capacity_repository.get_for_partner(partner_id)
        if capacity is not None:
            return capacity
        return PartnerCapacity(
            partner_id=partner_id,
            bays=deepcopy(DEFAULT_BAYS),
            capacity_by_category=dict(DEFAULT_CAPACITY_BY_CATEGORY),
            buffer_time_minutes=settings.default_buffer_minutes,
        )

    @BaseService.measure_operation("update_capacity")
    def update_capacity(self, partner_id: str, update: PartnerCapacityUpdate) -> PartnerCapacity:
        self._require_partner(partner_id)
        bays = None
        if update.bays is not None:
            bays = [bay.model_dump() for bay in update.bays]
            bay_ids = [bay["id"] for bay in bays]
            if len(set(bay_ids)) != len(bay_ids):
                raise ValidationException("Bay ids must be unique", code="DUPLICATE_BAY")

        by_category = None
        if update.capacity_by_category is not None:
            by_category = {c.value: 0 for c in ServiceCategory}
            for key, value in update.capacity_by_category.items():
                if value < 0:
                    raise ValidationException(
                        "Capacity cannot be negative",
                        code="INVALID_CAPACITY",
                        details={"service_category": _category_key(key)},
                    )
                by_category[_category_key(key)] = int(value)

        with self.transaction():
            capacity = self.capacity_repository.get_or_create(partner_id)
            if bays is not None:
                capacity.bays = bays
            if by_category is not None:
                capacity.capacity_by_category = by_category
            if update.buffer_time_minutes is not None:
                capacity.buffer_time_minutes = update.buffer_time_minutes
            self.db.flush()

        self.log_operation(
            "update_capacity",
            partner_id=partner_id,
            capacity_by_category=capacity.capacity_by_category,
        )
        return capacity

    # ------------------------------------------------------------------
    # Window resolution
    # ------------------------------------------------------------------

    def _buffer_minutes(self, availability: PartnerAvailability, capacity: PartnerCapacity) -> int:
        for value in (availability.buffer_time_minutes, capacity.buffer_time_minutes):
            if value is not None:
                return int(value)
        return settings.default_buffer_minutes

    def booking_horizon(self, availability: PartnerAvailability) -> int:
        """Days ahead a partner can be booked: the smaller of its own and the platform limit."""
        rules = self.config_service.get_booking_rules()
        return min(
            int(availability.max_advance_booking_days or rules.max_advance_booking_days),
            rules.max_advance_booking_days,
        )

    def _booking_window(self, slot_date: date, now: datetime, availability: PartnerAvailability) -> Optional[str]:
        """Reason the date cannot be booked at all, or None."""
        today = business_today(now)
        horizon = self.booking_horizon(availability)
        if slot_date < today:
            return "Date is in the past"
        if slot_date > today + timedelta(days=horizon):
            return f"Bookings open at most {horizon} days in advance"
        return None

    @staticmethod
    def _overlapping(
        bookings: Sequence[SlotBooking], start: int, end: int, buffer: int
    ) -> List[SlotBooking]:
        hits = []
        for booking in bookings:
            b_start = minutes_of(booking.start_time)
            b_end = b_start + int(booking.duration_minutes)
            if start < b_end + buffer and b_start < end:
                hits.append(booking)
        return hits

    @staticmethod
    def _peak_concurrency(
        overlapping: Sequence[SlotBooking], start: int, end: int, buffer: int
    ) -> int:
        """Most bookings (buffer included) held at the same minute inside the window."""
        spans = []
        for booking in overlapping:
            b_start = minutes_of(booking.start_time)
            b_end = b_start + int(booking.duration_minutes) + buffer
            spans.append((max(b_start, start), min(b_end, end)))
        peak = 0
        for point, _ in spans:
            peak = max(peak, sum(1 for s, e in spans if s <= point < e))
        return peak

    @classmethod
    def _remaining(
        cls,
        capacity: PartnerCapacity,
        category: ServiceCategory,
        total: int,
        overlapping: Sequence[SlotBooking],
        start: int,
        end: int,
        buffer: int,
    ) -> int:
        """
        Bookings the window can still take.

        Bounded by the peak number of concurrent holds and, when bays are
        configured, by the bays left free for the whole window.
        """
        remaining = total - cls._peak_concurrency(overlapping, start, end, buffer)
        if capacity.bays:
            taken = {booking.bay_id for booking in overlapping if booking.bay_id}
            free = sum(1 for bay in capacity.active_bays(category.value) if bay["id"] not in taken)
            remaining = min(remaining, free)
        return max(0, remaining)

    @staticmethod
    def _free_bay(
        capacity: PartnerCapacity, category: ServiceCategory, overlapping: Sequence[SlotBooking]
    ) -> Optional[Dict[str, Any]]:
        taken = {booking.bay_id for booking in overlapping if booking.bay_id}
        for bay in capacity.active_bays(category.value):
            if bay["id"] not in taken:
                return bay
        return None

    @BaseService.measure_operation("get_available_windows")
    def get_available_windows(
        self,
        partner_id: str,
        slot_date: date,
        category: Optional[ServiceCategory | str] = None,
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AvailableWindows:
        """
        Resolve bookable windows for a partner, date and service category.

        Returns an empty window list (with a message) when the weekday is
        disabled, the category has no capacity, or the date is outside the
        booking horizon.
        """
        category_enum = _coerce_category(category)
        duration = self._validate_duration(duration_minutes)
        current = now or utc_now()

        availability = self.get_weekly_availability(partner_id)
        capacity = self.get_capacity(partner_id)
        result = AvailableWindows(
            partner_id=partner_id,
            slot_date=slot_date,
            service_category=category_enum,
            duration_minutes=duration,
            capacity={
                c.value: int((capacity.capacity_by_category or {}).get(c.value, 0) or 0)
                for c in ServiceCategory
            },
        )

        day = availability.day(day_of_week(slot_date))
        if not day.get("is_enabled") or not day.get("time_blocks"):
            result.message = f"Partner is closed on {DAYS_OF_WEEK[day_of_week(slot_date)]}"
            return result

        total = effective_capacity(capacity, category_enum)
        if total <= 0:
            result.message = f"Partner does not offer {category_enum.value} services"
            return result

        reason = self._booking_window(slot_date, current, availability)
        if reason:
            result.message = reason
            return result

        rules = self.config_service.get_booking_rules()
        earliest = current + timedelta(hours=rules.min_advance_booking_hours)
        buffer = self._buffer_minutes(availability, capacity)
        bookings = self.booking_repository.get_active_for_day(partner_id, slot_date, category_enum)
        step = settings.slot_step_minutes

        for block_start, block_end in _block_minutes(day["time_blocks"]):
            start = block_start
            while start + duration <= block_end and start + duration < MINUTES_PER_DAY:
                start_time = time_from_minutes(start)
                if localize_slot(slot_date, start_time) >= earliest:
                    overlapping = self._overlapping(bookings, start, start + duration, buffer)
                    remaining = self._remaining(
                        capacity, category_enum, total, overlapping, start, start + duration, buffer
                    )
                    if remaining > 0:
                        bay = self._free_bay(capacity, category_enum, overlapping)
                        result.windows.append(
                            AvailableWindow(
                                start_time=start_time,
                                end_time=time_from_minutes(start + duration),
                                remaining_capacity=remaining,
                                total_capacity=total,
                                bay_id=bay["id"] if bay else None,
                                bay_name=bay["name"] if bay else None,
                            )
                        )
                start += step

        if not result.windows:
            result.message = "No availability for this date"
        return result

    def _validate_duration(self, duration_minutes: Optional[int]) -> int:
        duration = duration_minutes or settings.default_slot_duration_minutes
        if duration < MIN_SLOT_DURATION_MINUTES or duration > MAX_SLOT_DURATION_MINUTES:
            raise ValidationException(
                f"Duration must be between {MIN_SLOT_DURATION_MINUTES} and "
                f"{MAX_SLOT_DURATION_MINUTES} minutes",
                code="INVALID_DURATION",
                details={"duration_minutes": duration},
            )
        return duration

    def check_window(
        self,
        partner_id: str,
        slot_date: date,
        start_time: time,
        duration_minutes: int,
        category: ServiceCategory,
        *,
        capacity: PartnerCapacity,
        exclude_booking_id: Optional[str] = None,
    ) -> WindowCheck:
        """
        Verify a concrete window can take one more booking.

        Must be called while holding the capacity lock for
        (partner, date, category) so the count cannot change underneath.

        Raises:
            SlotUnavailableException: window outside working hours
            CapacityExceededException: window full for the category
        """
        availability = self.get_weekly_availability(partner_id)
        start_label = format_hhmm(start_time)
        start = minutes_of(start_time)
        end = start + duration_minutes

        day = availability.day(day_of_week(slot_date))
        if not day.get("is_enabled"):
            raise SlotUnavailableException(
                slot_date, start_label, f"Partner is closed on {DAYS_OF_WEEK[day_of_week(slot_date)]}"
            )
        block = next(
            (
                (block_start, block_end)
                for block_start, block_end in _block_minutes(day.get("time_blocks") or [])
                if block_start <= start and end <= block_end
            ),
            None,
        )
        if block is None:
            raise SlotUnavailableException(
                slot_date, start_label, "Requested time is outside the partner's working hours"
            )
        # Windows step from the start of the block that holds them
        if (start - block[0]) % settings.slot_step_minutes:
            raise SlotUnavailableException(
                slot_date,
                start_label,
                f"Start time must be on a {settings.slot_step_minutes}-minute boundary",
            )

        total = effective_capacity(capacity, category)
        bookings = self.booking_repository.get_active_for_day(
            partner_id, slot_date, category, exclude_booking_id=exclude_booking_id
        )
        buffer = self._buffer_minutes(availability, capacity)
        overlapping = self._overlapping(bookings, start, end, buffer)
        remaining = self._remaining(capacity, category, total, overlapping, start, end, buffer)
        if remaining <= 0:
            prometheus_metrics.record_capacity_rejection(category.value)
            self.logger.info(
                "capacity_exceeded",
                extra={
                    "partner_id": partner_id,
                    "slot_date": slot_date.isoformat(),
                    "start_time": start_label,
                    "service_category": category.value,
                    "capacity": total,
                    "overlapping": len(overlapping),
                },
            )
            raise CapacityExceededException(
                partner_id=partner_id,
                slot_date=slot_date,
                start_time=start_label,
                category=category.value,
                capacity=total,
            )

        bay = self._free_bay(capacity, category, overlapping)
        return WindowCheck(
            start_time=start_time,
            end_time=time_from_minutes(end),
            total_capacity=total,
            remaining_capacity=remaining,
            bay_id=bay["id"] if bay else None,
            bay_name=bay["name"] if bay else None,
        )
