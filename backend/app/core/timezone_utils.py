"""
Timezone utilities for the Plindo platform.

Slot dates and times are stored as wall-clock values in the business
timezone; instants (timeline entries, audit timestamps) are stored in UTC.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

import pytz

from .config import settings
from .exceptions import FormatValidationException


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_business_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.business_timezone)


def business_now(now: Optional[datetime] = None) -> datetime:
    """Current time in the business timezone."""
    current = ensure_utc(now) or utc_now()
    return current.astimezone(get_business_timezone())


def business_today(now: Optional[datetime] = None) -> date:
    return business_now(now).date()


def localize_slot(slot_date: date, slot_time: time) -> datetime:
    """
    Convert a wall-clock slot start into an aware UTC datetime.

    Args:
        slot_date: Calendar date of the slot
        slot_time: Wall-clock time in the business timezone

    Returns:
        The same instant in UTC
    """
    tz = get_business_timezone()
    local = tz.localize(datetime.combine(slot_date, slot_time))
    return local.astimezone(timezone.utc)


def parse_hhmm(value: str, field: str = "time") -> time:
    """
    Parse a 24h ``HH:MM`` wall-clock string.

    Raises:
        FormatValidationException: If the value is not a valid ``HH:MM`` time
    """
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError) as exc:
        raise FormatValidationException(
            f"{field} must be in HH:MM format",
            code="INVALID_TIME_FORMAT",
            details={"field": field, "value": value},
        ) from exc
    return parsed


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(total_minutes: int) -> time:
    return time(hour=total_minutes // 60, minute=total_minutes % 60)
