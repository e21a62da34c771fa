"""ULID and human-readable reference generation helpers."""

from datetime import datetime
import secrets
from typing import Optional

import ulid

from .constants import BOOKING_NUMBER_PREFIX, PRODUCT_ORDER_NUMBER_PREFIX

_REFERENCE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ulid.ULID())


def parse_ulid(ulid_str: str) -> Optional[ulid.ULID]:
    """Parse and validate a ULID string."""
    try:
        return ulid.ULID.from_str(ulid_str)
    except (ValueError, TypeError):
        return None


def is_valid_ulid(ulid_str: str) -> bool:
    """Check if a string is a valid ULID."""
    return parse_ulid(ulid_str) is not None


def _reference(prefix: str, when: datetime) -> str:
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"{prefix}-{when:%Y%m}-{suffix}"


def generate_booking_number(when: datetime) -> str:
    """Booking reference shown to customers, e.g. ``BK-202610-7KQ2ZD``."""
    return _reference(BOOKING_NUMBER_PREFIX, when)


def generate_order_number(when: datetime) -> str:
    return _reference(PRODUCT_ORDER_NUMBER_PREFIX, when)
