"""Application-wide constants for the Plindo platform."""

from __future__ import annotations

from decimal import Decimal

BRAND_NAME = "Plindo"

# Identifier prefixes
BOOKING_NUMBER_PREFIX = "BK"
PRODUCT_ORDER_NUMBER_PREFIX = "PO"

# Slot generation
SLOT_STEP_MINUTES = 15
DEFAULT_SLOT_DURATION_MINUTES = 30
DEFAULT_BUFFER_MINUTES = 15
MIN_SLOT_DURATION_MINUTES = 15
MAX_SLOT_DURATION_MINUTES = 480

# Booking rules
MIN_ADVANCE_BOOKING_HOURS = 2
MAX_ADVANCE_BOOKING_DAYS = 14
CANCELLATION_WINDOW_HOURS = 24
MAX_RESCHEDULES = 2

# Commission
DEFAULT_CUSTOMER_COMMISSION_PCT = Decimal("5")
DEFAULT_PARTNER_COMMISSION_PCT = Decimal("10")
DEFAULT_MINIMUM_PAYOUT = Decimal("50")

# Query limits
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Text constraints
MAX_REASON_LENGTH = 500
MAX_NOTE_LENGTH = 1000

# Day of week mapping (0 = Sunday)
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Default weekly schedule used when a partner has not configured one
DEFAULT_WEEKLY_SCHEDULE = [
    {"day_of_week": 0, "day_name": "Sunday", "is_enabled": False, "time_blocks": []},
    {
        "day_of_week": 1,
        "day_name": "Monday",
        "is_enabled": True,
        "time_blocks": [{"start": "08:00", "end": "18:00"}],
    },
    {
        "day_of_week": 2,
        "day_name": "Tuesday",
        "is_enabled": True,
        "time_blocks": [{"start": "08:00", "end": "18:00"}],
    },
    {
        "day_of_week": 3,
        "day_name": "Wednesday",
        "is_enabled": True,
        "time_blocks": [{"start": "08:00", "end": "18:00"}],
    },
    {
        "day_of_week": 4,
        "day_name": "Thursday",
        "is_enabled": True,
        "time_blocks": [{"start": "08:00", "end": "18:00"}],
    },
    {
        "day_of_week": 5,
        "day_name": "Friday",
        "is_enabled": True,
        "time_blocks": [{"start": "08:00", "end": "18:00"}],
    },
    {
        "day_of_week": 6,
        "day_name": "Saturday",
        "is_enabled": True,
        "time_blocks": [{"start": "09:00", "end": "14:00"}],
    },
]

# Default bays and per-category capacity
DEFAULT_BAYS = [
    {"id": "bay-w1", "name": "Wash Bay 1", "service_category": "wash", "is_active": True},
    {"id": "bay-w2", "name": "Wash Bay 2", "service_category": "wash", "is_active": True},
    {"id": "bay-w3", "name": "Wash Bay 3", "service_category": "wash", "is_active": True},
    {"id": "bay-d1", "name": "Detail Bay 1", "service_category": "detailing", "is_active": True},
]
DEFAULT_CAPACITY_BY_CATEGORY = {"wash": 3, "detailing": 1, "other": 0}

# Vehicle size pricing
CAR_TYPE_MULTIPLIERS = {
    "compact": Decimal("1.0"),
    "sedan": Decimal("1.2"),
    "suv": Decimal("1.4"),
    "van": Decimal("1.6"),
    "luxury": Decimal("1.8"),
}

# Headers carrying caller identity
ACTOR_ROLE_HEADER = "X-Actor-Role"
ACTOR_ID_HEADER = "X-Actor-Id"
REQUEST_ID_HEADER = "X-Request-ID"
