# backend/app/core/enums.py
"""
Core enums for the Plindo platform.

All enums persisted to the database inherit from (str, Enum) so that the
stored value is the lowercase wire value.
"""

from enum import Enum, IntEnum


class ActorRole(str, Enum):
    """Roles a caller can act under."""

    ADMIN = "admin"
    PARTNER = "partner"
    CUSTOMER = "customer"


class ServiceCategory(str, Enum):
    """Capacity category a service is booked against."""

    WASH = "wash"
    DETAILING = "detailing"
    OTHER = "other"


class ServiceType(str, Enum):
    """How the service is delivered."""

    BOOK_ME = "book_me"
    PICK_BY_ME = "pick_by_me"
    WASHING_VAN = "washing_van"


class CarType(str, Enum):
    COMPACT = "compact"
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    LUXURY = "luxury"


class SlotBookingStatus(str, Enum):
    """Fine-grained statuses stored on a slot booking."""

    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PICKED = "picked"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    # Side transition only, never stored as a status
    RESCHEDULED = "rescheduled"


class BookingStatus(str, Enum):
    """Admin-facing booking status projected from the slot booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"
    WALLET = "wallet"


class CancelledBy(str, Enum):
    CUSTOMER = "customer"
    PARTNER = "partner"
    ADMIN = "admin"


class DisputeStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class DisputeResolution(str, Enum):
    REFUND = "refund"
    PARTIAL_REFUND = "partial_refund"
    DISMISS = "dismiss"


class ProductCategory(str, Enum):
    OIL_FLUIDS = "oil_fluids"
    TIRES_WHEELS = "tires_wheels"
    CLEANING = "cleaning"
    ACCESSORIES = "accessories"
    PARTS = "parts"
    OTHER = "other"


class ProductStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    OUT_OF_STOCK = "out_of_stock"


class ProductOrderStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    COLLECTED = "collected"
    CANCELLED = "cancelled"


class PartnerStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class PayoutSchedule(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ErrorCode(IntEnum):
    """Numeric codes carried in the response envelope ``status`` field."""

    SUCCESS = 0
    ERROR = -1
    VALIDATION_FAILED = 10001
    CONFLICT = 10002
    INVALID_STATE = 10003
    INVALID_FORMAT = 10004
    NOT_FOUND = 10005
    UNAUTHORIZED = 10006
    FORBIDDEN = 10007
    CAPACITY_EXCEEDED = 10008
