"""
Database models for the Plindo platform.

The models are organized by functionality:
- Partners, their services, and customers
- Partner availability and bay capacity
- Slot bookings with their status timeline, payment and dispute satellites
- Product catalogue and product orders
- Platform configuration (commission and booking rules)
"""

from .availability import PartnerAvailability, PartnerCapacity
from .booking_dispute import BookingDispute
from .booking_payment import BookingPayment
from .partner import Customer, Partner, PartnerService
from .platform_config import PlatformConfig
from .product import Product, ProductOrder, ProductOrderItem
from .slot_booking import BookingStatusEvent, SlotBooking

__all__ = [
    "BookingDispute",
    "BookingPayment",
    "BookingStatusEvent",
    "Customer",
    "Partner",
    "PartnerAvailability",
    "PartnerCapacity",
    "PartnerService",
    "PlatformConfig",
    "Product",
    "ProductOrder",
    "ProductOrderItem",
    "SlotBooking",
]
