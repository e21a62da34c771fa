# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints mounted under ``settings.api_prefix``.
All new endpoints should be added here.
"""

from . import (
    admin_bookings,
    availability,
    partner_bookings,
    product_orders,
    products,
    settings,
    slot_bookings,
)

ROUTERS = (
    availability.router,
    slot_bookings.router,
    admin_bookings.actions_router,
    admin_bookings.router,
    partner_bookings.router,
    products.router,
    product_orders.router,
    settings.router,
)

__all__ = [
    "ROUTERS",
    "admin_bookings",
    "availability",
    "partner_bookings",
    "product_orders",
    "products",
    "settings",
    "slot_bookings",
]
