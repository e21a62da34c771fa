# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_optional_principal,
    get_principal,
    require_admin,
    require_customer,
    require_partner,
    require_roles,
    resolve_partner_id,
)
from ...database import get_db
from .services import (
    get_admin_booking_service,
    get_availability_service,
    get_config_service,
    get_pricing_service,
    get_product_order_service,
    get_product_service,
    get_slot_booking_service,
)

__all__ = [
    # Auth
    "get_optional_principal",
    "get_principal",
    "require_admin",
    "require_customer",
    "require_partner",
    "require_roles",
    "resolve_partner_id",
    # Database
    "get_db",
    # Services
    "get_admin_booking_service",
    "get_availability_service",
    "get_config_service",
    "get_pricing_service",
    "get_product_order_service",
    "get_product_service",
    "get_slot_booking_service",
]
