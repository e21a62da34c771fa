# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the Plindo platform

This package provides the repository layer for data access,
separating business logic from database queries.

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_slot_booking_repository(db)
    bookings = repository.get_active_for_day(partner_id, slot_date, category)
"""

from .availability_repository import AvailabilityRepository, CapacityRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .partner_repository import CustomerRepository, PartnerRepository, PartnerServiceRepository
from .platform_config_repository import PlatformConfigRepository
from .product_repository import ProductOrderRepository, ProductRepository
from .slot_booking_repository import SlotBookingFilters, SlotBookingRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "CapacityRepository",
    "CustomerRepository",
    "PartnerRepository",
    "PartnerServiceRepository",
    "PlatformConfigRepository",
    "ProductOrderRepository",
    "ProductRepository",
    "RepositoryFactory",
    "SlotBookingFilters",
    "SlotBookingRepository",
]
