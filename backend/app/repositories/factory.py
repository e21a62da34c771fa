# backend/app/repositories/factory.py
"""
Repository Factory for the Plindo platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository, CapacityRepository
    from .partner_repository import (
        CustomerRepository,
        PartnerRepository,
        PartnerServiceRepository,
    )
    from .platform_config_repository import PlatformConfigRepository
    from .product_repository import ProductOrderRepository, ProductRepository
    from .slot_booking_repository import SlotBookingRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations in tests.
    """

    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_partner_repository(db: Session) -> "PartnerRepository":
        from .partner_repository import PartnerRepository

        return PartnerRepository(db)

    @staticmethod
    def create_customer_repository(db: Session) -> "CustomerRepository":
        from .partner_repository import CustomerRepository

        return CustomerRepository(db)

    @staticmethod
    def create_partner_service_repository(db: Session) -> "PartnerServiceRepository":
        from .partner_repository import PartnerServiceRepository

        return PartnerServiceRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for weekly schedule operations."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_capacity_repository(db: Session) -> "CapacityRepository":
        """Create repository for bay capacity operations."""
        from .availability_repository import CapacityRepository

        return CapacityRepository(db)

    @staticmethod
    def create_slot_booking_repository(db: Session) -> "SlotBookingRepository":
        from .slot_booking_repository import SlotBookingRepository

        return SlotBookingRepository(db)

    @staticmethod
    def create_product_repository(db: Session) -> "ProductRepository":
        from .product_repository import ProductRepository

        return ProductRepository(db)

    @staticmethod
    def create_product_order_repository(db: Session) -> "ProductOrderRepository":
        from .product_repository import ProductOrderRepository

        return ProductOrderRepository(db)

    @staticmethod
    def create_platform_config_repository(db: Session) -> "PlatformConfigRepository":
        from .platform_config_repository import PlatformConfigRepository

        return PlatformConfigRepository(db)
