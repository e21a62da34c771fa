# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Services are
per-request because they hold the request's database session.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.admin_booking_service import AdminBookingService
from ...services.availability_service import AvailabilityService
from ...services.config_service import ConfigService
from ...services.pricing_service import PricingService
from ...services.product_order_service import ProductOrderService
from ...services.product_service import ProductService
from ...services.slot_booking_service import SlotBookingService
from ...database import get_db

logger = logging.getLogger(__name__)


def get_config_service(db: Session = Depends(get_db)) -> ConfigService:
    return ConfigService(db)


def get_availability_service(
    db: Session = Depends(get_db),
    config_service: ConfigService = Depends(get_config_service),
) -> AvailabilityService:
    return AvailabilityService(db, config_service=config_service)


def get_pricing_service(
    db: Session = Depends(get_db),
    config_service: ConfigService = Depends(get_config_service),
) -> PricingService:
    return PricingService(db, config_service=config_service)


def get_slot_booking_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
    pricing_service: PricingService = Depends(get_pricing_service),
    config_service: ConfigService = Depends(get_config_service),
) -> SlotBookingService:
    """
    Get slot booking service instance with all dependencies.

    Returns:
        SlotBookingService sharing the request session with its collaborators
    """
    return SlotBookingService(
        db,
        availability_service=availability_service,
        pricing_service=pricing_service,
        config_service=config_service,
    )


def get_admin_booking_service(
    db: Session = Depends(get_db),
    slot_booking_service: SlotBookingService = Depends(get_slot_booking_service),
) -> AdminBookingService:
    return AdminBookingService(db, slot_booking_service=slot_booking_service)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db)


def get_product_order_service(db: Session = Depends(get_db)) -> ProductOrderService:
    return ProductOrderService(db)
