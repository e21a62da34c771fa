# backend/app/routes/v1/settings.py
"""
Platform settings routes - API v1

Endpoints:
    GET /settings/commission - Commission rates and payout terms
    PUT /settings/commission - Update commission rates (admin)
    GET /settings/booking-rules - Advance booking and cancellation rules
    PUT /settings/booking-rules - Update booking rules (admin)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_config_service, require_admin
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.base_responses import ApiResponse, ok
from ...schemas.platform_config import (
    BookingRules,
    BookingRulesUpdate,
    CommissionSettings,
    CommissionSettingsUpdate,
)
from ...services.config_service import ConfigService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/commission", response_model=ApiResponse[CommissionSettings])
async def get_commission_settings(
    service: ConfigService = Depends(get_config_service),
) -> dict:
    return ok(await asyncio.to_thread(service.get_commission))


@router.put("/commission", response_model=ApiResponse[CommissionSettings])
async def update_commission_settings(
    payload: CommissionSettingsUpdate,
    _: Principal = Depends(require_admin),
    service: ConfigService = Depends(get_config_service),
) -> dict:
    try:
        updated = await asyncio.to_thread(service.update_commission, payload)
        return ok(updated, message="Commission settings updated")
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/booking-rules", response_model=ApiResponse[BookingRules])
async def get_booking_rules(
    service: ConfigService = Depends(get_config_service),
) -> dict:
    return ok(await asyncio.to_thread(service.get_booking_rules))


@router.put("/booking-rules", response_model=ApiResponse[BookingRules])
async def update_booking_rules(
    payload: BookingRulesUpdate,
    _: Principal = Depends(require_admin),
    service: ConfigService = Depends(get_config_service),
) -> dict:
    try:
        updated = await asyncio.to_thread(service.update_booking_rules, payload)
        return ok(updated, message="Booking rules updated")
    except DomainException as e:
        handle_domain_exception(e)
