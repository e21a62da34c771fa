# backend/app/routes/v1/availability.py
"""
Partner availability routes - API v1

Endpoints:
    GET /partner/availability/weekly - Weekly working hours
    PUT /partner/availability/weekly - Replace weekly working hours
    GET /partner/capacity - Bays and per-category capacity
    PUT /partner/capacity - Update bays and capacity
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import (
    get_availability_service,
    get_principal,
    require_partner,
    resolve_partner_id,
)
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.availability import (
    PartnerCapacityResponse,
    PartnerCapacityUpdate,
    WeeklyAvailabilityResponse,
    WeeklyAvailabilityUpdate,
)
from ...schemas.base_responses import ApiResponse, ok
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner", tags=["partner-availability"])


def _reader_partner_id(principal: Principal, partner_id: Optional[str]) -> str:
    """Anyone may read a partner's schedule; partners default to their own."""
    if partner_id:
        return partner_id
    return resolve_partner_id(principal, None)


@router.get("/availability/weekly", response_model=ApiResponse[WeeklyAvailabilityResponse])
async def get_weekly_availability(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    try:
        target = _reader_partner_id(principal, partner_id)
        availability = await asyncio.to_thread(service.get_weekly_availability, target)
        return ok(WeeklyAvailabilityResponse.model_validate(availability))
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/availability/weekly", response_model=ApiResponse[WeeklyAvailabilityResponse])
async def update_weekly_availability(
    payload: WeeklyAvailabilityUpdate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        availability = await asyncio.to_thread(
            service.update_weekly_availability, target, payload
        )
        return ok(
            WeeklyAvailabilityResponse.model_validate(availability),
            message="Availability updated",
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/capacity", response_model=ApiResponse[PartnerCapacityResponse])
async def get_capacity(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    try:
        target = _reader_partner_id(principal, partner_id)
        capacity = await asyncio.to_thread(service.get_capacity, target)
        return ok(PartnerCapacityResponse.model_validate(capacity))
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/capacity", response_model=ApiResponse[PartnerCapacityResponse])
async def update_capacity(
    payload: PartnerCapacityUpdate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        capacity = await asyncio.to_thread(service.update_capacity, target, payload)
        return ok(PartnerCapacityResponse.model_validate(capacity), message="Capacity updated")
    except DomainException as e:
        handle_domain_exception(e)
