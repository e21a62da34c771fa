# backend/app/routes/v1/partner_bookings.py
"""
Partner booking routes - API v1

Endpoints:
    GET /partner/bookings - Partner's slot bookings, filtered and paginated
    GET /partner/bookings/timeline - One week of bookings grouped per day
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_slot_booking_service, require_partner, resolve_partner_id
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ServiceCategory, SlotBookingStatus
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.base_responses import ApiResponse, PaginatedResponse, ok
from ...schemas.slot_booking import PartnerWeekTimeline, SlotBookingResponse
from ...services.slot_booking_service import SlotBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner/bookings", tags=["partner-bookings"])


@router.get("", response_model=ApiResponse[PaginatedResponse[SlotBookingResponse]])
async def list_partner_bookings(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    booking_status: Optional[List[SlotBookingStatus]] = Query(None, alias="status"),
    service_category: Optional[ServiceCategory] = Query(None, alias="serviceCategory"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    principal: Principal = Depends(require_partner),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        bookings, total = await asyncio.to_thread(
            lambda: service.list_partner_bookings(
                target,
                principal,
                start_date=start_date,
                end_date=end_date,
                statuses=booking_status,
                service_category=service_category,
                page=page,
                limit=limit,
            )
        )
        items = [SlotBookingResponse.from_model(b) for b in bookings]
        return ok(PaginatedResponse.build(items, total, page, limit))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/timeline", response_model=ApiResponse[PartnerWeekTimeline])
async def get_week_timeline(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    week_start: Optional[date] = Query(None, alias="weekStart"),
    principal: Principal = Depends(require_partner),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        timeline = await asyncio.to_thread(
            service.get_week_timeline, target, principal, week_start
        )
        days = [
            {**day, "bookings": [SlotBookingResponse.from_model(b) for b in day["bookings"]]}
            for day in timeline["days"]
        ]
        return ok(PartnerWeekTimeline(**{**timeline, "days": days}))
    except DomainException as e:
        handle_domain_exception(e)
