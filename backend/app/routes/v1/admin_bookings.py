# backend/app/routes/v1/admin_bookings.py
"""
Admin booking routes - API v1

Two routers share AdminBookingService:

``router`` (/admin/bookings):
    GET / - Filtered booking list (admin projection)
    GET /disputes - Bookings with disputes
    GET /{booking_id} - Booking detail

``actions_router`` (/bookings):
    POST /{booking_id}/refund - Refund part or all of the charge (admin)
    POST /{booking_id}/dispute - Raise a dispute (customer)
    POST /{booking_id}/dispute/response - Partner response to a dispute
    POST /{booking_id}/resolve-dispute - Close a dispute (admin)
    POST /{booking_id}/rating - Rate a finished booking (customer)
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import (
    get_admin_booking_service,
    get_principal,
    require_admin,
    require_customer,
    require_partner,
)
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import BookingStatus, DisputeStatus, ServiceCategory
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.admin_booking import (
    AdminBookingResponse,
    DisputeCreate,
    DisputeResolveRequest,
    DisputeResponseRequest,
    RatingCreate,
    RefundRequest,
)
from ...schemas.base_responses import ApiResponse, PaginatedResponse, ok
from ...services.admin_booking_service import AdminBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bookings", tags=["admin-bookings"])
actions_router = APIRouter(prefix="/bookings", tags=["booking-actions"])


@router.get("", response_model=ApiResponse[PaginatedResponse[AdminBookingResponse]])
async def list_admin_bookings(
    search: Optional[str] = Query(None, max_length=100),
    booking_status: Optional[List[BookingStatus]] = Query(None, alias="status"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    service_category: Optional[ServiceCategory] = Query(None, alias="serviceCategory"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: Principal = Depends(require_admin),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        items, total = await asyncio.to_thread(
            lambda: service.list_bookings(
                search=search,
                statuses=booking_status,
                partner_id=partner_id,
                customer_id=customer_id,
                date_from=date_from,
                date_to=date_to,
                service_category=service_category,
                page=page,
                limit=limit,
            )
        )
        return ok(PaginatedResponse.build(items, total, page, limit))
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/disputes", response_model=ApiResponse[PaginatedResponse[AdminBookingResponse]]
)
async def list_disputes(
    dispute_status: Optional[DisputeStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: Principal = Depends(require_admin),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        items, total = await asyncio.to_thread(
            service.list_disputes, dispute_status, page, limit
        )
        return ok(PaginatedResponse.build(items, total, page, limit))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}", response_model=ApiResponse[AdminBookingResponse])
async def get_admin_booking(
    booking_id: str,
    _: Principal = Depends(require_admin),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        return ok(await asyncio.to_thread(service.get_booking, booking_id))
    except DomainException as e:
        handle_domain_exception(e)


@actions_router.post("/{booking_id}/refund", response_model=ApiResponse[AdminBookingResponse])
async def refund_booking(
    booking_id: str,
    payload: RefundRequest,
    _: Principal = Depends(require_admin),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        view = await asyncio.to_thread(service.refund_booking, booking_id, payload)
        return ok(view, message="Refund recorded")
    except DomainException as e:
        handle_domain_exception(e)


@actions_router.post("/{booking_id}/dispute", response_model=ApiResponse[AdminBookingResponse])
async def raise_dispute(
    booking_id: str,
    payload: DisputeCreate,
    principal: Principal = Depends(require_customer),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        view = await asyncio.to_thread(service.raise_dispute, booking_id, payload, principal)
        return ok(view, message="Dispute raised")
    except DomainException as e:
        handle_domain_exception(e)


@actions_router.post(
    "/{booking_id}/dispute/response", response_model=ApiResponse[AdminBookingResponse]
)
async def respond_to_dispute(
    booking_id: str,
    payload: DisputeResponseRequest,
    principal: Principal = Depends(require_partner),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        view = await asyncio.to_thread(
            service.respond_to_dispute, booking_id, payload.response, principal
        )
        return ok(view, message="Response recorded")
    except DomainException as e:
        handle_domain_exception(e)


@actions_router.post(
    "/{booking_id}/resolve-dispute", response_model=ApiResponse[AdminBookingResponse]
)
async def resolve_dispute(
    booking_id: str,
    payload: DisputeResolveRequest,
    _: Principal = Depends(require_admin),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        view = await asyncio.to_thread(service.resolve_dispute, booking_id, payload)
        return ok(view, message="Dispute resolved")
    except DomainException as e:
        handle_domain_exception(e)


@actions_router.post("/{booking_id}/rating", response_model=ApiResponse[AdminBookingResponse])
async def rate_booking(
    booking_id: str,
    payload: RatingCreate,
    principal: Principal = Depends(get_principal),
    service: AdminBookingService = Depends(get_admin_booking_service),
) -> dict:
    try:
        view = await asyncio.to_thread(service.rate_booking, booking_id, payload, principal)
        return ok(view, message="Thanks for your rating")
    except DomainException as e:
        handle_domain_exception(e)
