# backend/app/routes/v1/slot_bookings.py
"""
Slot booking routes - API v1

All business logic delegated to SlotBookingService.

Endpoints:
    GET /bookings/slots - Bookable windows for a partner, date and category
    POST /bookings/slot - Create a slot booking
    GET /bookings/slot/{booking_id} - Slot booking details
    POST /bookings/calculate-price - Price and commission quote
    PATCH /bookings/{booking_id} - Advance booking status
    PATCH /bookings/{booking_id}/status - Advance booking status
    POST /bookings/{booking_id}/reschedule - Move to another window
    POST /bookings/{booking_id}/cancel - Cancel a booking
"""

import asyncio
from datetime import date
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_optional_principal,
    get_pricing_service,
    get_principal,
    get_slot_booking_service,
    require_partner,
)
from ...core.enums import ServiceCategory
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...core.timezone_utils import format_hhmm
from ...errors import handle_domain_exception
from ...schemas.availability import AvailableWindowResponse, AvailableWindowsResponse
from ...schemas.base_responses import ApiResponse, ok
from ...schemas.slot_booking import (
    PriceCalculationRequest,
    PriceQuoteResponse,
    SlotBookingCancel,
    SlotBookingCreate,
    SlotBookingReschedule,
    SlotBookingResponse,
    SlotBookingStatusUpdate,
)
from ...services.availability_service import AvailabilityService, AvailableWindows
from ...services.pricing_service import PriceQuote, PricingService
from ...services.slot_booking_service import SlotBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["slot-bookings"])


def _windows_response(result: AvailableWindows) -> AvailableWindowsResponse:
    return AvailableWindowsResponse(
        partner_id=result.partner_id,
        slot_date=result.slot_date,
        service_category=result.service_category,
        duration_minutes=result.duration_minutes,
        windows=[
            AvailableWindowResponse(
                start_time=format_hhmm(window.start_time),
                end_time=format_hhmm(window.end_time),
                remaining_capacity=window.remaining_capacity,
                total_capacity=window.total_capacity,
                bay_id=window.bay_id,
                bay_name=window.bay_name,
            )
            for window in result.windows
        ],
        capacity=result.capacity,
        message=result.message,
    )


def _quote_response(service_id: str, quote: PriceQuote) -> PriceQuoteResponse:
    commission = quote.commission
    return PriceQuoteResponse(
        service_id=service_id,
        base_price=quote.base_price,
        car_type=quote.car_type,
        car_type_multiplier=quote.car_type_multiplier,
        subscription_discount=quote.subscription_discount,
        gross_amount=quote.gross_amount,
        customer_commission_pct=commission.customer_commission_pct,
        partner_commission_pct=commission.partner_commission_pct,
        customer_charge=commission.customer_charge,
        platform_fee=commission.platform_revenue,
        partner_payout=commission.partner_payout,
    )


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.get("/slots", response_model=ApiResponse[AvailableWindowsResponse])
async def get_available_slots(
    partner_id: str = Query(..., alias="partnerId", min_length=1),
    slot_date: date = Query(..., alias="date"),
    service_category: Optional[ServiceCategory] = Query(None, alias="serviceCategory"),
    duration: Optional[int] = Query(None, ge=1),
    service: AvailabilityService = Depends(get_availability_service),
) -> dict:
    """Bookable windows; fully booked windows are left out."""
    try:
        result = await asyncio.to_thread(
            service.get_available_windows, partner_id, slot_date, service_category, duration
        )
        return ok(_windows_response(result), message=result.message or "")
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/slot",
    response_model=ApiResponse[SlotBookingResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_slot_booking(
    payload: SlotBookingCreate,
    principal: Principal = Depends(get_principal),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    """
    Book a window.

    Answers 409 with envelope status 10008 when the window filled up in
    the meantime; clients should refresh availability.
    """
    try:
        booking = await asyncio.to_thread(service.create_booking, payload, principal)
        return ok(SlotBookingResponse.from_model(booking), message="Booking created")
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/slot/{booking_id}", response_model=ApiResponse[SlotBookingResponse])
async def get_slot_booking(
    booking_id: str,
    principal: Principal = Depends(get_principal),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        booking = await asyncio.to_thread(service.get_booking, booking_id, principal)
        return ok(SlotBookingResponse.from_model(booking))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/calculate-price", response_model=ApiResponse[PriceQuoteResponse])
async def calculate_price(
    payload: PriceCalculationRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PricingService = Depends(get_pricing_service),
) -> dict:
    customer_id = payload.customer_id
    if customer_id is None and principal is not None and principal.is_customer:
        customer_id = principal.actor_id
    try:
        quote = await asyncio.to_thread(
            service.calculate_price, payload.service_id, payload.car_type, customer_id
        )
        return ok(_quote_response(payload.service_id, quote))
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Booking-specific routes
# ============================================================================


@router.patch("/{booking_id}", response_model=ApiResponse[SlotBookingResponse])
@router.patch("/{booking_id}/status", response_model=ApiResponse[SlotBookingResponse])
async def update_booking_status(
    booking_id: str,
    payload: SlotBookingStatusUpdate,
    principal: Principal = Depends(require_partner),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        booking = await asyncio.to_thread(
            service.update_status, booking_id, payload.status, principal, payload.note
        )
        return ok(SlotBookingResponse.from_model(booking), message="Status updated")
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reschedule", response_model=ApiResponse[SlotBookingResponse])
async def reschedule_booking(
    booking_id: str,
    payload: SlotBookingReschedule,
    principal: Principal = Depends(get_principal),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        booking = await asyncio.to_thread(
            service.reschedule_booking, booking_id, payload, principal
        )
        return ok(SlotBookingResponse.from_model(booking), message="Booking rescheduled")
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=ApiResponse[SlotBookingResponse])
async def cancel_booking(
    booking_id: str,
    payload: Optional[SlotBookingCancel] = Body(default=None),
    principal: Principal = Depends(get_principal),
    service: SlotBookingService = Depends(get_slot_booking_service),
) -> dict:
    try:
        booking = await asyncio.to_thread(
            service.cancel_booking, booking_id, principal, payload.reason if payload else None
        )
        return ok(SlotBookingResponse.from_model(booking), message="Booking cancelled")
    except DomainException as e:
        handle_domain_exception(e)
