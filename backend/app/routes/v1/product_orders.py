# backend/app/routes/v1/product_orders.py
"""
Partner product order routes - API v1

Endpoints:
    GET /partner/product-orders - List orders
    POST /partner/product-orders - Place an order
    GET /partner/product-orders/{order_id} - Order detail
    PATCH /partner/product-orders/{order_id}/status - Mark ready / collected
    POST /partner/product-orders/{order_id}/cancel - Cancel and restock
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_product_order_service, require_partner, resolve_partner_id
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ProductOrderStatus
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.base_responses import ApiResponse, PaginatedResponse, ok
from ...schemas.product import (
    ProductOrderCancel,
    ProductOrderCreate,
    ProductOrderResponse,
    ProductOrderStatusUpdate,
)
from ...services.product_order_service import ProductOrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner/product-orders", tags=["partner-product-orders"])


@router.get("", response_model=ApiResponse[PaginatedResponse[ProductOrderResponse]])
async def list_product_orders(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    order_status: Optional[ProductOrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    principal: Principal = Depends(require_partner),
    service: ProductOrderService = Depends(get_product_order_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        orders, total = await asyncio.to_thread(
            lambda: service.list_orders(
                target, principal, status=order_status, search=search, page=page, limit=limit
            )
        )
        items = [ProductOrderResponse.from_model(o) for o in orders]
        return ok(PaginatedResponse.build(items, total, page, limit))
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "", response_model=ApiResponse[ProductOrderResponse], status_code=status.HTTP_201_CREATED
)
async def create_product_order(
    payload: ProductOrderCreate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductOrderService = Depends(get_product_order_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        order = await asyncio.to_thread(service.create_order, target, payload, principal)
        return ok(ProductOrderResponse.from_model(order), message="Order created")
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{order_id}", response_model=ApiResponse[ProductOrderResponse])
async def get_product_order(
    order_id: str,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductOrderService = Depends(get_product_order_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        order = await asyncio.to_thread(service.get_order, target, order_id, principal)
        return ok(ProductOrderResponse.from_model(order))
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{order_id}/status", response_model=ApiResponse[ProductOrderResponse])
async def update_product_order_status(
    order_id: str,
    payload: ProductOrderStatusUpdate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductOrderService = Depends(get_product_order_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        order = await asyncio.to_thread(
            service.update_status, target, order_id, payload.status, principal
        )
        return ok(ProductOrderResponse.from_model(order), message="Order updated")
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{order_id}/cancel", response_model=ApiResponse[ProductOrderResponse])
async def cancel_product_order(
    order_id: str,
    payload: Optional[ProductOrderCancel] = Body(default=None),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductOrderService = Depends(get_product_order_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        order = await asyncio.to_thread(
            service.cancel_order,
            target,
            order_id,
            principal,
            payload.reason if payload else None,
        )
        return ok(ProductOrderResponse.from_model(order), message="Order cancelled")
    except DomainException as e:
        handle_domain_exception(e)
