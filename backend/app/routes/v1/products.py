# backend/app/routes/v1/products.py
"""
Partner product routes - API v1

Endpoints:
    GET /partner/products - List products
    POST /partner/products - Create a product
    GET /partner/products/{product_id} - Product detail
    PUT /partner/products/{product_id} - Update a product
    DELETE /partner/products/{product_id} - Delete a product
    PATCH /partner/products/{product_id}/toggle - Toggle on sale / unavailable
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import get_product_service, require_partner, resolve_partner_id
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.enums import ProductCategory, ProductStatus
from ...core.exceptions import DomainException
from ...core.principal import Principal
from ...errors import handle_domain_exception
from ...schemas.base_responses import ApiResponse, PaginatedResponse, ok
from ...schemas.product import ProductCreate, ProductResponse, ProductUpdate
from ...services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner/products", tags=["partner-products"])


@router.get("", response_model=ApiResponse[PaginatedResponse[ProductResponse]])
async def list_products(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    category: Optional[ProductCategory] = Query(None),
    product_status: Optional[ProductStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        products, total = await asyncio.to_thread(
            lambda: service.list_products(
                target,
                principal,
                category=category,
                status=product_status,
                search=search,
                page=page,
                limit=limit,
            )
        )
        items = [ProductResponse.model_validate(p) for p in products]
        return ok(PaginatedResponse.build(items, total, page, limit))
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "", response_model=ApiResponse[ProductResponse], status_code=status.HTTP_201_CREATED
)
async def create_product(
    payload: ProductCreate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        product = await asyncio.to_thread(service.create_product, target, payload, principal)
        return ok(ProductResponse.model_validate(product), message="Product created")
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(
    product_id: str,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        product = await asyncio.to_thread(service.get_product, target, product_id, principal)
        return ok(ProductResponse.model_validate(product))
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        product = await asyncio.to_thread(
            service.update_product, target, product_id, payload, principal
        )
        return ok(ProductResponse.model_validate(product), message="Product updated")
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{product_id}", response_model=ApiResponse[None])
async def delete_product(
    product_id: str,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        await asyncio.to_thread(service.delete_product, target, product_id, principal)
        return ok(message="Product deleted")
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{product_id}/toggle", response_model=ApiResponse[ProductResponse])
async def toggle_product(
    product_id: str,
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    principal: Principal = Depends(require_partner),
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        target = resolve_partner_id(principal, partner_id)
        product = await asyncio.to_thread(service.toggle_product, target, product_id, principal)
        return ok(ProductResponse.model_validate(product))
    except DomainException as e:
        handle_domain_exception(e)
