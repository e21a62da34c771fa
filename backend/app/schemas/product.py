# backend/app/schemas/product.py
"""Schemas for the partner product catalogue and product orders."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import Field

from ..core.constants import MAX_NOTE_LENGTH, MAX_REASON_LENGTH
from ..core.enums import ProductCategory, ProductOrderStatus, ProductStatus
from ..core.timezone_utils import ensure_utc
from .base import Money, RequestModel, StandardizedModel


class ProductCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)
    category: ProductCategory = ProductCategory.OTHER
    price: Money
    stock: int = Field(default=0, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)
    status: Optional[ProductStatus] = None


class ProductUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=MAX_NOTE_LENGTH)
    category: Optional[ProductCategory] = None
    price: Optional[Money] = None
    stock: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)
    status: Optional[ProductStatus] = None


class ProductResponse(StandardizedModel):
    id: str
    partner_id: str
    name: str
    description: Optional[str] = None
    category: ProductCategory
    price: Money
    stock: int
    image_url: Optional[str] = None
    status: ProductStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductOrderItemCreate(RequestModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=100)


class ProductOrderCreate(RequestModel):
    """Unit prices and the total are always taken from the catalogue."""

    items: List[ProductOrderItemCreate] = Field(..., min_length=1)
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, max_length=200)
    customer_phone: Optional[str] = Field(default=None, max_length=40)
    booking_id: Optional[str] = None
    pickup_date: Optional[date] = None


class ProductOrderStatusUpdate(RequestModel):
    status: ProductOrderStatus


class ProductOrderCancel(RequestModel):
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class ProductOrderItemResponse(StandardizedModel):
    product_id: str
    name: str
    quantity: int
    price: Money


class ProductOrderResponse(StandardizedModel):
    id: str
    order_number: str
    partner_id: str
    booking_id: Optional[str] = None
    booking_ref: Optional[str] = None
    service_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: str
    customer_phone: Optional[str] = None
    items: List[ProductOrderItemResponse]
    total_amount: Money
    status: ProductOrderStatus
    order_date: Optional[datetime] = None
    pickup_date: Optional[date] = None
    ready_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def from_model(cls, order: Any) -> "ProductOrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            partner_id=order.partner_id,
            booking_id=order.booking_id,
            booking_ref=order.booking_ref,
            service_name=order.service_name,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            items=[ProductOrderItemResponse.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            status=order.status,
            order_date=ensure_utc(order.order_date),
            pickup_date=order.pickup_date,
            ready_at=ensure_utc(order.ready_at),
            collected_at=ensure_utc(order.collected_at),
            cancelled_at=ensure_utc(order.cancelled_at),
            cancellation_reason=order.cancellation_reason,
        )
