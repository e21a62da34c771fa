# backend/app/models/product.py
"""
Partner product catalogue and click-and-collect product orders.

Orders are independent of slot capacity. Line items snapshot product name
and unit price; ``total_amount`` is always recomputed from the items.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import ProductCategory, ProductOrderStatus, ProductStatus
from ..database import Base
from .base_enum import create_safe_enum


class Product(Base):
    __tablename__ = "products"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    partner_id = Column(
        String(26), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(
        create_safe_enum(ProductCategory, "product_category"),
        nullable=False,
        default=ProductCategory.OTHER,
    )
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    status = Column(
        create_safe_enum(ProductStatus, "product_status"),
        nullable=False,
        default=ProductStatus.AVAILABLE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    def adjust_stock(self, delta: int) -> None:
        """Change stock and keep the availability status in step with it."""
        self.stock = (self.stock or 0) + delta
        if self.stock <= 0:
            self.stock = 0
            if self.status == ProductStatus.AVAILABLE:
                self.status = ProductStatus.OUT_OF_STOCK
        elif self.status == ProductStatus.OUT_OF_STOCK:
            self.status = ProductStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"<Product {self.id}: {self.name} stock={self.stock}>"


class ProductOrder(Base):
    __tablename__ = "product_orders"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    order_number = Column(String(20), nullable=False, unique=True, index=True)
    partner_id = Column(String(26), ForeignKey("partners.id"), nullable=False, index=True)
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=True)
    booking_id = Column(String(26), ForeignKey("slot_bookings.id"), nullable=True)

    booking_ref = Column(String(20), nullable=True)
    service_name = Column(String(200), nullable=True)
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(40), nullable=True)

    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(
        create_safe_enum(ProductOrderStatus, "product_order_status"),
        nullable=False,
        default=ProductOrderStatus.PENDING,
        index=True,
    )
    order_date = Column(DateTime(timezone=True), server_default=func.now())
    pickup_date = Column(Date, nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    collected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "ProductOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProductOrderItem.position",
    )

    def recalculate_total(self) -> Decimal:
        total = sum(
            (Decimal(str(item.price)) * item.quantity for item in self.items), Decimal("0.00")
        )
        self.total_amount = total.quantize(Decimal("0.01"))
        return self.total_amount

    def __repr__(self) -> str:
        return f"<ProductOrder {self.order_number}: {self.status} total={self.total_amount}>"


class ProductOrderItem(Base):
    __tablename__ = "product_order_items"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    order_id = Column(
        String(26), ForeignKey("product_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(String(26), ForeignKey("products.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("ProductOrder", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_product_order_items_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_product_order_items_price_non_negative"),
    )
