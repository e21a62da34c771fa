"""
Product order fulfilment for partners.

Orders move ``pending -> ready -> collected`` and may be cancelled while
pending or ready. Stock is taken when the order is placed and given back on
cancellation. Totals are recomputed from catalogue prices; anything the
client sends as a total is ignored.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.enums import ProductOrderStatus, ProductStatus
from app.core.exceptions import (
    ConflictException,
    InsufficientStockException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.core.principal import Principal
from app.core.timezone_utils import utc_now
from app.core.ulid_helper import generate_order_number
from app.models.product import ProductOrder, ProductOrderItem
from app.repositories.factory import RepositoryFactory
from app.schemas.product import ProductOrderCreate
from app.services.base import BaseService

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS: Dict[ProductOrderStatus, frozenset] = {
    ProductOrderStatus.PENDING: frozenset({ProductOrderStatus.READY, ProductOrderStatus.CANCELLED}),
    ProductOrderStatus.READY: frozenset(
        {ProductOrderStatus.COLLECTED, ProductOrderStatus.CANCELLED}
    ),
    ProductOrderStatus.COLLECTED: frozenset(),
    ProductOrderStatus.CANCELLED: frozenset(),
}

MAX_ORDER_NUMBER_ATTEMPTS = 5


class ProductOrderService(BaseService):
    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = RepositoryFactory.create_product_order_repository(db)
        self.product_repository = RepositoryFactory.create_product_repository(db)
        self.booking_repository = RepositoryFactory.create_slot_booking_repository(db)
        self.customer_repository = RepositoryFactory.create_customer_repository(db)

    def list_orders(
        self,
        partner_id: str,
        principal: Principal,
        *,
        status: Optional[ProductOrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[ProductOrder], int]:
        principal.ensure_partner(partner_id)
        return self.repository.search(
            partner_id, status=status, search=search, page=page, limit=limit
        )

    def get_order(self, partner_id: str, order_id: str, principal: Principal) -> ProductOrder:
        principal.ensure_partner(partner_id)
        order = self.repository.get_for_partner(order_id, partner_id)
        if order is None:
            raise NotFoundException("Product order not found", code="PRODUCT_ORDER_NOT_FOUND")
        return order

    def _unique_order_number(self, now: datetime) -> str:
        for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(now)
            if not self.repository.order_number_exists(candidate):
                return candidate
        raise ConflictException(
            "Could not allocate an order number, please retry", code="ORDER_NUMBER_EXHAUSTED"
        )

    @BaseService.measure_operation("create_product_order")
    def create_order(
        self,
        partner_id: str,
        data: ProductOrderCreate,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> ProductOrder:
        """
        Place an order against the partner's catalogue.

        Raises:
            NotFoundException: Unknown product, booking or customer
            InvalidStateException: Product not on sale
            InsufficientStockException: Not enough units in stock
        """
        principal.ensure_partner(partner_id)
        current = now or utc_now()

        quantities: Dict[str, int] = {}
        for item in data.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

        booking = None
        if data.booking_id:
            booking = self.booking_repository.get_by_id(data.booking_id, load_relationships=False)
            if booking is None or booking.partner_id != partner_id:
                raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")

        customer_id = data.customer_id or (booking.customer_id if booking else None)
        customer = None
        if customer_id:
            customer = self.customer_repository.get_by_id(customer_id, load_relationships=False)
            if customer is None:
                raise NotFoundException("Customer not found", code="CUSTOMER_NOT_FOUND")
        customer_name = data.customer_name or (customer.name if customer else None)
        if not customer_name:
            raise ValidationException(
                "customerName is required when no customer is referenced",
                code="CUSTOMER_REQUIRED",
            )

        with self.transaction():
            products = {
                p.id: p for p in self.product_repository.lock_many(partner_id, list(quantities))
            }
            order = ProductOrder(
                order_number=self._unique_order_number(current),
                partner_id=partner_id,
                customer_id=customer.id if customer else None,
                customer_name=customer_name,
                customer_phone=data.customer_phone or (customer.phone if customer else None),
                booking_id=booking.id if booking else None,
                booking_ref=booking.booking_number if booking else None,
                service_name=booking.service_name if booking else None,
                pickup_date=data.pickup_date or (booking.slot_date if booking else None),
                status=ProductOrderStatus.PENDING,
                order_date=current,
            )
            for position, item in enumerate(data.items):
                product = products.get(item.product_id)
                if product is None:
                    raise NotFoundException(
                        "Product not found",
                        code="PRODUCT_NOT_FOUND",
                        details={"product_id": item.product_id},
                    )
                if product.status == ProductStatus.UNAVAILABLE:
                    raise InvalidStateException(
                        f"{product.name} is not available",
                        code="PRODUCT_UNAVAILABLE",
                        details={"product_id": product.id},
                    )
                wanted = quantities[product.id]
                if product.stock < wanted:
                    raise InsufficientStockException(product.id, wanted, product.stock)
                order.items.append(
                    ProductOrderItem(
                        product_id=product.id,
                        position=position,
                        name=product.name,
                        price=product.price,
                        quantity=item.quantity,
                    )
                )
            for product_id, wanted in quantities.items():
                products[product_id].adjust_stock(-wanted)
            order.recalculate_total()
            self.db.add(order)
            self.db.flush()

        self.log_operation(
            "create_product_order",
            order_id=order.id,
            partner_id=partner_id,
            total_amount=str(order.total_amount),
        )
        return order

    @BaseService.measure_operation("update_product_order_status")
    def update_status(
        self,
        partner_id: str,
        order_id: str,
        target: ProductOrderStatus,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> ProductOrder:
        target = ProductOrderStatus(target)
        if target == ProductOrderStatus.CANCELLED:
            return self.cancel_order(partner_id, order_id, principal, now=now)

        current = now or utc_now()
        order = self.get_order(partner_id, order_id, principal)
        previous = ProductOrderStatus(order.status)
        self._check_transition(previous, target)

        with self.transaction():
            order.status = target
            if target == ProductOrderStatus.READY:
                order.ready_at = current
            elif target == ProductOrderStatus.COLLECTED:
                order.collected_at = current
            self.db.flush()
        self.log_operation(
            "update_product_order_status",
            order_id=order.id,
            from_status=previous.value,
            to_status=target.value,
        )
        return order

    @BaseService.measure_operation("cancel_product_order")
    def cancel_order(
        self,
        partner_id: str,
        order_id: str,
        principal: Principal,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ProductOrder:
        current = now or utc_now()
        order = self.get_order(partner_id, order_id, principal)
        previous = ProductOrderStatus(order.status)
        self._check_transition(previous, ProductOrderStatus.CANCELLED)

        with self.transaction():
            products = {
                p.id: p
                for p in self.product_repository.lock_many(
                    partner_id, [item.product_id for item in order.items]
                )
            }
            for item in order.items:
                product = products.get(item.product_id)
                if product is not None:
                    product.adjust_stock(item.quantity)
            order.status = ProductOrderStatus.CANCELLED
            order.cancelled_at = current
            order.cancellation_reason = reason
            self.db.flush()
        self.log_operation("cancel_product_order", order_id=order.id, from_status=previous.value)
        return order

    @staticmethod
    def _check_transition(current: ProductOrderStatus, target: ProductOrderStatus) -> None:
        if target not in ORDER_TRANSITIONS[current]:
            raise InvalidStateException(
                f"Cannot change order status from {current.value} to {target.value}",
                code="INVALID_TRANSITION",
                details={"current_status": current.value, "target_status": target.value},
            )
