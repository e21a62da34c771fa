"""Tests for the partner product catalogue and product order fulfilment."""

from decimal import Decimal

from conftest import NOW, booking_payload
import pytest

from app.core.enums import ActorRole, ProductOrderStatus, ProductStatus
from app.core.exceptions import (
    ForbiddenException,
    InsufficientStockException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.core.principal import Principal
from app.schemas.product import ProductCreate, ProductOrderCreate, ProductUpdate
from app.schemas.slot_booking import SlotBookingCreate
from app.services.product_order_service import ProductOrderService
from app.services.product_service import ProductService
from app.services.slot_booking_service import SlotBookingService


@pytest.fixture
def products(db, partner, partner_principal):
    service = ProductService(db)
    oil = service.create_product(
        partner.id,
        ProductCreate(name="Engine Oil 5W-30", category="oil_fluids", price="42.99", stock=5),
        partner_principal,
    )
    cloth = service.create_product(
        partner.id,
        ProductCreate(name="Microfibre Cloth", category="cleaning", price="8.99", stock=10),
        partner_principal,
    )
    return oil, cloth


def _order(items, **extra):
    return ProductOrderCreate.model_validate(
        {
            "items": [{"productId": p.id, "quantity": q} for p, q in items],
            "customerName": "Walk-in",
            **extra,
        }
    )


class TestProducts:
    def test_stock_drives_status(self, db, partner, partner_principal):
        product = ProductService(db).create_product(
            partner.id, ProductCreate(name="Tyre Shine", price="12.50"), partner_principal
        )
        assert product.status == ProductStatus.OUT_OF_STOCK

        updated = ProductService(db).update_product(
            partner.id, product.id, ProductUpdate(stock=3), partner_principal
        )
        assert updated.status == ProductStatus.AVAILABLE

    def test_toggle_keeps_unavailable_until_toggled_back(self, db, partner, partner_principal, products):
        oil, _ = products
        service = ProductService(db)

        assert service.toggle_product(partner.id, oil.id, partner_principal).status == ProductStatus.UNAVAILABLE
        restocked = service.update_product(partner.id, oil.id, ProductUpdate(stock=20), partner_principal)
        assert restocked.status == ProductStatus.UNAVAILABLE
        assert service.toggle_product(partner.id, oil.id, partner_principal).status == ProductStatus.AVAILABLE

    def test_negative_price_is_rejected(self, db, partner, partner_principal):
        with pytest.raises(ValidationException) as exc_info:
            ProductService(db).create_product(
                partner.id, ProductCreate(name="Bad", price="-1"), partner_principal
            )
        assert exc_info.value.code == "INVALID_PRICE"

    def test_search_and_delete(self, db, partner, partner_principal, products):
        oil, _ = products
        service = ProductService(db)

        found, total = service.list_products(partner.id, partner_principal, search="oil")
        assert total == 1 and found[0].id == oil.id

        service.delete_product(partner.id, oil.id, partner_principal)
        with pytest.raises(NotFoundException):
            service.get_product(partner.id, oil.id, partner_principal)

    def test_other_partner_is_forbidden(self, db, partner, products):
        intruder = Principal(role=ActorRole.PARTNER, actor_id="another-partner")
        with pytest.raises(ForbiddenException):
            ProductService(db).list_products(partner.id, intruder)


class TestProductOrders:
    def test_total_comes_from_catalogue_and_stock_is_taken(
        self, db, partner, partner_principal, products
    ):
        oil, cloth = products
        data = _order([(oil, 1), (cloth, 2)], totalAmount=1.00)

        order = ProductOrderService(db).create_order(partner.id, data, partner_principal, now=NOW)

        assert order.total_amount == Decimal("60.97")
        assert order.status == ProductOrderStatus.PENDING
        assert [item.name for item in order.items] == ["Engine Oil 5W-30", "Microfibre Cloth"]
        assert oil.stock == 4
        assert cloth.stock == 8

    def test_order_linked_to_booking(
        self, db, partner, partner_principal, wash_service, customer, customer_principal, products
    ):
        booking = SlotBookingService(db).create_booking(
            SlotBookingCreate.model_validate(booking_payload(partner, wash_service)),
            customer_principal,
            now=NOW,
        )
        oil, _ = products
        data = ProductOrderCreate.model_validate(
            {"items": [{"productId": oil.id, "quantity": 1}], "bookingId": booking.id}
        )

        order = ProductOrderService(db).create_order(partner.id, data, partner_principal, now=NOW)

        assert order.customer_id == customer.id
        assert order.customer_name == customer.name
        assert order.booking_ref == booking.booking_number
        assert order.pickup_date == booking.slot_date

    def test_insufficient_stock(self, db, partner, partner_principal, products):
        oil, _ = products
        with pytest.raises(InsufficientStockException) as exc_info:
            ProductOrderService(db).create_order(
                partner.id, _order([(oil, 3), (oil, 3)]), partner_principal, now=NOW
            )
        assert exc_info.value.details == {"product_id": oil.id, "requested": 6, "available": 5}
        assert oil.stock == 5

    def test_unavailable_product(self, db, partner, partner_principal, products):
        oil, _ = products
        ProductService(db).toggle_product(partner.id, oil.id, partner_principal)

        with pytest.raises(InvalidStateException) as exc_info:
            ProductOrderService(db).create_order(
                partner.id, _order([(oil, 1)]), partner_principal, now=NOW
            )
        assert exc_info.value.code == "PRODUCT_UNAVAILABLE"

    def test_customer_name_required(self, db, partner, partner_principal, products):
        oil, _ = products
        data = ProductOrderCreate.model_validate({"items": [{"productId": oil.id, "quantity": 1}]})
        with pytest.raises(ValidationException) as exc_info:
            ProductOrderService(db).create_order(partner.id, data, partner_principal, now=NOW)
        assert exc_info.value.code == "CUSTOMER_REQUIRED"

    def test_fulfilment_flow(self, db, partner, partner_principal, products):
        oil, _ = products
        service = ProductOrderService(db)
        order = service.create_order(partner.id, _order([(oil, 1)]), partner_principal, now=NOW)

        with pytest.raises(InvalidStateException) as exc_info:
            service.update_status(partner.id, order.id, ProductOrderStatus.COLLECTED, partner_principal)
        assert exc_info.value.code == "INVALID_TRANSITION"

        service.update_status(partner.id, order.id, ProductOrderStatus.READY, partner_principal)
        done = service.update_status(
            partner.id, order.id, ProductOrderStatus.COLLECTED, partner_principal
        )

        assert done.status == ProductOrderStatus.COLLECTED
        assert done.ready_at is not None and done.collected_at is not None
        with pytest.raises(InvalidStateException):
            service.cancel_order(partner.id, order.id, partner_principal)

    def test_cancel_returns_stock(self, db, partner, partner_principal, products):
        oil, cloth = products
        service = ProductOrderService(db)
        order = service.create_order(
            partner.id, _order([(oil, 5), (cloth, 1)]), partner_principal, now=NOW
        )
        assert oil.status == ProductStatus.OUT_OF_STOCK

        cancelled = service.cancel_order(
            partner.id, order.id, partner_principal, reason="Customer left"
        )

        assert cancelled.status == ProductOrderStatus.CANCELLED
        assert cancelled.cancellation_reason == "Customer left"
        assert oil.stock == 5 and oil.status == ProductStatus.AVAILABLE
        assert cloth.stock == 10

    def test_list_orders_by_status(self, db, partner, partner_principal, products):
        oil, cloth = products
        service = ProductOrderService(db)
        first = service.create_order(partner.id, _order([(oil, 1)]), partner_principal, now=NOW)
        service.create_order(partner.id, _order([(cloth, 1)]), partner_principal, now=NOW)
        service.update_status(partner.id, first.id, ProductOrderStatus.READY, partner_principal)

        ready, total = service.list_orders(
            partner.id, partner_principal, status=ProductOrderStatus.READY
        )
        assert total == 1 and ready[0].id == first.id
