"""Partner product catalogue management."""

from __future__ import annotations

from decimal import Decimal
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.enums import ProductCategory, ProductStatus
from app.core.exceptions import NotFoundException, ValidationException
from app.core.principal import Principal
from app.core.timezone_utils import utc_now
from app.models.product import Product
from app.repositories.factory import RepositoryFactory
from app.schemas.product import ProductCreate, ProductUpdate
from app.services.base import BaseService

logger = logging.getLogger(__name__)


def _status_for_stock(stock: int, requested: Optional[ProductStatus]) -> ProductStatus:
    if requested == ProductStatus.UNAVAILABLE:
        return ProductStatus.UNAVAILABLE
    return ProductStatus.AVAILABLE if stock > 0 else ProductStatus.OUT_OF_STOCK


class ProductService(BaseService):
    """CRUD over a partner's products. Last write wins."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = RepositoryFactory.create_product_repository(db)

    def list_products(
        self,
        partner_id: str,
        principal: Principal,
        *,
        category: Optional[ProductCategory] = None,
        status: Optional[ProductStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Product], int]:
        principal.ensure_partner(partner_id)
        return self.repository.search(
            partner_id, category=category, status=status, search=search, page=page, limit=limit
        )

    def get_product(self, partner_id: str, product_id: str, principal: Principal) -> Product:
        principal.ensure_partner(partner_id)
        product = self.repository.get_for_partner(product_id, partner_id)
        if product is None:
            raise NotFoundException("Product not found", code="PRODUCT_NOT_FOUND")
        return product

    @staticmethod
    def _check_price(price: Decimal) -> None:
        if Decimal(str(price)) < 0:
            raise ValidationException("Price cannot be negative", code="INVALID_PRICE")

    @BaseService.measure_operation("create_product")
    def create_product(
        self, partner_id: str, data: ProductCreate, principal: Principal
    ) -> Product:
        principal.ensure_partner(partner_id)
        self._check_price(data.price)
        with self.transaction():
            product = self.repository.create(
                partner_id=partner_id,
                name=data.name,
                description=data.description,
                category=ProductCategory(data.category),
                price=data.price,
                stock=data.stock,
                image_url=data.image_url,
                status=_status_for_stock(
                    data.stock, ProductStatus(data.status) if data.status else None
                ),
            )
        self.log_operation("create_product", partner_id=partner_id, product_id=product.id)
        return product

    @BaseService.measure_operation("update_product")
    def update_product(
        self, partner_id: str, product_id: str, data: ProductUpdate, principal: Principal
    ) -> Product:
        product = self.get_product(partner_id, product_id, principal)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "price" in changes:
            self._check_price(changes["price"])

        with self.transaction():
            for field, value in changes.items():
                if field == "status":
                    continue
                setattr(product, field, value)
            requested = ProductStatus(changes["status"]) if "status" in changes else None
            if requested is None and product.status == ProductStatus.UNAVAILABLE:
                requested = ProductStatus.UNAVAILABLE
            product.status = _status_for_stock(product.stock, requested)
            product.updated_at = utc_now()
            self.db.flush()
        self.log_operation("update_product", product_id=product.id, fields=sorted(changes))
        return product

    @BaseService.measure_operation("delete_product")
    def delete_product(self, partner_id: str, product_id: str, principal: Principal) -> None:
        product = self.get_product(partner_id, product_id, principal)
        with self.transaction():
            self.db.delete(product)
            self.db.flush()
        self.log_operation("delete_product", product_id=product_id)

    @BaseService.measure_operation("toggle_product")
    def toggle_product(self, partner_id: str, product_id: str, principal: Principal) -> Product:
        """Flip between unavailable and on sale; on sale means out_of_stock at zero stock."""
        product = self.get_product(partner_id, product_id, principal)
        with self.transaction():
            if product.status == ProductStatus.UNAVAILABLE:
                product.status = _status_for_stock(product.stock, None)
            else:
                product.status = ProductStatus.UNAVAILABLE
            product.updated_at = utc_now()
            self.db.flush()
        self.log_operation("toggle_product", product_id=product.id, status=product.status.value)
        return product
