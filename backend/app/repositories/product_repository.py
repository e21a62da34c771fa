"""Repositories for partner products and product orders."""

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.enums import ProductCategory, ProductOrderStatus, ProductStatus
from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.product import Product, ProductOrder
from .base_repository import BaseRepository


class ProductRepository(BaseRepository[Product]):
    def __init__(self, db: Session):
        super().__init__(db, Product)

    def get_for_partner(self, product_id: str, partner_id: str) -> Optional[Product]:
        return self.find_one_by(id=product_id, partner_id=partner_id)

    def search(
        self,
        partner_id: str,
        *,
        category: Optional[ProductCategory],
        status: Optional[ProductStatus],
        search: Optional[str],
        page: int,
        limit: int,
    ) -> Tuple[List[Product], int]:
        query = self.db.query(Product).filter(Product.partner_id == partner_id)
        if category is not None:
            query = query.filter(Product.category == category)
        if status is not None:
            query = query.filter(Product.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        return self.paginate(query.order_by(Product.name, Product.id), page, limit)

    def lock_many(self, partner_id: str, product_ids: Sequence[str]) -> List[Product]:
        """Load the partner's products by id, row-locked where supported."""
        try:
            query = self.db.query(Product).filter(
                Product.partner_id == partner_id, Product.id.in_(list(product_ids))
            )
            if supports_row_locks(self.db):
                query = query.with_for_update()
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading products for partner {partner_id}: {str(e)}")
            raise RepositoryException(f"Failed to load products: {str(e)}")


class ProductOrderRepository(BaseRepository[ProductOrder]):
    def __init__(self, db: Session):
        super().__init__(db, ProductOrder)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(ProductOrder.items))

    def order_number_exists(self, order_number: str) -> bool:
        return self.exists(order_number=order_number)

    def get_for_partner(self, order_id: str, partner_id: str) -> Optional[ProductOrder]:
        try:
            return (
                self._apply_eager_loading(self.db.query(ProductOrder))
                .filter(ProductOrder.id == order_id, ProductOrder.partner_id == partner_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting product order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve ProductOrder: {str(e)}")

    def search(
        self,
        partner_id: str,
        *,
        status: Optional[ProductOrderStatus],
        search: Optional[str],
        page: int,
        limit: int,
    ) -> Tuple[List[ProductOrder], int]:
        query = self._apply_eager_loading(self.db.query(ProductOrder)).filter(
            ProductOrder.partner_id == partner_id
        )
        if status is not None:
            query = query.filter(ProductOrder.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    ProductOrder.order_number.ilike(pattern),
                    ProductOrder.customer_name.ilike(pattern),
                    ProductOrder.booking_ref.ilike(pattern),
                )
            )
        query = query.order_by(ProductOrder.order_date.desc(), ProductOrder.id.desc())
        return self.paginate(query, page, limit)
