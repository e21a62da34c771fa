"""Repositories for partners, their services, and customers."""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.partner import Customer, Partner, PartnerService
from .base_repository import BaseRepository


class PartnerRepository(BaseRepository[Partner]):
    def __init__(self, db: Session):
        super().__init__(db, Partner)


class CustomerRepository(BaseRepository[Customer]):
    def __init__(self, db: Session):
        super().__init__(db, Customer)


class PartnerServiceRepository(BaseRepository[PartnerService]):
    def __init__(self, db: Session):
        super().__init__(db, PartnerService)

    def get_for_partner(self, service_id: str, partner_id: str) -> Optional[PartnerService]:
        return self.find_one_by(id=service_id, partner_id=partner_id)

    def list_active(self, partner_id: str) -> List[PartnerService]:
        try:
            return (
                self.db.query(PartnerService)
                .filter(PartnerService.partner_id == partner_id, PartnerService.is_active.is_(True))
                .order_by(PartnerService.name)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing services for partner {partner_id}: {str(e)}")
            raise RepositoryException(f"Failed to list services: {str(e)}")
