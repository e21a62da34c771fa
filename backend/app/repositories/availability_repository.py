# backend/app/repositories/availability_repository.py
"""
Availability Repository for the Plindo platform.

Data access for the per-partner weekly schedule and bay capacity rows.
``lock_capacity`` is the row lock taken while a booking is written.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.availability import PartnerAvailability, PartnerCapacity
from .base_repository import BaseRepository


class AvailabilityRepository(BaseRepository[PartnerAvailability]):
    def __init__(self, db: Session):
        super().__init__(db, PartnerAvailability)

    def get_for_partner(self, partner_id: str) -> Optional[PartnerAvailability]:
        return self.find_one_by(partner_id=partner_id)

    def get_or_create(self, partner_id: str) -> PartnerAvailability:
        """Return the partner's schedule, persisting the default one if absent."""
        existing = self.get_for_partner(partner_id)
        if existing is not None:
            return existing
        return self.create(partner_id=partner_id)


class CapacityRepository(BaseRepository[PartnerCapacity]):
    def __init__(self, db: Session):
        super().__init__(db, PartnerCapacity)

    def get_for_partner(self, partner_id: str) -> Optional[PartnerCapacity]:
        return self.find_one_by(partner_id=partner_id)

    def get_or_create(self, partner_id: str) -> PartnerCapacity:
        existing = self.get_for_partner(partner_id)
        if existing is not None:
            return existing
        return self.create(partner_id=partner_id)

    def lock_capacity(self, partner_id: str) -> PartnerCapacity:
        """
        Load the capacity row with ``FOR UPDATE`` where the dialect supports it.

        Creates the default row first so there is always something to lock.
        """
        capacity = self.get_or_create(partner_id)
        if not supports_row_locks(self.db):
            return capacity
        try:
            return (
                self.db.query(PartnerCapacity)
                .filter(PartnerCapacity.id == capacity.id)
                .with_for_update()
                .one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking capacity for partner {partner_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock capacity: {str(e)}")
