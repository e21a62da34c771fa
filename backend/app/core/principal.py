"""
Caller identity passed from the API layer into services.

Identity comes from request headers and is not verified here; services only
use it for ownership checks and to record who performed an action.
"""

from dataclasses import dataclass
from typing import Optional

from .enums import ActorRole, CancelledBy
from .exceptions import ForbiddenException


@dataclass(frozen=True)
class Principal:
    role: ActorRole
    actor_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_partner(self) -> bool:
        return self.role == ActorRole.PARTNER

    @property
    def is_customer(self) -> bool:
        return self.role == ActorRole.CUSTOMER

    @property
    def label(self) -> str:
        return self.role.value

    def as_cancelled_by(self) -> CancelledBy:
        return CancelledBy(self.role.value)

    def ensure_partner(self, partner_id: str) -> None:
        """Admins pass; partners must own ``partner_id``; customers never pass."""
        if self.is_admin:
            return
        if self.is_partner and self.actor_id == partner_id:
            return
        raise ForbiddenException("Not allowed to act for this partner", code="FORBIDDEN_PARTNER")

    def ensure_booking_access(self, partner_id: str, customer_id: str) -> None:
        if self.is_admin:
            return
        if self.is_partner and self.actor_id == partner_id:
            return
        if self.is_customer and self.actor_id == customer_id:
            return
        raise ForbiddenException("Not allowed to access this booking", code="FORBIDDEN_BOOKING")


SYSTEM_PRINCIPAL = Principal(role=ActorRole.ADMIN, actor_id=None)
