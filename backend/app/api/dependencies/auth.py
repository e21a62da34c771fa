# backend/app/api/dependencies/auth.py
"""
Caller identity dependencies.

Identity is read from the ``X-Actor-Role`` and ``X-Actor-Id`` headers.
There is no token verification at this layer; a gateway in front of the
API is expected to set these headers.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request

from ...core.constants import ACTOR_ID_HEADER, ACTOR_ROLE_HEADER
from ...core.enums import ActorRole
from ...core.exceptions import ForbiddenException, UnauthorizedException, ValidationException
from ...core.principal import Principal

logger = logging.getLogger(__name__)


def get_optional_principal(request: Request) -> Optional[Principal]:
    raw_role = (request.headers.get(ACTOR_ROLE_HEADER) or "").strip().lower()
    actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip() or None
    if not raw_role:
        return None
    try:
        role = ActorRole(raw_role)
    except ValueError:
        raise UnauthorizedException(
            f"Unknown actor role: {raw_role}", code="INVALID_ACTOR_ROLE"
        ) from None
    if role != ActorRole.ADMIN and actor_id is None:
        raise UnauthorizedException(
            f"{ACTOR_ID_HEADER} is required for {role.value} callers", code="MISSING_ACTOR_ID"
        )
    return Principal(role=role, actor_id=actor_id)


def get_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Require an identified caller.

    Raises:
        UnauthorizedException: If no identity headers were sent
    """
    if principal is None:
        raise UnauthorizedException("Authentication required", code="AUTH_REQUIRED")
    return principal


def require_roles(*roles: ActorRole) -> Callable[..., Principal]:
    """Dependency factory restricting a route to the given roles."""
    allowed = frozenset(roles)

    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            logger.info(
                "role_denied",
                extra={"role": principal.role.value, "allowed": sorted(r.value for r in allowed)},
            )
            raise ForbiddenException(
                "You do not have permission to perform this action",
                code="FORBIDDEN_ROLE",
                details={"allowed_roles": sorted(r.value for r in allowed)},
            )
        return principal

    return dependency


require_admin = require_roles(ActorRole.ADMIN)
require_partner = require_roles(ActorRole.PARTNER, ActorRole.ADMIN)
require_customer = require_roles(ActorRole.CUSTOMER, ActorRole.ADMIN)


def resolve_partner_id(principal: Principal, partner_id: Optional[str]) -> str:
    """Partner routes act for the calling partner unless an admin names one."""
    resolved = partner_id or (principal.actor_id if principal.is_partner else None)
    if not resolved:
        raise ValidationException("partnerId is required", code="PARTNER_REQUIRED")
    principal.ensure_partner(resolved)
    return resolved
