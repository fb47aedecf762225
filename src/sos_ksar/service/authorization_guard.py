"""Action-level authorization checks.

Every privileged operation calls one of these, even behind the route gate.
A missing session raises UnauthorizedError; a session with the wrong role
raises ForbiddenError. Roles have no hierarchy: admin does not pass a
volunteer-only check unless the caller lists it.
"""

import logging
from typing import Iterable, List

from sos_ksar.constants import UserRole
from sos_ksar.exception import ForbiddenError, UnauthorizedError
from sos_ksar.service.session_resolver import (
    RequestContext,
    SessionResolver,
    SessionUser,
)

logger = logging.getLogger(__name__)

_ROLE_ORDER = [role.value for role in UserRole]


def _ordered_roles(roles: Iterable) -> List[str]:
    values = {getattr(role, "value", role) for role in roles}
    known = [role for role in _ROLE_ORDER if role in values]
    return known + sorted(values - set(known))


class AuthorizationGuard:
    """require_auth / require_role / require_any_role on top of a resolver.

    Attributes:
        resolver: Session resolver used for every check
    """

    def __init__(self, resolver: SessionResolver):
        self.resolver = resolver

    async def require_auth(self, ctx: RequestContext) -> SessionUser:
        """Return the caller or raise UnauthorizedError.

        Raises:
            UnauthorizedError: No active session
            InfrastructureError: Session backend unavailable
        """
        user = await self.resolver.get_current_user(ctx)
        if user is None:
            raise UnauthorizedError()
        return user

    async def require_role(self, ctx: RequestContext, role) -> SessionUser:
        """Return the caller if their role is exactly ``role``.

        Raises:
            UnauthorizedError: No active session
            ForbiddenError: Any other role ("Role '<role>' required")
        """
        required = getattr(role, "value", role)
        user = await self.require_auth(ctx)
        if user.role != required:
            logger.warning(
                f"Role check denied: user={user.id} role={user.role} required={required}"
            )
            raise ForbiddenError.for_role(required)
        return user

    async def require_any_role(self, ctx: RequestContext, roles: Iterable) -> SessionUser:
        """Return the caller if their role is one of ``roles``.

        Raises:
            UnauthorizedError: No active session
            ForbiddenError: Role outside the accepted set
        """
        accepted = _ordered_roles(roles)
        user = await self.require_auth(ctx)
        if user.role not in accepted:
            logger.warning(
                f"Role check denied: user={user.id} role={user.role} accepted={accepted}"
            )
            raise ForbiddenError.for_roles(accepted)
        return user
