"""Role-based access control dependencies for FastAPI endpoints.

Each dependency runs the AuthorizationGuard stored on app.state, so
UnauthorizedError (401) and ForbiddenError (403) reach the error handler
as typed exceptions.
"""

from typing import Optional

from fastapi import Request

from sos_ksar.constants import RESPONDER_ROLES, UserRole
from sos_ksar.service.session_resolver import RequestContext, SessionUser


def get_request_context(request: Request) -> RequestContext:
    return RequestContext.from_request(request)


async def get_optional_user(request: Request) -> Optional[SessionUser]:
    """Current user or None, for public pages."""
    resolver = request.app.state.session_resolver
    return await resolver.get_current_user(get_request_context(request))


async def require_authenticated(request: Request) -> SessionUser:
    """Require any authenticated session.

    Raises:
        UnauthorizedError: 401 if no valid session
    """
    guard = request.app.state.auth_guard
    return await guard.require_auth(get_request_context(request))


async def require_admin(request: Request) -> SessionUser:
    """Require the admin role.

    Raises:
        UnauthorizedError: 401 if not authenticated
        ForbiddenError: 403 for citizens and volunteers
    """
    guard = request.app.state.auth_guard
    return await guard.require_role(get_request_context(request), UserRole.ADMIN)


async def require_responder(request: Request) -> SessionUser:
    """Require volunteer or admin.

    Raises:
        UnauthorizedError: 401 if not authenticated
        ForbiddenError: 403 for citizens
    """
    guard = request.app.state.auth_guard
    return await guard.require_any_role(get_request_context(request), RESPONDER_ROLES)
