"""Route gate: path-prefix policy applied before any page or action runs.

decide_route is a pure function of (path, SessionUser | None). The
middleware resolves the session only when the path needs one and answers
307 redirects for anything other than PASS. The gate does not call the
authorization guards; pages and actions still run them on their own.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sos_ksar.constants import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    UNAUTHORIZED_PATH,
    UserRole,
)
from sos_ksar.service.session_resolver import RequestContext, SessionUser

logger = logging.getLogger(__name__)

AUTH_REQUIRED_PREFIXES = ("/dashboard", "/sos", "/inventory", "/command-center")
ADMIN_ONLY_PREFIXES = ("/command-center", "/dashboard/admin")
ROLE_DASHBOARD_ROOTS = {
    role.value: f"{DASHBOARD_PATH}/{role.value}" for role in UserRole
}


class GateOutcome(str, Enum):
    PASS = "pass"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_UNAUTHORIZED = "redirect_unauthorized"
    REDIRECT_ROLE_HOME = "redirect_role_home"


@dataclass(frozen=True)
class GateDecision:
    """What the gate does with a request.

    Attributes:
        outcome: Gate outcome
        location: Redirect target, None for PASS
    """

    outcome: GateOutcome
    location: Optional[str] = None


@dataclass(frozen=True)
class PathClass:
    """Static classification of a request path.

    Attributes:
        auth_required: Path needs a session
        admin_only: Path needs the admin role
        dashboard_root: Path is the bare dashboard root
        dashboard_role: Role segment of a role-scoped dashboard path
    """

    auth_required: bool
    admin_only: bool
    dashboard_root: bool
    dashboard_role: Optional[str]


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str) -> PathClass:
    """Classify a path against the prefix tables."""
    path = path.rstrip("/") or "/"
    dashboard_role = next(
        (role for role, root in ROLE_DASHBOARD_ROOTS.items() if _matches(path, root)),
        None,
    )
    return PathClass(
        auth_required=any(_matches(path, p) for p in AUTH_REQUIRED_PREFIXES),
        admin_only=any(_matches(path, p) for p in ADMIN_ONLY_PREFIXES),
        dashboard_root=path == DASHBOARD_PATH,
        dashboard_role=dashboard_role,
    )


def decide_route(path: str, user: Optional[SessionUser]) -> GateDecision:
    """Decide whether a request passes or is redirected.

    Args:
        path: Request path
        user: Resolved session user, None when anonymous

    Returns:
        GateDecision
    """
    path_class = classify_path(path)
    if not path_class.auth_required:
        return GateDecision(GateOutcome.PASS)

    if user is None:
        return GateDecision(GateOutcome.REDIRECT_LOGIN, LOGIN_PATH)

    if path_class.admin_only and user.role != UserRole.ADMIN.value:
        return GateDecision(GateOutcome.REDIRECT_UNAUTHORIZED, UNAUTHORIZED_PATH)

    if path_class.dashboard_root:
        return GateDecision(
            GateOutcome.REDIRECT_ROLE_HOME, f"{DASHBOARD_PATH}/{user.role}"
        )

    if path_class.dashboard_role and path_class.dashboard_role != user.role:
        # Wrong section of the dashboard: back to the root, which routes by role.
        return GateDecision(GateOutcome.REDIRECT_ROLE_HOME, DASHBOARD_PATH)

    return GateDecision(GateOutcome.PASS)


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Applies decide_route to every HTTP request.

    The SessionResolver is read lazily from app.state so the middleware can
    be registered before the lifespan starts. A resolver failure propagates
    to the error handler (503), it is never treated as an anonymous caller.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not classify_path(path).auth_required:
            return await call_next(request)

        resolver = request.app.state.session_resolver
        result = await resolver.resolve(RequestContext.from_request(request))
        user = result.user if result else None
        request.state.session_user = user

        decision = decide_route(path, user)
        if decision.outcome is GateOutcome.PASS:
            return await call_next(request)

        logger.warning(
            f"Route gate redirect: {path} -> {decision.location} "
            f"({decision.outcome.value}, role={user.role if user else None})"
        )
        return RedirectResponse(
            url=decision.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )
