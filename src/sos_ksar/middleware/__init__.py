"""Middleware components.

This package provides the route gate, error handling middleware and the
authorization dependencies used by controllers.
"""

from sos_ksar.middleware.authorization_middleware import (
    get_optional_user,
    require_admin,
    require_authenticated,
    require_responder,
)
from sos_ksar.middleware.error_handler_middleware import ErrorHandlerMiddleware
from sos_ksar.middleware.route_gate_middleware import (
    GateDecision,
    GateOutcome,
    RouteGateMiddleware,
    classify_path,
    decide_route,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "GateDecision",
    "GateOutcome",
    "RouteGateMiddleware",
    "classify_path",
    "decide_route",
    "get_optional_user",
    "require_admin",
    "require_authenticated",
    "require_responder",
]
