"""Service layer for SOS Ksar business logic.

Exports the identity provider, session resolution and authorization
primitives, and the report, inventory, user and command center services.
"""

from sos_ksar.service.auth_service import AuthService, SignInResult
from sos_ksar.service.authorization_guard import AuthorizationGuard
from sos_ksar.service.command_center_service import ActionResult, CommandCenterService
from sos_ksar.service.inventory_service import InventoryService
from sos_ksar.service.report_service import ReportService
from sos_ksar.service.session_resolver import (
    RequestContext,
    SessionResolver,
    SessionResult,
    SessionUser,
)
from sos_ksar.service.user_service import UserService

__all__ = [
    "ActionResult",
    "AuthService",
    "AuthorizationGuard",
    "CommandCenterService",
    "InventoryService",
    "ReportService",
    "RequestContext",
    "SessionResolver",
    "SessionResult",
    "SessionUser",
    "SignInResult",
    "UserService",
]
