"""Command center actions for volunteers and admins.

Each action runs the responder guard first, then the report or inventory
operation. Nothing escapes an action: failures come back as an
ActionResult with success=False, a user-facing message and an error code.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sos_ksar.constants import RESPONDER_ROLES
from sos_ksar.exception import (
    ForbiddenError,
    InfrastructureError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from sos_ksar.service.authorization_guard import AuthorizationGuard
from sos_ksar.service.inventory_service import InventoryService, serialize_item
from sos_ksar.service.report_service import (
    ReportService,
    parse_report_id,
    serialize_report,
)
from sos_ksar.service.session_resolver import RequestContext

logger = logging.getLogger(__name__)

REPORT_NOT_FOUND_MESSAGE = "Report not found."
LOAD_REPORTS_FAILED_MESSAGE = "Could not load reports."
LOAD_INVENTORY_FAILED_MESSAGE = "Could not load inventory."
UPDATE_REPORT_FAILED_MESSAGE = "Could not update the report."
TAKEN_IN_CHARGE_MESSAGE = "Report taken in charge!"
MARKED_RESOLVED_MESSAGE = "Report marked as resolved!"


@dataclass
class ActionResult:
    """Structured outcome of a command center action.

    Attributes:
        success: Whether the action completed
        data: Payload on success
        error: User-facing message on failure
        message: User-facing confirmation on success
        code: Error code on failure (UNAUTHORIZED, FORBIDDEN, NOT_FOUND, ...)
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ActionResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, code: str) -> "ActionResult":
        return cls(success=False, error=error, code=code)


class CommandCenterService:
    """Guarded report triage and inventory overview.

    Attributes:
        guard: Authorization guard
        report_service: Report lifecycle operations
        inventory_service: Inventory queries
    """

    def __init__(
        self,
        guard: AuthorizationGuard,
        report_service: ReportService,
        inventory_service: InventoryService,
    ):
        self.guard = guard
        self.report_service = report_service
        self.inventory_service = inventory_service

    async def get_reports(self, ctx: RequestContext) -> ActionResult:
        """All reports with reporter name/email, newest first."""

        async def run():
            return ActionResult.ok(await self.report_service.list_all())

        return await self._guarded(ctx, run, LOAD_REPORTS_FAILED_MESSAGE)

    async def get_inventory(self, ctx: RequestContext) -> ActionResult:
        """All inventory lines ordered by center, then item."""

        async def run():
            items = await self.inventory_service.list_all()
            return ActionResult.ok([serialize_item(item) for item in items])

        return await self._guarded(ctx, run, LOAD_INVENTORY_FAILED_MESSAGE)

    async def take_charge(self, ctx: RequestContext, report_id: Any) -> ActionResult:
        """Move a pending report to in_progress."""

        async def run():
            report = await self.report_service.take_charge(parse_report_id(report_id))
            return ActionResult.ok(serialize_report(report), TAKEN_IN_CHARGE_MESSAGE)

        return await self._guarded(ctx, run, UPDATE_REPORT_FAILED_MESSAGE)

    async def mark_resolved(self, ctx: RequestContext, report_id: Any) -> ActionResult:
        """Move an in_progress report to resolved."""

        async def run():
            report = await self.report_service.mark_resolved(parse_report_id(report_id))
            return ActionResult.ok(serialize_report(report), MARKED_RESOLVED_MESSAGE)

        return await self._guarded(ctx, run, UPDATE_REPORT_FAILED_MESSAGE)

    async def _guarded(
        self,
        ctx: RequestContext,
        run: Callable[[], Awaitable[ActionResult]],
        failure_message: str,
    ) -> ActionResult:
        try:
            await self.guard.require_any_role(ctx, RESPONDER_ROLES)
            return await run()
        except (UnauthorizedError, ForbiddenError) as e:
            return ActionResult.fail(e.message, e.code)
        except NotFoundError as e:
            return ActionResult.fail(REPORT_NOT_FOUND_MESSAGE, e.code)
        except (ValidationError, InvalidTransitionError) as e:
            return ActionResult.fail(e.message, e.code)
        except InfrastructureError as e:
            logger.error(f"Command center backend unavailable: {e}", exc_info=True)
            return ActionResult.fail(e.message, e.code)
        except Exception:
            logger.error(failure_message, exc_info=True)
            return ActionResult.fail(failure_message, "INTERNAL_ERROR")
