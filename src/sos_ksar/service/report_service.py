"""Service layer for SOS reports.

Creation checks the input and the reporter; status changes go through the
lifecycle table. Authorization is the caller's job (guards or route
dependencies), this service only enforces data rules.
"""

import logging
from typing import Any, Dict, List

from sos_ksar.constants import ReportStatus, ReportType
from sos_ksar.exception import NotFoundError, ValidationError
from sos_ksar.infrastructure.persistence.postgresql.models import Report
from sos_ksar.repository.report_repository import ReportRepository
from sos_ksar.repository.user_repository import UserRepository
from sos_ksar.service.report_lifecycle import ensure_transition

logger = logging.getLogger(__name__)

REPORT_TYPE_VALUES = frozenset(report_type.value for report_type in ReportType)


def serialize_report(report: Report) -> Dict[str, Any]:
    """Serialize a Report ORM instance to a plain dict."""
    return {
        "id": report.id,
        "user_id": report.user_id,
        "type": report.type,
        "status": report.status,
        "location": report.location,
        "description": report.description,
        "created_at": report.created_at.isoformat() if report.created_at else None,
    }


def parse_report_id(value: Any) -> int:
    """Coerce a report id to a positive integer.

    Raises:
        ValidationError: Not a positive integer
    """
    if isinstance(value, bool):
        raise ValidationError("Invalid report ID.", field="report_id")
    try:
        report_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid report ID.", field="report_id")
    if report_id <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("Invalid report ID.", field="report_id")
    return report_id


class ReportService:
    """Report creation, queries and status transitions.

    Attributes:
        report_repo: Report repository
        user_repo: User repository (reporter existence check)
    """

    def __init__(self, report_repo: ReportRepository, user_repo: UserRepository):
        self.report_repo = report_repo
        self.user_repo = user_repo

    async def create_report(
        self, user_id: int, report_type: str, location: str, description: str
    ) -> Report:
        """Create a pending report for an existing user.

        Args:
            user_id: Reporter id
            report_type: One of the ReportType values
            location: Where help is needed (non-empty)
            description: What happened (non-empty)

        Returns:
            Created Report with status pending

        Raises:
            ValidationError: Bad user id, type, location or description
            NotFoundError: Reporter does not exist
        """
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise ValidationError("Invalid user ID.", field="user_id")

        report_type = getattr(report_type, "value", report_type)
        if report_type not in REPORT_TYPE_VALUES:
            raise ValidationError(f"Unknown report type '{report_type}'.", field="type")

        location = (location or "").strip()
        if not location:
            raise ValidationError("Location is required.", field="location")

        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required.", field="description")

        if not await self.user_repo.get_by_id(user_id):
            raise NotFoundError("User", user_id)

        report = await self.report_repo.create(
            user_id=user_id,
            report_type=report_type,
            location=location,
            description=description,
        )
        logger.info(f"Report created: id={report.id} user={user_id} type={report_type}")
        return report

    async def get_report(self, report_id: int) -> Report:
        """Get a report by id.

        Raises:
            NotFoundError: Unknown report id
        """
        report = await self.report_repo.get_by_id(report_id)
        if not report:
            raise NotFoundError("Report", report_id)
        return report

    async def list_all(self) -> List[Dict[str, Any]]:
        """All reports with reporter name/email, newest first."""
        rows = await self.report_repo.list_all_with_reporter()
        return [
            {
                **serialize_report(report),
                "user_name": user_name,
                "user_email": user_email,
            }
            for report, user_name, user_email in rows
        ]

    async def list_for_user(self, user_id: int) -> List[Report]:
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise ValidationError("Invalid user ID.", field="user_id")
        return await self.report_repo.list_for_user(user_id)

    async def take_charge(self, report_id: int) -> Report:
        """pending → in_progress."""
        return await self._transition(report_id, ReportStatus.IN_PROGRESS.value)

    async def mark_resolved(self, report_id: int) -> Report:
        """in_progress → resolved."""
        return await self._transition(report_id, ReportStatus.RESOLVED.value)

    async def cancel_report(self, report_id: int) -> Report:
        """pending or in_progress → cancelled."""
        return await self._transition(report_id, ReportStatus.CANCELLED.value)

    async def stats(self) -> Dict[str, Any]:
        """Report counts in total, per status and per type."""
        by_status = await self.report_repo.count_by_status()
        by_type = await self.report_repo.count_by_type()
        return {
            "total": sum(by_status.values()),
            "by_status": {
                status.value: by_status.get(status.value, 0) for status in ReportStatus
            },
            "by_type": {
                report_type.value: by_type.get(report_type.value, 0)
                for report_type in ReportType
            },
        }

    async def _transition(self, report_id: int, target: str) -> Report:
        # Read-then-write; two concurrent callers may both pass the check.
        report = await self.get_report(report_id)
        current = report.status
        ensure_transition(current, target)

        updated = await self.report_repo.update_status(report_id, target)
        if not updated:
            raise NotFoundError("Report", report_id)

        logger.info(f"Report status changed: id={report_id} {current} -> {target}")
        return updated
