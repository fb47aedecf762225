from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from sqlalchemy import func, select

if TYPE_CHECKING:
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient

from sos_ksar.constants import ReportStatus
from sos_ksar.infrastructure.persistence.postgresql.models import Report, User


class ReportRepository:
    """Repository for SOS report operations.

    Status writes are plain updates; the lifecycle check happens in
    ReportService before update_status is called.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self, user_id: int, report_type: str, location: str, description: str
    ) -> Report:
        """Create a new report in the pending state.

        Args:
            user_id: Reporter
            report_type: Report type value
            location: Where help is needed
            description: What happened

        Returns:
            Created Report instance
        """
        async with self.client.session() as session:
            report = Report(
                user_id=user_id,
                type=report_type,
                status=ReportStatus.PENDING.value,
                location=location,
                description=description,
            )
            session.add(report)
            await session.flush()
            await session.refresh(report)
            return report

    async def get_by_id(self, report_id: int) -> Optional[Report]:
        """Retrieve report by ID.

        Args:
            report_id: Report identifier

        Returns:
            Report instance or None
        """
        async with self.client.session() as session:
            result = await session.execute(select(Report).where(Report.id == report_id))
            return result.scalar_one_or_none()

    async def list_all_with_reporter(
        self,
    ) -> List[Tuple[Report, Optional[str], Optional[str]]]:
        """Retrieve every report with its reporter's name and email, newest first.

        Reports whose user row is gone still appear with None reporter fields.

        Returns:
            (report, user_name, user_email) rows
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Report, User.name, User.email)
                .outerjoin(User, User.id == Report.user_id)
                .order_by(Report.created_at.desc())
            )
            return [
                (report, user_name, user_email)
                for report, user_name, user_email in result.all()
            ]

    async def list_for_user(self, user_id: int) -> List[Report]:
        """Retrieve one user's reports, newest first."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Report)
                .where(Report.user_id == user_id)
                .order_by(Report.created_at.desc())
            )
            return list(result.scalars().all())

    async def update_status(self, report_id: int, status: str) -> Optional[Report]:
        """Write a new status.

        Args:
            report_id: Report identifier
            status: New status value

        Returns:
            Updated Report instance or None if not found
        """
        async with self.client.session() as session:
            result = await session.execute(select(Report).where(Report.id == report_id))
            report = result.scalar_one_or_none()
            if report:
                report.status = status
                await session.flush()
            return report

    async def count_by_status(self) -> Dict[str, int]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Report.status, func.count(Report.id)).group_by(Report.status)
            )
            return {status: count for status, count in result.all()}

    async def count_by_type(self) -> Dict[str, int]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Report.type, func.count(Report.id)).group_by(Report.type)
            )
            return {report_type: count for report_type, count in result.all()}
