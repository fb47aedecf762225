"""PostgreSQL-backed login sessions.

Each row is keyed by a ULID that doubles as the session token's jti claim.
Expired rows are left for purge_expired; readers treat them as absent.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import delete, select
from ulid import ULID

if TYPE_CHECKING:
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient

from sos_ksar.infrastructure.persistence.postgresql.models import (
    AuthSession,
    User,
    utc_now,
)

logger = logging.getLogger(__name__)


class AuthSessionRepository:
    """CRUD operations for login sessions.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    @staticmethod
    def generate_id() -> str:
        """Generate a new ULID string for use as session id and JWT jti."""
        return str(ULID())

    async def create(
        self,
        session_id: str,
        user_id: int,
        token: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthSession:
        """Persist a new session.

        Args:
            session_id: ULID (also the token jti)
            user_id: Authenticated user
            token: Signed session token
            expires_at: Absolute expiry (UTC)
            ip_address: Client address, informational
            user_agent: Client user agent, informational

        Returns:
            Created AuthSession instance
        """
        async with self.client.session() as session:
            auth_session = AuthSession(
                id=session_id,
                user_id=user_id,
                token=token,
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            session.add(auth_session)
            await session.flush()
            logger.debug(f"Session created: id={session_id} user={user_id}")
            return auth_session

    async def get_with_user(
        self, session_id: str
    ) -> Optional[tuple[AuthSession, User]]:
        """Load a session row together with its user.

        Args:
            session_id: ULID session id

        Returns:
            (AuthSession, User) or None when either side is missing
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(AuthSession, User)
                .join(User, User.id == AuthSession.user_id)
                .where(AuthSession.id == session_id)
            )
            row = result.first()
            if row is None:
                return None
            return row[0], row[1]

    async def delete(self, session_id: str) -> bool:
        """Delete one session (sign-out).

        Returns:
            True if a row was deleted
        """
        async with self.client.session() as session:
            result = await session.execute(
                delete(AuthSession).where(AuthSession.id == session_id)
            )
            return result.rowcount > 0

    async def delete_for_user(self, user_id: int) -> int:
        """Delete every session of a user.

        Returns:
            Number of sessions removed
        """
        async with self.client.session() as session:
            result = await session.execute(
                delete(AuthSession).where(AuthSession.user_id == user_id)
            )
            return result.rowcount

    async def purge_expired(self) -> int:
        """Delete sessions whose expiry has passed.

        Returns:
            Number of sessions removed
        """
        async with self.client.session() as session:
            result = await session.execute(
                delete(AuthSession).where(AuthSession.expires_at <= utc_now())
            )
            return result.rowcount
