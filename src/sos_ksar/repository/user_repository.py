from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from sqlalchemy import func, select

if TYPE_CHECKING:
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient

from sos_ksar.constants import DEFAULT_ROLE
from sos_ksar.infrastructure.persistence.postgresql.models import User, utc_now


class UserRepository:
    """Repository for user operations.

    Users are created on sign-up or first OAuth login. The role column is
    only changed through update_role.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        email: str,
        name: str,
        role: str = DEFAULT_ROLE,
        email_verified: bool = False,
        image: Optional[str] = None,
    ) -> User:
        """Create new user.

        Args:
            email: Unique email address
            name: Display name
            role: citizen, volunteer or admin
            email_verified: Whether the email is known to be verified
            image: Optional avatar URL

        Returns:
            Created User instance (id populated)
        """
        async with self.client.session() as session:
            user = User(
                email=email,
                name=name,
                role=role,
                email_verified=email_verified,
                image=image,
            )
            session.add(user)
            await session.flush()
            return user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve user by ID.

        Args:
            user_id: Numeric user identifier

        Returns:
            User instance or None
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve user by email address.

        Args:
            email: Email address

        Returns:
            User instance or None
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def list_all(self) -> List[User]:
        """Retrieve all users ordered by creation date (oldest first)."""
        async with self.client.session() as session:
            result = await session.execute(select(User).order_by(User.created_at))
            return list(result.scalars().all())

    async def update_role(self, user_id: int, role: str) -> Optional[User]:
        """Change a user's role.

        Args:
            user_id: Numeric user identifier
            role: New role value

        Returns:
            Updated User instance or None if not found
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user:
                user.role = role
                user.updated_at = utc_now()
                await session.flush()
            return user

    async def update_profile(
        self,
        user_id: int,
        name: Optional[str] = None,
        image: Optional[str] = None,
        email_verified: Optional[bool] = None,
    ) -> Optional[User]:
        """Update profile fields refreshed on OAuth sign-in.

        Returns:
            Updated User instance or None if not found
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user:
                if name:
                    user.name = name
                if image is not None:
                    user.image = image
                if email_verified is not None:
                    user.email_verified = email_verified
                user.updated_at = utc_now()
                await session.flush()
            return user

    async def delete(self, user_id: int) -> bool:
        """Hard-delete a user; sessions, accounts and reports cascade.

        Returns:
            True if a row was deleted
        """
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if not user:
                return False
            await session.delete(user)
            await session.flush()
            return True

    async def count_by_role(self) -> Dict[str, int]:
        """Count users grouped by role."""
        async with self.client.session() as session:
            result = await session.execute(
                select(User.role, func.count(User.id)).group_by(User.role)
            )
            return {role: count for role, count in result.all()}
