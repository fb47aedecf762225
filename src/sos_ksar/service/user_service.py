"""User administration: creation, lookup, role changes and statistics."""

import logging
from typing import Any, Dict, List, Optional

from sos_ksar.constants import ROLE_VALUES, UserRole
from sos_ksar.exception import NotFoundError, ResourceAlreadyExistsError, ValidationError
from sos_ksar.infrastructure.persistence.postgresql.models import User
from sos_ksar.repository.account_repository import (
    CREDENTIAL_PROVIDER,
    AccountRepository,
)
from sos_ksar.repository.session_cache_repository import SessionCacheRepository
from sos_ksar.repository.user_repository import UserRepository
from sos_ksar.service.auth_service import hash_password

logger = logging.getLogger(__name__)


class UserService:
    """Admin-side user management.

    Role changes and deletions drop the user's cached sessions, so the next
    lookup reads the user row again. Session rows are not revoked by a role
    change.

    Attributes:
        user_repo: User repository
        account_repo: Account repository (password accounts for created users)
        session_cache: Session payload cache; None where Redis is not wired
    """

    def __init__(
        self,
        user_repo: UserRepository,
        account_repo: AccountRepository,
        session_cache: Optional[SessionCacheRepository] = None,
    ):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.session_cache = session_cache

    @staticmethod
    def serialize_user(user: User) -> Dict[str, Any]:
        """Serialize a User ORM instance to a plain dict."""
        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "email_verified": bool(user.email_verified),
            "image": user.image,
            "created_at": user.created_at.isoformat() if user.created_at else None,
        }

    async def create_user(
        self,
        email: str,
        name: str,
        role: str = UserRole.CITIZEN.value,
        password: Optional[str] = None,
    ) -> User:
        """Create a user, optionally with an email/password account.

        Args:
            email: Unique email
            name: Display name
            role: Any known role (admins may create admins)
            password: Raw password; no credential account when omitted

        Returns:
            Created User

        Raises:
            ValidationError: Bad email, name or role
            ResourceAlreadyExistsError: Email already in use
        """
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email is required.", field="email")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required.", field="name")
        role = self._check_role(role)

        if await self.user_repo.get_by_email(email):
            raise ResourceAlreadyExistsError("This email is already in use.", field="email")

        user = await self.user_repo.create(email=email, name=name, role=role)
        if password:
            await self.account_repo.create(
                user_id=user.id,
                provider_id=CREDENTIAL_PROVIDER,
                account_id=str(user.id),
                password=hash_password(password),
            )
        logger.info(f"User created: id={user.id} role={role}")
        return user

    async def get_user(self, user_id: int) -> User:
        """Raises NotFoundError for an unknown id."""
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise ValidationError("Invalid user ID.", field="user_id")
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def get_user_by_email(self, email: str) -> User:
        """Raises NotFoundError for an unknown email."""
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Invalid email.", field="email")
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise NotFoundError("User", email)
        return user

    async def list_users(self) -> List[User]:
        return await self.user_repo.list_all()

    async def update_role(self, user_id: int, role: str) -> User:
        """Change a user's role.

        Raises:
            ValidationError: Unknown role
            NotFoundError: Unknown user
        """
        role = self._check_role(role)
        user = await self.user_repo.update_role(user_id, role)
        if not user:
            raise NotFoundError("User", user_id)
        await self._drop_cached_sessions(user_id)
        logger.info(f"User role updated: id={user_id} role={role}")
        return user

    async def set_password(self, user_id: int, password: str) -> None:
        """Replace the email/password credential, creating it if missing."""
        if not password:
            raise ValidationError("Password is required.", field="password")
        password_hash = hash_password(password)
        if not await self.account_repo.update_password(user_id, password_hash):
            await self.account_repo.create(
                user_id=user_id,
                provider_id=CREDENTIAL_PROVIDER,
                account_id=str(user_id),
                password=password_hash,
            )
        logger.info(f"Password set: user_id={user_id}")

    async def delete_user(self, user_id: int) -> None:
        """Remove a user with their sessions, accounts and reports."""
        if not await self.user_repo.delete(user_id):
            raise NotFoundError("User", user_id)
        await self._drop_cached_sessions(user_id)
        logger.info(f"User deleted: id={user_id}")

    async def stats(self) -> Dict[str, Any]:
        by_role = await self.user_repo.count_by_role()
        return {
            "total": sum(by_role.values()),
            "by_role": {role.value: by_role.get(role.value, 0) for role in UserRole},
        }

    async def _drop_cached_sessions(self, user_id: int) -> None:
        if self.session_cache is not None:
            await self.session_cache.delete_for_user(user_id)

    @staticmethod
    def _check_role(role: Any) -> str:
        role = getattr(role, "value", role)
        if role not in ROLE_VALUES:
            raise ValidationError(f"Unknown role '{role}'.", field="role")
        return role
