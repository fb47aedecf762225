from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import select

if TYPE_CHECKING:
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient

from sos_ksar.infrastructure.persistence.postgresql.models import Account, utc_now

CREDENTIAL_PROVIDER = "credential"


class AccountRepository:
    """Repository for credential and OAuth account links.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        user_id: int,
        provider_id: str,
        account_id: str,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        id_token: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> Account:
        """Link an account to a user.

        Args:
            user_id: Owning user
            provider_id: "credential" or OAuth provider name
            account_id: Provider-side identifier (user id for credentials)
            password: argon2 hash, credential accounts only
            access_token: OAuth access token
            refresh_token: OAuth refresh token
            id_token: OpenID id_token
            scope: Granted OAuth scopes

        Returns:
            Created Account instance
        """
        async with self.client.session() as session:
            account = Account(
                user_id=user_id,
                provider_id=provider_id,
                account_id=account_id,
                password=password,
                access_token=access_token,
                refresh_token=refresh_token,
                id_token=id_token,
                scope=scope,
            )
            session.add(account)
            await session.flush()
            return account

    async def get_by_provider(
        self, provider_id: str, account_id: str
    ) -> Optional[Account]:
        """Retrieve the account for a provider-side identity."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Account).where(
                    Account.provider_id == provider_id,
                    Account.account_id == account_id,
                )
            )
            return result.scalar_one_or_none()

    async def get_credential_for_user(self, user_id: int) -> Optional[Account]:
        """Retrieve the email/password account of a user, if any."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Account).where(
                    Account.user_id == user_id,
                    Account.provider_id == CREDENTIAL_PROVIDER,
                )
            )
            return result.scalar_one_or_none()

    async def update_password(self, user_id: int, password: str) -> Optional[Account]:
        """Replace the stored password hash of a credential account."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Account).where(
                    Account.user_id == user_id,
                    Account.provider_id == CREDENTIAL_PROVIDER,
                )
            )
            account = result.scalar_one_or_none()
            if account:
                account.password = password
                account.updated_at = utc_now()
                await session.flush()
            return account

    async def update_tokens(
        self,
        account_pk: str,
        access_token: Optional[str],
        refresh_token: Optional[str],
        id_token: Optional[str],
        scope: Optional[str],
    ) -> None:
        """Refresh OAuth tokens after a repeat sign-in.

        A missing refresh token keeps the stored one (Google only sends it on
        first consent).
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Account).where(Account.id == account_pk)
            )
            account = result.scalar_one_or_none()
            if account:
                account.access_token = access_token
                if refresh_token:
                    account.refresh_token = refresh_token
                account.id_token = id_token
                account.scope = scope
                account.updated_at = utc_now()
                await session.flush()
