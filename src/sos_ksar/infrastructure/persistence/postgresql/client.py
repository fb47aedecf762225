"""PostgreSQL engine and unit-of-work sessions for the repositories.

The engine is built lazily on connect() from the pool options held by the
client; build one from AppSettings with PostgreSQLClient.from_settings().
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from sos_ksar.config.app_settings import AppSettings

logger = logging.getLogger(__name__)


class PostgreSQLClient:
    """Owns the SQLAlchemy async engine shared by every repository.

    Attributes:
        url: asyncpg connection URL
        engine_options: Keyword arguments passed to create_async_engine
        engine: Engine, set while connected
        sessionmaker: Session factory, set while connected
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 10,
        pool_recycle_seconds: int = 3600,
        echo: bool = False,
    ):
        self.url = url
        self.engine_options: Dict[str, Any] = {
            "echo": echo,
            "pool_pre_ping": True,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_recycle": pool_recycle_seconds,
        }
        self.engine: Optional[AsyncEngine] = None
        self.sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "PostgreSQLClient":
        """Build a client with the URL and pool sizing from AppSettings."""
        return cls(
            settings.postgres_url,
            pool_size=settings.postgres_pool_size,
            max_overflow=settings.postgres_max_overflow,
            pool_recycle_seconds=settings.postgres_pool_recycle_seconds,
            echo=settings.postgres_echo,
        )

    @property
    def connected(self) -> bool:
        return self.engine is not None

    async def connect(self) -> None:
        """Create the engine and session factory. Safe to call twice."""
        if self.connected:
            return

        self.engine = create_async_engine(self.url, **self.engine_options)
        # Rows stay readable after commit; serializers run outside the session.
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)
        logger.debug(
            "PostgreSQL engine created: "
            f"pool_size={self.engine_options['pool_size']} "
            f"max_overflow={self.engine_options['max_overflow']}"
        )

    async def disconnect(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if not self.connected:
            return

        await self.engine.dispose()
        self.engine = None
        self.sessionmaker = None

    async def health_check(self) -> None:
        """Run SELECT 1; raises if the database is unreachable."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success and rolls back on error.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self.sessionmaker is None:
            raise RuntimeError("PostgreSQL client is not connected")

        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
