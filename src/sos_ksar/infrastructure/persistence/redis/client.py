"""Redis connection for the session cache and the OAuth state store.

Build one from AppSettings with RedisClient.from_settings(); the pool is
bounded by redis_max_connections and every command by a socket timeout.
"""

import logging
from typing import TYPE_CHECKING, Optional

from redis.asyncio import Redis

if TYPE_CHECKING:
    from sos_ksar.config.app_settings import AppSettings

logger = logging.getLogger(__name__)


class RedisClient:
    """Holds one redis.asyncio client with decoded (str) responses.

    Attributes:
        url: Redis connection URL
        db: Database number for the session cache and OAuth state
        max_connections: Connection pool bound
        socket_timeout: Per-command timeout in seconds
        client: Redis client, set while connected
    """

    def __init__(
        self,
        url: str,
        db: int = 0,
        max_connections: int = 50,
        socket_timeout: float = 5.0,
    ):
        self.url = url
        self.db = db
        self.max_connections = max_connections
        self.socket_timeout = socket_timeout
        self.client: Optional[Redis] = None

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "RedisClient":
        """Build a client with the URL and pool sizing from AppSettings."""
        return cls(
            settings.redis_url,
            db=settings.redis_default_db,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )

    async def connect(self) -> None:
        """Create the client. No command is sent until first use."""
        if self.client is not None:
            return

        self.client = Redis.from_url(
            self.url,
            db=self.db,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            decode_responses=True,
        )
        logger.debug(
            f"Redis client created: db={self.db} max_connections={self.max_connections}"
        )

    async def disconnect(self) -> None:
        if self.client is None:
            return

        await self.client.aclose()
        self.client = None

    async def health_check(self) -> None:
        """PING the server; raises if Redis is unreachable."""
        await self.get_client().ping()

    def get_client(self) -> Redis:
        """Return the connected client.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self.client is None:
            raise RuntimeError("Redis client is not connected")
        return self.client
