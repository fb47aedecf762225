"""Redis-backed cache of resolved sessions and pending OAuth states.

Avoids a PostgreSQL round-trip on every request. Entries are short-lived
(session_cache_seconds) and never outlive the session row they mirror.

Redis key layout:
  session_cache:{session_id}    → JSON session payload, TTL
  user_sessions:{user_id}       → Redis Set of cached session ids (bulk drop)
  oauth_state:{state}           → JSON {callback_url}, TTL
"""

import json
import logging
from typing import Any, Dict, Optional

from sos_ksar.constants import DEFAULT_SESSION_CACHE_SECONDS, OAUTH_STATE_TTL_SECONDS

logger = logging.getLogger(__name__)

SESSION_CACHE_KEY_PREFIX = "session_cache"
USER_SESSIONS_KEY_PREFIX = "user_sessions"
OAUTH_STATE_KEY_PREFIX = "oauth_state"


def _session_key(session_id: str) -> str:
    return f"{SESSION_CACHE_KEY_PREFIX}:{session_id}"


def _user_sessions_key(user_id: Any) -> str:
    return f"{USER_SESSIONS_KEY_PREFIX}:{user_id}"


def _payload_user_id(payload: Dict[str, Any]) -> Optional[Any]:
    return (payload.get("user") or {}).get("id")


def _state_key(state: str) -> str:
    return f"{OAUTH_STATE_KEY_PREFIX}:{state}"


class SessionCacheRepository:
    """Get/set/delete operations for cached session payloads.

    Attributes:
        redis: Redis async client
        ttl_seconds: Cache lifetime for session payloads
    """

    def __init__(self, redis, ttl_seconds: int = DEFAULT_SESSION_CACHE_SECONDS):
        """Initialize the cache.

        Args:
            redis: Connected redis.asyncio.Redis client
            ttl_seconds: Cache TTL (default 5 minutes)
        """
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    async def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a cached session payload.

        Args:
            session_id: Session id (token jti)

        Returns:
            Payload dict or None on cache miss
        """
        raw = await self.redis.get(_session_key(session_id))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(
        self, session_id: str, payload: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        """Cache a session payload and index it under its user.

        Args:
            session_id: Session id (token jti)
            payload: JSON-serializable session payload
            ttl_seconds: Override TTL; never longer than the session's remaining life
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        if ttl <= 0:
            return
        await self.redis.setex(_session_key(session_id), ttl, json.dumps(payload))

        user_id = _payload_user_id(payload)
        if user_id is not None:
            user_key = _user_sessions_key(user_id)
            await self.redis.sadd(user_key, session_id)
            # Outlives every entry it indexes.
            await self.redis.expire(user_key, max(ttl, self.ttl_seconds))

    async def delete(self, session_id: str) -> None:
        """Drop a cached session (sign-out)."""
        raw = await self.redis.get(_session_key(session_id))
        if raw:
            user_id = _payload_user_id(json.loads(raw))
            if user_id is not None:
                await self.redis.srem(_user_sessions_key(user_id), session_id)
        await self.redis.delete(_session_key(session_id))
        logger.debug(f"Session cache dropped: id={session_id}")

    async def delete_for_user(self, user_id: Any) -> int:
        """Drop every cached session of a user.

        Called after a role change or deletion so the next lookup goes back
        to PostgreSQL.

        Args:
            user_id: User identifier

        Returns:
            Number of session ids that were indexed for the user
        """
        user_key = _user_sessions_key(user_id)
        session_ids = await self.redis.smembers(user_key)

        if session_ids:
            await self.redis.delete(*[_session_key(sid) for sid in session_ids])

        await self.redis.delete(user_key)
        logger.debug(
            f"Session cache dropped for user={user_id} count={len(session_ids)}"
        )
        return len(session_ids)

    async def put_oauth_state(
        self, state: str, callback_url: str, ttl_seconds: int = OAUTH_STATE_TTL_SECONDS
    ) -> None:
        """Remember an OAuth state value until the provider calls back."""
        await self.redis.setex(
            _state_key(state), ttl_seconds, json.dumps({"callback_url": callback_url})
        )

    async def pop_oauth_state(self, state: str) -> Optional[Dict[str, Any]]:
        """Consume an OAuth state value. A state can only be used once.

        Returns:
            Stored data or None when the state is unknown or expired
        """
        raw = await self.redis.getdel(_state_key(state))
        if raw is None:
            return None
        return json.loads(raw)
