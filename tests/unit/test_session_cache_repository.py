"""Unit tests for SessionCacheRepository over an in-memory Redis."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from sos_ksar.repository.session_cache_repository import SessionCacheRepository
from tests.conftest import InMemoryRedis, make_session_payload


@pytest.fixture
def redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache(redis: InMemoryRedis) -> SessionCacheRepository:
    return SessionCacheRepository(redis, ttl_seconds=300)


# ---------------------------------------------------------------------------
# Session payloads
# ---------------------------------------------------------------------------


class TestSessionPayloads:
    async def test_set_indexes_session_under_user(self, cache, redis) -> None:
        await cache.set("s1", make_session_payload("admin", user_id=7, session_id="s1"))

        assert redis.sets["user_sessions:7"] == {"s1"}
        assert redis.ttls["session_cache:s1"] == 300

    async def test_short_ttl_is_kept_but_index_outlives_it(self, cache, redis) -> None:
        await cache.set("s1", make_session_payload(user_id=7), ttl_seconds=30)

        assert redis.ttls["session_cache:s1"] == 30
        assert redis.ttls["user_sessions:7"] == 300

    async def test_non_positive_ttl_is_not_cached(self, cache) -> None:
        await cache.set("s1", make_session_payload(), ttl_seconds=0)

        assert await cache.get("s1") is None

    async def test_delete_unindexes_session(self, cache, redis) -> None:
        await cache.set("s1", make_session_payload(user_id=7))
        await cache.set("s2", make_session_payload(user_id=7))

        await cache.delete("s1")

        assert await cache.get("s1") is None
        assert redis.sets["user_sessions:7"] == {"s2"}

    async def test_delete_for_user_drops_every_session(self, cache, redis) -> None:
        await cache.set("s1", make_session_payload(user_id=7))
        await cache.set("s2", make_session_payload(user_id=7))
        await cache.set("s3", make_session_payload(user_id=8))

        dropped = await cache.delete_for_user(7)

        assert dropped == 2
        assert await cache.get("s1") is None
        assert await cache.get("s2") is None
        assert await cache.get("s3") is not None
        assert "user_sessions:7" not in redis.sets

    async def test_delete_for_user_without_sessions(self, cache) -> None:
        assert await cache.delete_for_user(99) == 0


# ---------------------------------------------------------------------------
# OAuth state
# ---------------------------------------------------------------------------


class TestOAuthState:
    async def test_state_round_trip(self, cache) -> None:
        await cache.put_oauth_state("abc", "/sos")

        assert await cache.pop_oauth_state("abc") == {"callback_url": "/sos"}

    async def test_state_is_consumed_once_under_concurrency(self, cache) -> None:
        await cache.put_oauth_state("abc", "/dashboard")

        results = await asyncio.gather(
            cache.pop_oauth_state("abc"), cache.pop_oauth_state("abc")
        )

        assert sorted(results, key=lambda r: r is None) == [
            {"callback_url": "/dashboard"},
            None,
        ]

    async def test_state_is_read_and_deleted_in_one_command(self) -> None:
        redis = MagicMock()
        redis.getdel = AsyncMock(return_value=json.dumps({"callback_url": "/sos"}))
        redis.get = AsyncMock()

        result = await SessionCacheRepository(redis).pop_oauth_state("abc")

        assert result == {"callback_url": "/sos"}
        redis.getdel.assert_awaited_once_with("oauth_state:abc")
        redis.get.assert_not_awaited()
