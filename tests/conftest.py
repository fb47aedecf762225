"""Root-level pytest configuration and shared fixtures.

Adds the src/ directory to sys.path so sos_ksar can be imported without installation.
Provides common mock factories and pytest fixtures used across all test suites.

Key exports:
    - Mock ORM factories (make_mock_user, make_mock_report, make_mock_item)
    - Mock repository factories (make_user_repo, make_report_repo, ...)
    - make_session_payload / make_provider / make_guard for the authorization core
    - InMemoryRedis: the redis.asyncio commands SessionCacheRepository uses, held in dicts
    - Pytest fixtures for every mock dependency
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ---------------------------------------------------------------------------
# Mock ORM objects
# ---------------------------------------------------------------------------


def make_mock_user(
    user_id: int = 1,
    email: str = "citizen@example.com",
    name: str = "Test Citizen",
    role: str = "citizen",
) -> MagicMock:
    """Build a mock User ORM object.

    Args:
        user_id: User primary key.
        email: User email.
        name: Display name.
        role: Stored role value.

    Returns:
        MagicMock with the User columns set.
    """
    user = MagicMock()
    user.id = user_id
    user.email = email
    user.name = name
    user.role = role
    user.email_verified = False
    user.image = None
    user.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return user


def make_mock_report(
    report_id: int = 10,
    user_id: int = 1,
    status: str = "pending",
    report_type: str = "medical",
    location: str = "Rue 12, Ksar",
    description: str = "Person injured",
) -> MagicMock:
    """Build a mock Report ORM object."""
    report = MagicMock()
    report.id = report_id
    report.user_id = user_id
    report.status = status
    report.type = report_type
    report.location = location
    report.description = description
    report.created_at = datetime(2026, 1, 2, tzinfo=timezone.utc)
    return report


def make_mock_item(
    item_id: int = 1,
    item_name: str = "first_aid_kit",
    quantity: int = 100,
    center_location: str = "Centre Principal",
) -> MagicMock:
    """Build a mock Inventory ORM object."""
    item = MagicMock()
    item.id = item_id
    item.item_name = item_name
    item.quantity = quantity
    item.center_location = center_location
    return item


# ---------------------------------------------------------------------------
# Mock repository factories
# ---------------------------------------------------------------------------


def make_user_repo(user: Optional[MagicMock] = None) -> MagicMock:
    """Build a mock UserRepository.

    get_by_email returns None by default so sign-up and create paths see a
    free email; get_by_id returns ``user``.
    """
    repo = MagicMock()
    default_user = user or make_mock_user()
    repo.create = AsyncMock(return_value=default_user)
    repo.get_by_id = AsyncMock(return_value=default_user)
    repo.get_by_email = AsyncMock(return_value=None)
    repo.list_all = AsyncMock(return_value=[default_user])
    repo.update_role = AsyncMock(return_value=default_user)
    repo.update_profile = AsyncMock(return_value=default_user)
    repo.delete = AsyncMock(return_value=True)
    repo.count_by_role = AsyncMock(return_value={"citizen": 3, "admin": 1})
    return repo


def make_account_repo(account: Optional[MagicMock] = None) -> MagicMock:
    """Build a mock AccountRepository."""
    repo = MagicMock()
    repo.create = AsyncMock(return_value=account or MagicMock())
    repo.get_by_provider = AsyncMock(return_value=None)
    repo.get_credential_for_user = AsyncMock(return_value=account)
    repo.update_password = AsyncMock(return_value=account)
    repo.update_tokens = AsyncMock(return_value=None)
    return repo


def make_session_repo(session_id: str = "01JSESSION0000000000000000") -> MagicMock:
    """Build a mock AuthSessionRepository with a fixed generated id."""
    repo = MagicMock()
    repo.generate_id = MagicMock(return_value=session_id)
    repo.create = AsyncMock(return_value=MagicMock())
    repo.get_with_user = AsyncMock(return_value=None)
    repo.delete = AsyncMock(return_value=True)
    return repo


def make_session_cache(ttl_seconds: int = 300) -> MagicMock:
    """Build a mock SessionCacheRepository that always misses."""
    cache = MagicMock()
    cache.ttl_seconds = ttl_seconds
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock(return_value=None)
    cache.delete = AsyncMock(return_value=None)
    cache.delete_for_user = AsyncMock(return_value=0)
    cache.put_oauth_state = AsyncMock(return_value=None)
    cache.pop_oauth_state = AsyncMock(return_value=None)
    return cache


def make_report_repo(
    report: Optional[MagicMock] = None,
    list_data: Optional[List[Tuple[MagicMock, Optional[str], Optional[str]]]] = None,
) -> MagicMock:
    """Build a mock ReportRepository.

    list_data holds (report, user_name, user_email) rows; update_status
    echoes the target status onto a fresh mock report.
    """
    repo = MagicMock()
    default_report = report or make_mock_report()
    repo.create = AsyncMock(return_value=default_report)
    repo.get_by_id = AsyncMock(return_value=default_report)
    repo.list_all_with_reporter = AsyncMock(return_value=list_data or [])
    repo.list_for_user = AsyncMock(return_value=[default_report])

    async def _update_status(report_id: int, status: str) -> MagicMock:
        return make_mock_report(
            report_id=report_id, user_id=default_report.user_id, status=status
        )

    repo.update_status = AsyncMock(side_effect=_update_status)
    repo.count_by_status = AsyncMock(return_value={"pending": 2, "resolved": 1})
    repo.count_by_type = AsyncMock(return_value={"fire": 3})
    return repo


def make_inventory_repo(items: Optional[List[MagicMock]] = None) -> MagicMock:
    """Build a mock InventoryRepository."""
    repo = MagicMock()
    default_items = items if items is not None else [make_mock_item()]
    repo.list_all = AsyncMock(return_value=default_items)
    repo.list_by_location = AsyncMock(return_value=default_items)
    repo.get_by_id = AsyncMock(return_value=default_items[0] if default_items else None)
    repo.create = AsyncMock(return_value=make_mock_item())
    repo.bulk_create = AsyncMock(return_value=default_items)
    repo.count = AsyncMock(return_value=0)

    async def _set_quantity(item_id: int, quantity: int) -> MagicMock:
        return make_mock_item(item_id=item_id, quantity=quantity)

    repo.set_quantity = AsyncMock(side_effect=_set_quantity)
    repo.totals_by_item = AsyncMock(return_value={"first_aid_kit": 100})
    repo.totals_by_location = AsyncMock(return_value={"Centre Principal": 100})
    return repo


# ---------------------------------------------------------------------------
# Authorization core helpers
# ---------------------------------------------------------------------------


def make_session_payload(
    role: Optional[str] = "citizen",
    user_id: Any = 1,
    email: str = "user@example.com",
    session_id: str = "01JSESSION0000000000000000",
) -> Dict[str, Any]:
    """Raw identity provider payload as returned by AuthService.get_session."""
    return {
        "user": {"id": user_id, "email": email, "name": "User", "role": role},
        "session": {
            "id": session_id,
            "expires_at": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
        },
    }


def make_provider(payload: Optional[Dict[str, Any]] = None) -> MagicMock:
    """Build an identity provider whose get_session returns ``payload``."""
    provider = MagicMock()
    provider.get_session = AsyncMock(return_value=payload)
    return provider


def make_guard(role: Optional[str] = "citizen", signed_in: bool = True):
    """Build a real AuthorizationGuard over a mocked provider.

    Args:
        role: Role the caller holds.
        signed_in: When False the provider reports no session.

    Returns:
        AuthorizationGuard
    """
    from sos_ksar.service.authorization_guard import AuthorizationGuard
    from sos_ksar.service.session_resolver import SessionResolver

    payload = make_session_payload(role=role) if signed_in else None
    return AuthorizationGuard(SessionResolver(make_provider(payload)))


# ---------------------------------------------------------------------------
# In-memory Redis
# ---------------------------------------------------------------------------


class InMemoryRedis:
    """Dict-backed stand-in for the redis.asyncio commands used by the cache.

    TTLs are recorded but never expire on their own.
    """

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.sets: Dict[str, set] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.values[key] = value
        self.ttls[key] = ttl

    async def getdel(self, key: str) -> Optional[str]:
        return self.values.pop(key, None)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None or self.sets.pop(key, None):
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def srem(self, key: str, *members: str) -> int:
        bucket = self.sets.get(key, set())
        before = len(bucket)
        bucket.difference_update(members)
        return before - len(bucket)

    async def smembers(self, key: str) -> set:
        return set(self.sets.get(key, set()))

    async def expire(self, key: str, ttl: int) -> bool:
        self.ttls[key] = ttl
        return True


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_repo() -> MagicMock:
    return make_user_repo()


@pytest.fixture
def account_repo() -> MagicMock:
    return make_account_repo()


@pytest.fixture
def session_repo() -> MagicMock:
    return make_session_repo()


@pytest.fixture
def session_cache() -> MagicMock:
    return make_session_cache()


@pytest.fixture
def report_repo() -> MagicMock:
    return make_report_repo()


@pytest.fixture
def inventory_repo() -> MagicMock:
    return make_inventory_repo()


@pytest.fixture
def request_context():
    """Empty request context; the mocked provider ignores headers."""
    from sos_ksar.service.session_resolver import RequestContext

    return RequestContext()
