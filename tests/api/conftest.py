"""Shared fixtures for API (controller) tests.

Builds a FastAPI test application with the route gate and error handler
installed and every service injected via app.state. The authorization core
is real (SessionResolver + AuthorizationGuard) on top of a mocked identity
provider, so tests switch the caller's identity through ``sign_in_as``.
Services run over mocked repositories.

Key exports:
    - provider: mocked identity provider (get_session)
    - sign_in_as: callable setting the caller's role (None = anonymous)
    - report_repo / inventory_repo / user_repo / account_repo: mocked repositories
    - auth_service: mocked AuthService
    - app: FastAPI instance with all routers mounted and mocks injected
    - client: TestClient that does not follow redirects
"""

import sys
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from tests.conftest import (  # noqa: E402
    make_account_repo,
    make_inventory_repo,
    make_provider,
    make_report_repo,
    make_session_payload,
    make_user_repo,
)


def _make_auth_service() -> MagicMock:
    service = MagicMock()
    service.sign_up_email = AsyncMock()
    service.sign_in_email = AsyncMock()
    service.sign_in_social_url = AsyncMock()
    service.complete_social_sign_in = AsyncMock()
    service.sign_out = AsyncMock(return_value=True)
    return service


def _make_test_app(
    provider: MagicMock,
    auth_service: MagicMock,
    report_repo: MagicMock,
    inventory_repo: MagicMock,
    user_repo: MagicMock,
    account_repo: MagicMock,
) -> FastAPI:
    """Build a FastAPI app wired like main.py, minus the lifespan.

    Args:
        provider: Identity provider behind the SessionResolver.
        auth_service: Mocked AuthService for the auth endpoints.
        report_repo: Mocked ReportRepository.
        inventory_repo: Mocked InventoryRepository.
        user_repo: Mocked UserRepository.
        account_repo: Mocked AccountRepository.

    Returns:
        Configured FastAPI test application.
    """
    from sos_ksar.config.app_settings import AppSettings
    from sos_ksar.controller import (
        auth_controller,
        command_center_controller,
        health_controller,
        inventory_controller,
        page_controller,
        report_controller,
        user_controller,
    )
    from sos_ksar.middleware import ErrorHandlerMiddleware, RouteGateMiddleware
    from sos_ksar.service.authorization_guard import AuthorizationGuard
    from sos_ksar.service.command_center_service import CommandCenterService
    from sos_ksar.service.inventory_service import InventoryService
    from sos_ksar.service.report_service import ReportService
    from sos_ksar.service.session_resolver import SessionResolver
    from sos_ksar.service.user_service import UserService

    _app = FastAPI()

    resolver = SessionResolver(provider)
    guard = AuthorizationGuard(resolver)
    report_service = ReportService(report_repo, user_repo)
    inventory_service = InventoryService(inventory_repo)

    postgres_client = MagicMock()
    postgres_client.health_check = AsyncMock(return_value=None)
    redis_client = MagicMock()
    redis_client.health_check = AsyncMock(return_value=None)

    _app.state.app_settings = AppSettings()
    _app.state.debug = False
    _app.state.environment = "test"
    _app.state.postgres_client = postgres_client
    _app.state.redis_client = redis_client
    _app.state.auth_service = auth_service
    _app.state.session_resolver = resolver
    _app.state.auth_guard = guard
    _app.state.report_service = report_service
    _app.state.inventory_service = inventory_service
    _app.state.user_service = UserService(user_repo, account_repo)
    _app.state.command_center_service = CommandCenterService(
        guard=guard,
        report_service=report_service,
        inventory_service=inventory_service,
    )

    _app.add_middleware(RouteGateMiddleware)
    _app.add_middleware(ErrorHandlerMiddleware)

    _app.include_router(health_controller.router)
    _app.include_router(auth_controller.router)
    _app.include_router(report_controller.router)
    _app.include_router(inventory_controller.router)
    _app.include_router(user_controller.router)
    _app.include_router(command_center_controller.router)
    _app.include_router(page_controller.router)

    return _app


# ---------------------------------------------------------------------------
# Fixtures - identity
# ---------------------------------------------------------------------------


@pytest.fixture
def provider() -> MagicMock:
    """Identity provider; anonymous until sign_in_as is called."""
    return make_provider(None)


@pytest.fixture
def sign_in_as(provider: MagicMock) -> Callable[[Optional[str]], None]:
    """Switch the caller's identity.

    ``sign_in_as("admin")`` makes every session lookup return an admin;
    ``sign_in_as(None)`` makes the caller anonymous again.
    """

    def _sign_in(role: Optional[str], user_id: int = 1) -> None:
        provider.get_session.return_value = (
            make_session_payload(role=role, user_id=user_id) if role else None
        )

    return _sign_in


# ---------------------------------------------------------------------------
# Fixtures - mocked services and repositories
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_service() -> MagicMock:
    return _make_auth_service()


@pytest.fixture
def report_repo() -> MagicMock:
    return make_report_repo()


@pytest.fixture
def inventory_repo() -> MagicMock:
    return make_inventory_repo()


@pytest.fixture
def user_repo() -> MagicMock:
    return make_user_repo()


@pytest.fixture
def account_repo() -> MagicMock:
    return make_account_repo()


# ---------------------------------------------------------------------------
# Fixtures - application and client
# ---------------------------------------------------------------------------


@pytest.fixture
def app(
    provider: MagicMock,
    auth_service: MagicMock,
    report_repo: MagicMock,
    inventory_repo: MagicMock,
    user_repo: MagicMock,
    account_repo: MagicMock,
) -> FastAPI:
    return _make_test_app(
        provider, auth_service, report_repo, inventory_repo, user_repo, account_repo
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """TestClient that reports redirects instead of following them."""
    return TestClient(app, follow_redirects=False)
