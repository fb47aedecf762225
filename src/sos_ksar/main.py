"""SOS Ksar FastAPI application.

This module initializes and configures the SOS Ksar emergency reporting
API with middleware, routers, and lifecycle management.
"""

# ruff: noqa: E402  - load_dotenv() must run before any sos_ksar imports that read env

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from sos_ksar import __version__
from sos_ksar.config.app_settings import AppSettings, get_settings
from sos_ksar.controller import (
    auth_controller,
    command_center_controller,
    health_controller,
    inventory_controller,
    page_controller,
    report_controller,
    user_controller,
)
from sos_ksar.infrastructure.oauth import GoogleOAuthClient
from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient
from sos_ksar.infrastructure.persistence.redis.client import RedisClient
from sos_ksar.middleware import ErrorHandlerMiddleware, RouteGateMiddleware
from sos_ksar.repository.account_repository import AccountRepository
from sos_ksar.repository.auth_session_repository import AuthSessionRepository
from sos_ksar.repository.inventory_repository import InventoryRepository
from sos_ksar.repository.report_repository import ReportRepository
from sos_ksar.repository.session_cache_repository import SessionCacheRepository
from sos_ksar.repository.user_repository import UserRepository
from sos_ksar.service.auth_service import AuthService
from sos_ksar.service.authorization_guard import AuthorizationGuard
from sos_ksar.service.command_center_service import CommandCenterService
from sos_ksar.service.inventory_service import InventoryService
from sos_ksar.service.report_service import ReportService
from sos_ksar.service.session_resolver import SessionResolver
from sos_ksar.service.user_service import UserService

app_settings = get_settings()

logging.basicConfig(
    level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def initialize_database_clients(
    app_settings: AppSettings,
) -> tuple[PostgreSQLClient, RedisClient]:
    """Initialize and connect all database clients."""
    postgres_client = PostgreSQLClient.from_settings(app_settings)
    await postgres_client.connect()

    redis_client = RedisClient.from_settings(app_settings)
    await redis_client.connect()

    logger.info("Database connections established")
    return postgres_client, redis_client


def create_postgresql_repositories(
    postgres_client: PostgreSQLClient,
) -> Dict[str, Any]:
    """Create one repository per table."""
    return {
        "user_repo": UserRepository(postgres_client),
        "account_repo": AccountRepository(postgres_client),
        "session_repo": AuthSessionRepository(postgres_client),
        "report_repo": ReportRepository(postgres_client),
        "inventory_repo": InventoryRepository(postgres_client),
    }


def create_google_client(app_settings: AppSettings) -> Optional[GoogleOAuthClient]:
    """Build the Google OAuth client, or None when credentials are missing."""
    if not app_settings.google_oauth_configured():
        logger.warning("Google OAuth not configured; social sign-in disabled")
        return None
    return GoogleOAuthClient(
        client_id=app_settings.google_client_id,
        client_secret=app_settings.google_client_secret,
        redirect_uri=f"{app_settings.base_url.rstrip('/')}/api/auth/callback/google",
    )


def create_application_services(
    repositories: Dict[str, Any],
    session_cache: SessionCacheRepository,
    app_settings: AppSettings,
) -> Dict[str, Any]:
    """Wire the identity provider, authorization core and domain services."""
    auth_service = AuthService(
        user_repo=repositories["user_repo"],
        account_repo=repositories["account_repo"],
        session_repo=repositories["session_repo"],
        session_cache=session_cache,
        secret_key=app_settings.secret_key,
        algorithm=app_settings.jwt_algorithm,
        session_expire_days=app_settings.session_expire_days,
        cookie_name=app_settings.session_cookie_name,
        min_password_length=app_settings.min_password_length,
        max_password_length=app_settings.max_password_length,
        google_client=create_google_client(app_settings),
    )
    session_resolver = SessionResolver(auth_service)
    auth_guard = AuthorizationGuard(session_resolver)

    report_service = ReportService(repositories["report_repo"], repositories["user_repo"])
    inventory_service = InventoryService(repositories["inventory_repo"])
    user_service = UserService(
        repositories["user_repo"], repositories["account_repo"], session_cache
    )
    command_center_service = CommandCenterService(
        guard=auth_guard,
        report_service=report_service,
        inventory_service=inventory_service,
    )

    return {
        "auth_service": auth_service,
        "session_resolver": session_resolver,
        "auth_guard": auth_guard,
        "report_service": report_service,
        "inventory_service": inventory_service,
        "user_service": user_service,
        "command_center_service": command_center_service,
    }


async def disconnect_database_clients(
    postgres_client: PostgreSQLClient, redis_client: RedisClient
) -> None:
    """Disconnect all database clients."""
    await postgres_client.disconnect()
    await redis_client.disconnect()
    logger.info("Database connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("=== SOS Ksar Startup ===")

    app.state.app_settings = app_settings

    if app_settings.is_production():
        for problem in app_settings.validate_production_config():
            logger.warning(f"Production configuration: {problem}")

    postgres_client, redis_client = await initialize_database_clients(app_settings)
    app.state.postgres_client = postgres_client
    app.state.redis_client = redis_client

    repositories = create_postgresql_repositories(postgres_client)
    session_cache = SessionCacheRepository(
        redis=redis_client.get_client(),
        ttl_seconds=app_settings.session_cache_seconds,
    )

    services = create_application_services(repositories, session_cache, app_settings)
    for name, service in services.items():
        setattr(app.state, name, service)

    logger.info("=== SOS Ksar Ready ===")

    yield

    logger.info("=== SOS Ksar Shutdown ===")
    await disconnect_database_clients(postgres_client, redis_client)
    logger.info("=== SOS Ksar Stopped ===")


def configure_cors_middleware(application: FastAPI, allowed_origins: list[str]) -> None:
    """Configure CORS middleware with specified origins."""
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def configure_route_gate_middleware(application: FastAPI) -> None:
    """Configure the route gate.

    The session resolver is read from app.state during each request, so the
    gate can be registered before the lifespan starts.
    """
    application.add_middleware(RouteGateMiddleware)


def configure_error_handlers_middleware(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Set up the outermost error handler so gate failures are formatted too."""
    application.state.debug = app_settings.debug
    application.state.environment = app_settings.environment

    application.add_middleware(ErrorHandlerMiddleware)

    logger.info(
        "Error handling middleware configured",
        extra={
            "debug": application.state.debug,
            "environment": application.state.environment,
        },
    )


def register_api_routers(application: FastAPI) -> None:
    """Register all route controllers."""
    application.include_router(health_controller.router)
    application.include_router(auth_controller.router)
    application.include_router(report_controller.router)
    application.include_router(inventory_controller.router)
    application.include_router(user_controller.router)
    application.include_router(command_center_controller.router)
    application.include_router(page_controller.router)


app = FastAPI(
    title="SOS Ksar",
    description="""
# Emergency Reporting Platform

Citizens submit SOS reports, volunteers and admins triage them from the
command center, and an inventory table tracks relief supplies.

## Authentication

Sign in through `/api/auth/sign-in/email` or Google. The session token is
set as an httponly cookie and is also accepted as:
```
Authorization: Bearer <session_token>
```
""",
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Service availability."},
        {"name": "auth", "description": "Sign-up, sign-in, sign-out and session."},
        {"name": "reports", "description": "SOS reports."},
        {"name": "inventory", "description": "Relief supply stock."},
        {"name": "users", "description": "User administration (admin only)."},
        {
            "name": "command-center",
            "description": "Report triage for volunteers and admins.",
        },
        {"name": "pages", "description": "Page contexts for the web UI."},
    ],
)

cors_origins = app_settings.cors_origins if app_settings.cors_origins else ["*"]
configure_cors_middleware(app, cors_origins)
configure_route_gate_middleware(app)
configure_error_handlers_middleware(app, app_settings)

register_api_routers(app)

logger.info("SOS Ksar application configured")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sos_ksar.main:app",
        host=app_settings.api_host,
        port=app_settings.api_port,
        reload=app_settings.debug,
    )
