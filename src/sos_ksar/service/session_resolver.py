"""Resolve the caller's session into a canonical SessionUser.

The resolver asks the identity provider exactly once per call and
normalizes whatever comes back. Guards and the route gate only ever see
SessionUser, never the provider's raw payload.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol

from sos_ksar.constants import DEFAULT_ROLE, ROLE_VALUES
from sos_ksar.exception import InfrastructureError

logger = logging.getLogger(__name__)


class SessionProvider(Protocol):
    async def get_session(
        self, headers: Mapping[str, str], cookies: Optional[Mapping[str, str]] = None
    ) -> Optional[Dict[str, Any]]: ...


@dataclass(frozen=True)
class RequestContext:
    """Transport metadata a session can be resolved from.

    Attributes:
        headers: Request headers
        cookies: Request cookies
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        """Build a context from a Starlette/FastAPI request."""
        return cls(headers=dict(request.headers), cookies=dict(request.cookies))


@dataclass(frozen=True)
class SessionUser:
    """Canonical identity: string id, email and a known role."""

    id: str
    email: str
    role: str


@dataclass(frozen=True)
class SessionMeta:
    id: str
    expires_at: Optional[datetime]


@dataclass(frozen=True)
class SessionResult:
    user: SessionUser
    session: SessionMeta


def normalize_role(value: Any) -> str:
    """Map a raw role to one of the known roles, else the least-privileged one."""
    value = getattr(value, "value", value)
    if isinstance(value, str) and value in ROLE_VALUES:
        return value
    return DEFAULT_ROLE


def normalize_user(raw: Mapping[str, Any]) -> SessionUser:
    raw_id = raw.get("id")
    email = raw.get("email")
    return SessionUser(
        id="" if raw_id is None else str(raw_id),
        email=email if isinstance(email, str) else "",
        role=normalize_role(raw.get("role")),
    )


def _normalize_meta(raw: Mapping[str, Any]) -> SessionMeta:
    raw_id = raw.get("id")
    expires_at = raw.get("expires_at", raw.get("expiresAt"))
    if isinstance(expires_at, str):
        try:
            expires_at = datetime.fromisoformat(expires_at)
        except ValueError:
            expires_at = None
    if isinstance(expires_at, datetime) and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return SessionMeta(
        id="" if raw_id is None else str(raw_id),
        expires_at=expires_at if isinstance(expires_at, datetime) else None,
    )


class SessionResolver:
    """Reads the active session from the identity provider.

    Resolution is read-only and safe to repeat within a request. A provider
    failure is raised as InfrastructureError so callers can tell an
    unavailable backend apart from an anonymous caller.

    Attributes:
        provider: Identity provider exposing get_session(headers, cookies)
    """

    def __init__(self, provider: SessionProvider):
        self.provider = provider

    async def resolve(self, ctx: RequestContext) -> Optional[SessionResult]:
        """Resolve the session for a request context.

        Args:
            ctx: Request headers and cookies

        Returns:
            SessionResult, or None when there is no active session

        Raises:
            InfrastructureError: The provider could not be queried
        """
        try:
            raw = await self.provider.get_session(ctx.headers, ctx.cookies)
        except InfrastructureError:
            raise
        except Exception as e:
            logger.error(f"Session lookup failed: {e}", exc_info=True)
            raise InfrastructureError() from e

        if not raw:
            return None
        user = raw.get("user")
        if not user:
            return None

        return SessionResult(
            user=normalize_user(user),
            session=_normalize_meta(raw.get("session") or {}),
        )

    async def get_current_user(self, ctx: RequestContext) -> Optional[SessionUser]:
        """Return the caller's SessionUser, or None when anonymous."""
        result = await self.resolve(ctx)
        return result.user if result else None
