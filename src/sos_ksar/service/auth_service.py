"""Identity provider: sign-up, sign-in, sign-out and session lookup.

Handles credential verification (argon2 via passlib), Google OAuth account
linking, session token issuance (JWT whose jti is the ULID session id) and
the single session-lookup primitive used by the SessionResolver.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote, urlsplit

import httpx
import jwt
from passlib.context import CryptContext

from sos_ksar.constants import (
    DASHBOARD_PATH,
    DEFAULT_ROLE,
    DEFAULT_SESSION_COOKIE_NAME,
    DEFAULT_SESSION_EXPIRE_DAYS,
    SELF_SIGNUP_ROLES,
    UserRole,
)
from sos_ksar.exception import (
    ConfigurationError,
    InfrastructureError,
    InvalidCredentialsError,
    ResourceAlreadyExistsError,
    UnauthorizedError,
    ValidationError,
)
from sos_ksar.infrastructure.oauth import GoogleOAuthClient
from sos_ksar.infrastructure.oauth.google import PROVIDER_ID as GOOGLE_PROVIDER_ID
from sos_ksar.repository.account_repository import (
    CREDENTIAL_PROVIDER,
    AccountRepository,
)
from sos_ksar.repository.auth_session_repository import AuthSessionRepository
from sos_ksar.repository.session_cache_repository import SessionCacheRepository
from sos_ksar.repository.user_repository import UserRepository

logger = logging.getLogger(__name__)

GOOGLE_NOT_CONFIGURED_MESSAGE = (
    "Google OAuth is not configured. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET."
)

_pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain: str) -> str:
    """Hash a plain-text password using argon2.

    Args:
        plain: Plain-text password

    Returns:
        argon2 hash string
    """
    return _pwd_context.hash(plain)


def verify_password(plain: str, stored_hash: Optional[str]) -> bool:
    """Verify a password against a stored argon2 hash.

    Unknown or malformed hashes never match.
    """
    if not stored_hash:
        return False
    try:
        return _pwd_context.verify(plain, stored_hash)
    except ValueError:
        return False


def callback_for_role(role: str) -> str:
    """Dashboard a freshly signed-up user lands on."""
    if role == UserRole.VOLUNTEER.value:
        return f"{DASHBOARD_PATH}/{UserRole.VOLUNTEER.value}"
    return f"{DASHBOARD_PATH}/{UserRole.CITIZEN.value}"


def safe_callback_url(callback_url: Optional[str]) -> str:
    """Return callback_url if it is a same-site path, else the dashboard root.

    Browsers read a backslash as a slash and drop tabs and newlines, either
    of which can turn a path into a scheme-relative URL to another host.
    Checked on the raw and the percent-decoded value.
    """
    if not callback_url:
        return DASHBOARD_PATH
    for candidate in (callback_url, unquote(callback_url)):
        if not candidate.startswith("/") or candidate.startswith("//"):
            return DASHBOARD_PATH
        if "\\" in candidate or any(ord(ch) < 32 or ord(ch) == 127 for ch in candidate):
            return DASHBOARD_PATH
        parts = urlsplit(candidate)
        if parts.scheme or parts.netloc:
            return DASHBOARD_PATH
    return callback_url


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def _parse_expiry(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        expires_at = value
    elif isinstance(value, str) and value:
        try:
            expires_at = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at


@dataclass
class SignInResult:
    """Outcome of a successful sign-up or sign-in.

    Attributes:
        token: Signed session token (set as the session cookie)
        expires_at: Absolute session expiry
        user_id: Authenticated user id
        role: Role of the user at sign-in
        callback_url: Where the browser should go next
    """

    token: str
    expires_at: datetime
    user_id: int
    role: str
    callback_url: str


class AuthService:
    """Email/password and Google sign-in backed by PostgreSQL and Redis.

    Attributes:
        user_repo: User repository
        account_repo: Credential and OAuth account repository
        session_repo: Session row repository
        session_cache: Redis session cache
        secret_key: Token signing key
        algorithm: Token signing algorithm
        session_ttl: Session lifetime
        cookie_name: Session cookie name
        min_password_length: Minimum accepted password length
        max_password_length: Maximum accepted password length
        google_client: Google OAuth client, None when not configured
    """

    def __init__(
        self,
        user_repo: UserRepository,
        account_repo: AccountRepository,
        session_repo: AuthSessionRepository,
        session_cache: SessionCacheRepository,
        secret_key: str,
        algorithm: str = "HS256",
        session_expire_days: int = DEFAULT_SESSION_EXPIRE_DAYS,
        cookie_name: str = DEFAULT_SESSION_COOKIE_NAME,
        min_password_length: int = 8,
        max_password_length: int = 128,
        google_client: Optional[GoogleOAuthClient] = None,
    ):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.session_repo = session_repo
        self.session_cache = session_cache
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.session_ttl = timedelta(days=session_expire_days)
        self.cookie_name = cookie_name
        self.min_password_length = min_password_length
        self.max_password_length = max_password_length
        self.google_client = google_client

    async def sign_up_email(
        self,
        name: str,
        email: str,
        password: str,
        role: str = DEFAULT_ROLE,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignInResult:
        """Register a citizen or volunteer and open a session.

        Args:
            name: Display name; falls back to the email local part
            email: Email address (unique)
            password: Plain-text password
            role: citizen or volunteer
            ip_address: Client address
            user_agent: Client user agent

        Returns:
            SignInResult with a role-specific dashboard callback

        Raises:
            ValidationError: Bad role, email or password length
            ResourceAlreadyExistsError: Email already registered
        """
        role = getattr(role, "value", role)
        if role not in SELF_SIGNUP_ROLES:
            raise ValidationError("Invalid role selected.", field="role")

        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email is required.", field="email")

        if not (
            self.min_password_length <= len(password or "") <= self.max_password_length
        ):
            raise ValidationError(
                f"Password must be between {self.min_password_length} and "
                f"{self.max_password_length} characters.",
                field="password",
            )

        if await self.user_repo.get_by_email(email):
            raise ResourceAlreadyExistsError("User already exists.", field="email")

        display_name = (name or "").strip() or email.split("@")[0] or "User"
        user = await self.user_repo.create(email=email, name=display_name, role=role)
        await self.account_repo.create(
            user_id=user.id,
            provider_id=CREDENTIAL_PROVIDER,
            account_id=str(user.id),
            password=hash_password(password),
        )

        result = await self._start_session(
            user, callback_for_role(role), ip_address, user_agent
        )
        logger.info(f"User signed up: user_id={user.id} role={role}")
        return result

    async def sign_in_email(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignInResult:
        """Verify email and password and open a session.

        Raises:
            InvalidCredentialsError: Unknown email, no password account or bad password
        """
        email = (email or "").strip().lower()
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise InvalidCredentialsError()

        account = await self.account_repo.get_credential_for_user(user.id)
        if not account or not verify_password(password or "", account.password):
            raise InvalidCredentialsError()

        result = await self._start_session(user, DASHBOARD_PATH, ip_address, user_agent)
        logger.info(f"User signed in: user_id={user.id}")
        return result

    async def sign_in_social_url(self, callback_url: str = DASHBOARD_PATH) -> str:
        """Start a Google sign-in.

        Args:
            callback_url: Where to send the browser once sign-in completes

        Returns:
            Google consent-screen URL

        Raises:
            ConfigurationError: Google client id/secret missing
        """
        if self.google_client is None:
            raise ConfigurationError(GOOGLE_NOT_CONFIGURED_MESSAGE)

        callback_url = safe_callback_url(callback_url)

        state = secrets.token_urlsafe(32)
        await self.session_cache.put_oauth_state(state, callback_url)
        return self.google_client.authorization_url(state)

    async def complete_social_sign_in(
        self,
        code: str,
        state: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignInResult:
        """Finish a Google sign-in started by sign_in_social_url.

        The first Google login for an unknown email creates a citizen.

        Raises:
            ConfigurationError: Google client id/secret missing
            UnauthorizedError: Unknown or reused state, or unusable profile
            InfrastructureError: Google unreachable or rejected the code
        """
        if self.google_client is None:
            raise ConfigurationError(GOOGLE_NOT_CONFIGURED_MESSAGE)

        stored = await self.session_cache.pop_oauth_state(state) if state else None
        if stored is None:
            raise UnauthorizedError(
                "Invalid or expired sign-in attempt.", code="INVALID_OAUTH_STATE"
            )

        try:
            profile = await self.google_client.exchange_code(code)
        except httpx.HTTPError as e:
            logger.error(f"Google code exchange failed: {e}")
            raise InfrastructureError("Google sign-in failed") from e
        except ValueError as e:
            raise UnauthorizedError(str(e), code="INVALID_OAUTH_PROFILE") from e

        account = await self.account_repo.get_by_provider(
            GOOGLE_PROVIDER_ID, profile.subject
        )
        if account:
            user = await self.user_repo.get_by_id(account.user_id)
            if user is None:
                raise UnauthorizedError("Linked user no longer exists.")
            await self.account_repo.update_tokens(
                account.id,
                access_token=profile.access_token,
                refresh_token=profile.refresh_token,
                id_token=profile.id_token,
                scope=profile.scope,
            )
            await self.user_repo.update_profile(
                user.id,
                image=profile.picture,
                email_verified=profile.email_verified or None,
            )
        else:
            user = await self.user_repo.get_by_email(profile.email)
            if user is None:
                user = await self.user_repo.create(
                    email=profile.email,
                    name=profile.name or profile.email.split("@")[0] or "User",
                    role=DEFAULT_ROLE,
                    email_verified=profile.email_verified,
                    image=profile.picture,
                )
                logger.info(f"User created from Google sign-in: user_id={user.id}")
            await self.account_repo.create(
                user_id=user.id,
                provider_id=GOOGLE_PROVIDER_ID,
                account_id=profile.subject,
                access_token=profile.access_token,
                refresh_token=profile.refresh_token,
                id_token=profile.id_token,
                scope=profile.scope,
            )

        result = await self._start_session(
            user,
            safe_callback_url(stored.get("callback_url")),
            ip_address,
            user_agent,
        )
        logger.info(f"User signed in with Google: user_id={user.id}")
        return result

    async def sign_out(
        self, headers: Mapping[str, str], cookies: Optional[Mapping[str, str]] = None
    ) -> bool:
        """Delete the caller's session and its cache entry.

        Returns:
            True if a session was deleted, False when there was none
        """
        session_id = self._session_id_from(headers, cookies)
        if not session_id:
            return False

        deleted = await self.session_repo.delete(session_id)
        await self.session_cache.delete(session_id)
        if deleted:
            logger.info(f"Session signed out: id={session_id}")
        return deleted

    async def get_session(
        self, headers: Mapping[str, str], cookies: Optional[Mapping[str, str]] = None
    ) -> Optional[Dict[str, Any]]:
        """Look up the active session for a request.

        The token is read from the session cookie, else from an
        ``Authorization: Bearer`` header. The cache is consulted first and
        refilled from PostgreSQL on a miss.

        Args:
            headers: Request headers
            cookies: Request cookies

        Returns:
            ``{"user": {id, email, name, role}, "session": {id, expires_at}}``
            or None when there is no valid, unexpired session

        Raises:
            Exception: Store or cache failures propagate unchanged
        """
        token = self._extract_token(headers, cookies)
        if not token:
            return None
        session_id = self._decode_session_id(token)
        if not session_id:
            return None

        payload = await self.session_cache.get(session_id)
        if payload is None:
            row = await self.session_repo.get_with_user(session_id)
            if row is None:
                return None
            auth_session, user = row
            if auth_session.token != token:
                return None
            expires_at = _parse_expiry(auth_session.expires_at)
            if expires_at is None or expires_at <= datetime.now(timezone.utc):
                return None
            payload = {
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "role": user.role,
                },
                "session": {
                    "id": auth_session.id,
                    "expires_at": expires_at.isoformat(),
                },
            }
            remaining = int((expires_at - datetime.now(timezone.utc)).total_seconds())
            await self.session_cache.set(
                session_id,
                payload,
                ttl_seconds=min(self.session_cache.ttl_seconds, remaining),
            )

        expires_at = _parse_expiry(payload.get("session", {}).get("expires_at"))
        if expires_at is None or expires_at <= datetime.now(timezone.utc):
            return None
        return payload

    def _extract_token(
        self, headers: Mapping[str, str], cookies: Optional[Mapping[str, str]]
    ) -> Optional[str]:
        if cookies and cookies.get(self.cookie_name):
            return cookies[self.cookie_name]
        auth_header = _header(headers or {}, "Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:].strip() or None
        return None

    def _decode_session_id(self, token: str) -> Optional[str]:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.InvalidTokenError as e:
            logger.debug(f"Session token rejected: {e}")
            return None
        jti = claims.get("jti")
        return jti if isinstance(jti, str) and jti else None

    def _session_id_from(
        self, headers: Mapping[str, str], cookies: Optional[Mapping[str, str]]
    ) -> Optional[str]:
        token = self._extract_token(headers, cookies)
        return self._decode_session_id(token) if token else None

    def _build_token(self, user_id: int, session_id: str, now: datetime) -> str:
        payload = {
            "sub": str(user_id),
            "jti": session_id,
            "iat": now,
            "exp": now + self.session_ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    async def _start_session(
        self,
        user,
        callback_url: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> SignInResult:
        now = datetime.now(timezone.utc)
        session_id = self.session_repo.generate_id()
        token = self._build_token(user.id, session_id, now)
        expires_at = now + self.session_ttl

        await self.session_repo.create(
            session_id=session_id,
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return SignInResult(
            token=token,
            expires_at=expires_at,
            user_id=user.id,
            role=user.role,
            callback_url=callback_url,
        )
