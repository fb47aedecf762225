"""Unit tests for AuthService (the identity provider).

Covers email sign-up/sign-in, session token issuance, the cache-first
session lookup, sign-out and the Google OAuth flow with a mocked client.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import jwt
import pytest

from sos_ksar.exception import (
    ConfigurationError,
    InfrastructureError,
    InvalidCredentialsError,
    ResourceAlreadyExistsError,
    UnauthorizedError,
    ValidationError,
)
from sos_ksar.infrastructure.oauth.google import GoogleProfile
from sos_ksar.service.auth_service import (
    AuthService,
    callback_for_role,
    hash_password,
    safe_callback_url,
    verify_password,
)
from tests.conftest import (
    make_account_repo,
    make_mock_user,
    make_session_cache,
    make_session_repo,
    make_user_repo,
)

SECRET = "test-secret"
COOKIE = "sos_ksar.session_token"
SESSION_ID = "01JSESSION0000000000000000"


def _service(
    user_repo=None,
    account_repo=None,
    session_repo=None,
    session_cache=None,
    google_client=None,
) -> AuthService:
    return AuthService(
        user_repo=user_repo or make_user_repo(),
        account_repo=account_repo or make_account_repo(),
        session_repo=session_repo or make_session_repo(SESSION_ID),
        session_cache=session_cache or make_session_cache(),
        secret_key=SECRET,
        cookie_name=COOKIE,
        google_client=google_client,
    )


def _session_row(token: str, expires_at: datetime) -> MagicMock:
    row = MagicMock()
    row.id = SESSION_ID
    row.token = token
    row.expires_at = expires_at
    return row


# ---------------------------------------------------------------------------
# Password helpers
# ---------------------------------------------------------------------------


class TestSafeCallbackUrl:
    @pytest.mark.parametrize(
        "callback", ["/sos", "/dashboard/citizen?tab=reports", "/inventory#water"]
    )
    def test_same_site_paths_pass(self, callback) -> None:
        assert safe_callback_url(callback) == callback

    @pytest.mark.parametrize(
        "callback", [None, "", "sos", "https://evil.example", "/\\evil", "/%5C%5Cevil"]
    )
    def test_everything_else_falls_back_to_dashboard(self, callback) -> None:
        assert safe_callback_url(callback) == "/dashboard"


class TestPasswords:
    def test_hash_verifies(self) -> None:
        stored = hash_password("correct horse")

        assert stored != "correct horse"
        assert verify_password("correct horse", stored) is True
        assert verify_password("wrong", stored) is False

    @pytest.mark.parametrize("stored", [None, "", "not-a-hash"])
    def test_missing_or_malformed_hash_never_matches(self, stored) -> None:
        assert verify_password("anything", stored) is False

    def test_callback_for_role(self) -> None:
        assert callback_for_role("volunteer") == "/dashboard/volunteer"
        assert callback_for_role("citizen") == "/dashboard/citizen"


# ---------------------------------------------------------------------------
# sign_up_email
# ---------------------------------------------------------------------------


class TestSignUpEmail:
    async def test_creates_user_account_and_session(self) -> None:
        user_repo = make_user_repo(make_mock_user(7, "vol@example.com", role="volunteer"))
        account_repo = make_account_repo()
        session_repo = make_session_repo(SESSION_ID)
        service = _service(user_repo, account_repo, session_repo)

        result = await service.sign_up_email(
            "Vol", " Vol@Example.com ", "password123", role="volunteer"
        )

        user_repo.create.assert_awaited_once_with(
            email="vol@example.com", name="Vol", role="volunteer"
        )
        assert account_repo.create.await_args.kwargs["provider_id"] == "credential"
        assert account_repo.create.await_args.kwargs["password"] != "password123"
        session_repo.create.assert_awaited_once()
        assert result.callback_url == "/dashboard/volunteer"
        assert jwt.decode(result.token, SECRET, algorithms=["HS256"])["jti"] == SESSION_ID

    async def test_admin_role_is_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await _service().sign_up_email("A", "a@example.com", "password123", "admin")

        assert exc_info.value.message == "Invalid role selected."

    async def test_short_password_is_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await _service().sign_up_email("A", "a@example.com", "short")

        assert exc_info.value.field == "password"

    async def test_duplicate_email_is_rejected(self) -> None:
        user_repo = make_user_repo()
        user_repo.get_by_email.return_value = make_mock_user()

        with pytest.raises(ResourceAlreadyExistsError):
            await _service(user_repo).sign_up_email("A", "a@example.com", "password123")

    async def test_name_defaults_to_email_local_part(self) -> None:
        user_repo = make_user_repo()

        await _service(user_repo).sign_up_email("  ", "amal@example.com", "password123")

        assert user_repo.create.await_args.kwargs["name"] == "amal"


# ---------------------------------------------------------------------------
# sign_in_email
# ---------------------------------------------------------------------------


class TestSignInEmail:
    async def test_valid_credentials_open_a_session(self) -> None:
        user_repo = make_user_repo()
        user_repo.get_by_email.return_value = make_mock_user(3)
        account = MagicMock()
        account.password = hash_password("password123")
        session_repo = make_session_repo(SESSION_ID)

        result = await _service(
            user_repo, make_account_repo(account), session_repo
        ).sign_in_email("citizen@example.com", "password123")

        assert result.user_id == 3
        assert result.callback_url == "/dashboard"
        assert session_repo.create.await_args.kwargs["token"] == result.token

    async def test_unknown_email(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            await _service().sign_in_email("nobody@example.com", "password123")

    async def test_wrong_password(self) -> None:
        user_repo = make_user_repo()
        user_repo.get_by_email.return_value = make_mock_user()
        account = MagicMock()
        account.password = hash_password("password123")

        with pytest.raises(InvalidCredentialsError):
            await _service(user_repo, make_account_repo(account)).sign_in_email(
                "citizen@example.com", "nope"
            )

    async def test_oauth_only_user_has_no_password(self) -> None:
        user_repo = make_user_repo()
        user_repo.get_by_email.return_value = make_mock_user()

        with pytest.raises(InvalidCredentialsError):
            await _service(user_repo, make_account_repo(None)).sign_in_email(
                "citizen@example.com", "password123"
            )


# ---------------------------------------------------------------------------
# get_session
# ---------------------------------------------------------------------------


class TestGetSession:
    async def test_no_token_means_no_session(self) -> None:
        assert await _service().get_session({}, {}) is None

    async def test_malformed_token_means_no_session(self) -> None:
        assert await _service().get_session({}, {COOKIE: "garbage"}) is None

    async def test_token_signed_with_other_key_is_rejected(self) -> None:
        token = jwt.encode({"jti": SESSION_ID}, "other", algorithm="HS256")

        assert await _service().get_session({}, {COOKIE: token}) is None

    async def test_loads_from_store_and_refills_cache(self) -> None:
        service = _service()
        now = datetime.now(timezone.utc)
        token = service._build_token(4, SESSION_ID, now)
        row = _session_row(token, now + timedelta(days=7))
        service.session_repo.get_with_user.return_value = (
            row,
            make_mock_user(4, "vol@example.com", role="volunteer"),
        )

        payload = await service.get_session({}, {COOKIE: token})

        assert payload["user"] == {
            "id": 4,
            "email": "vol@example.com",
            "name": "Test Citizen",
            "role": "volunteer",
        }
        assert payload["session"]["id"] == SESSION_ID
        service.session_cache.set.assert_awaited_once()
        assert service.session_cache.set.await_args.kwargs["ttl_seconds"] == 300

    async def test_bearer_header_is_accepted(self) -> None:
        service = _service()
        now = datetime.now(timezone.utc)
        token = service._build_token(4, SESSION_ID, now)
        service.session_repo.get_with_user.return_value = (
            _session_row(token, now + timedelta(days=1)),
            make_mock_user(4),
        )

        payload = await service.get_session({"Authorization": f"Bearer {token}"}, {})

        assert payload is not None

    async def test_cache_hit_skips_store(self) -> None:
        service = _service()
        token = service._build_token(4, SESSION_ID, datetime.now(timezone.utc))
        cached = {
            "user": {"id": 4, "email": "x@y.z", "name": "X", "role": "admin"},
            "session": {
                "id": SESSION_ID,
                "expires_at": (
                    datetime.now(timezone.utc) + timedelta(hours=1)
                ).isoformat(),
            },
        }
        service.session_cache.get.return_value = cached

        assert await service.get_session({}, {COOKIE: token}) == cached
        service.session_repo.get_with_user.assert_not_awaited()

    async def test_expired_session_is_no_session(self) -> None:
        service = _service()
        now = datetime.now(timezone.utc)
        token = service._build_token(4, SESSION_ID, now)
        service.session_repo.get_with_user.return_value = (
            _session_row(token, now - timedelta(seconds=1)),
            make_mock_user(4),
        )

        assert await service.get_session({}, {COOKIE: token}) is None
        service.session_cache.set.assert_not_awaited()

    async def test_revoked_session_is_no_session(self) -> None:
        service = _service()
        token = service._build_token(4, SESSION_ID, datetime.now(timezone.utc))

        assert await service.get_session({}, {COOKIE: token}) is None

    async def test_token_mismatch_is_no_session(self) -> None:
        service = _service()
        now = datetime.now(timezone.utc)
        token = service._build_token(4, SESSION_ID, now)
        service.session_repo.get_with_user.return_value = (
            _session_row("another-token", now + timedelta(days=1)),
            make_mock_user(4),
        )

        assert await service.get_session({}, {COOKIE: token}) is None

    async def test_store_failure_propagates(self) -> None:
        service = _service()
        token = service._build_token(4, SESSION_ID, datetime.now(timezone.utc))
        service.session_cache.get.side_effect = ConnectionError("redis down")

        with pytest.raises(ConnectionError):
            await service.get_session({}, {COOKIE: token})


# ---------------------------------------------------------------------------
# sign_out
# ---------------------------------------------------------------------------


class TestSignOut:
    async def test_deletes_row_and_cache(self) -> None:
        service = _service()
        token = service._build_token(4, SESSION_ID, datetime.now(timezone.utc))

        assert await service.sign_out({}, {COOKIE: token}) is True
        service.session_repo.delete.assert_awaited_once_with(SESSION_ID)
        service.session_cache.delete.assert_awaited_once_with(SESSION_ID)

    async def test_without_session_is_a_no_op(self) -> None:
        service = _service()

        assert await service.sign_out({}, {}) is False
        service.session_repo.delete.assert_not_awaited()


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------


def _google_client(profile=None, error=None) -> MagicMock:
    client = MagicMock()
    client.authorization_url = MagicMock(
        side_effect=lambda state: f"https://accounts.google.com/o?state={state}"
    )
    client.exchange_code = AsyncMock(return_value=profile, side_effect=error)
    return client


def _profile(**overrides) -> GoogleProfile:
    data = dict(
        subject="google-sub-1",
        email="new@example.com",
        name="New Person",
        picture=None,
        email_verified=True,
        access_token="at",
        refresh_token="rt",
        id_token="it",
        scope="openid email profile",
    )
    data.update(overrides)
    return GoogleProfile(**data)


class TestSocialSignIn:
    async def test_not_configured(self) -> None:
        with pytest.raises(ConfigurationError):
            await _service().sign_in_social_url("/dashboard")

    async def test_url_stores_state(self) -> None:
        cache = make_session_cache()
        service = _service(session_cache=cache, google_client=_google_client())

        url = await service.sign_in_social_url("/sos")

        state, callback = cache.put_oauth_state.await_args.args
        assert url.endswith(state)
        assert callback == "/sos"

    async def test_external_callback_is_replaced(self) -> None:
        cache = make_session_cache()
        service = _service(session_cache=cache, google_client=_google_client())

        await service.sign_in_social_url("https://evil.example.com")

        assert cache.put_oauth_state.await_args.args[1] == "/dashboard"

    @pytest.mark.parametrize(
        "callback",
        [
            "/\\evil.example",
            "/%5Cevil",
            "/%2F%2Fevil.example",
            "/\t/evil.example",
            "//evil.example",
            "javascript:alert(1)",
        ],
    )
    async def test_off_site_callback_is_replaced(self, callback) -> None:
        cache = make_session_cache()
        service = _service(session_cache=cache, google_client=_google_client())

        await service.sign_in_social_url(callback)

        assert cache.put_oauth_state.await_args.args[1] == "/dashboard"

    async def test_stored_off_site_callback_is_not_followed(self) -> None:
        cache = make_session_cache()
        cache.pop_oauth_state.return_value = {"callback_url": "/\\evil.example"}
        service = _service(
            make_user_repo(make_mock_user(9, "new@example.com")),
            session_cache=cache,
            google_client=_google_client(_profile()),
        )

        result = await service.complete_social_sign_in("code", "state")

        assert result.callback_url == "/dashboard"

    async def test_unknown_state_is_rejected(self) -> None:
        service = _service(google_client=_google_client(_profile()))

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.complete_social_sign_in("code", "bogus")

        assert exc_info.value.code == "INVALID_OAUTH_STATE"

    async def test_first_login_creates_citizen_and_links_account(self) -> None:
        cache = make_session_cache()
        cache.pop_oauth_state.return_value = {"callback_url": "/sos"}
        user_repo = make_user_repo(make_mock_user(9, "new@example.com"))
        account_repo = make_account_repo()
        service = _service(
            user_repo,
            account_repo,
            session_cache=cache,
            google_client=_google_client(_profile()),
        )

        result = await service.complete_social_sign_in("code", "state")

        assert user_repo.create.await_args.kwargs["role"] == "citizen"
        assert account_repo.create.await_args.kwargs["provider_id"] == "google"
        assert account_repo.create.await_args.kwargs["account_id"] == "google-sub-1"
        assert result.callback_url == "/sos"

    async def test_returning_user_refreshes_tokens(self) -> None:
        cache = make_session_cache()
        cache.pop_oauth_state.return_value = {"callback_url": "/dashboard"}
        linked = MagicMock()
        linked.id = "acc-1"
        linked.user_id = 9
        account_repo = make_account_repo()
        account_repo.get_by_provider.return_value = linked
        user_repo = make_user_repo(make_mock_user(9))
        service = _service(
            user_repo,
            account_repo,
            session_cache=cache,
            google_client=_google_client(_profile()),
        )

        await service.complete_social_sign_in("code", "state")

        account_repo.update_tokens.assert_awaited_once()
        user_repo.create.assert_not_awaited()

    async def test_google_outage_is_infrastructure_error(self) -> None:
        cache = make_session_cache()
        cache.pop_oauth_state.return_value = {"callback_url": "/dashboard"}
        service = _service(
            session_cache=cache,
            google_client=_google_client(error=httpx.ConnectError("down")),
        )

        with pytest.raises(InfrastructureError):
            await service.complete_social_sign_in("code", "state")
