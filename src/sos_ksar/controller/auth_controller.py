"""Authentication API endpoints.

Endpoints:
  POST /api/auth/sign-up/email     - register citizen/volunteer, set session cookie
  POST /api/auth/sign-in/email     - email/password sign-in, set session cookie
  POST /api/auth/sign-in/social    - start Google sign-in, returns consent URL
  GET  /api/auth/callback/google   - finish Google sign-in, redirect with cookie
  POST /api/auth/sign-out          - delete the session, clear the cookie
  GET  /api/auth/get-session       - current session or null
"""

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from sos_ksar.constants import DASHBOARD_PATH, LOGIN_PATH, UserRole
from sos_ksar.exception import ValidationError
from sos_ksar.infrastructure.oauth.google import PROVIDER_ID as GOOGLE_PROVIDER_ID
from sos_ksar.middleware.authorization_middleware import get_request_context
from sos_ksar.service.auth_service import SignInResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class SignUpRequest(BaseModel):
    """Email/password registration.

    Attributes:
        name: Display name (optional, defaults to the email local part)
        email: Account email
        password: Plain-text password
        role: citizen or volunteer
    """

    name: str = Field(default="", max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    role: str = Field(default=UserRole.CITIZEN.value)


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SocialSignInRequest(BaseModel):
    """Start an OAuth sign-in.

    Attributes:
        provider: OAuth provider; only "google" is supported
        callback_url: Path to land on after sign-in
    """

    provider: str = Field(default=GOOGLE_PROVIDER_ID)
    callback_url: str = Field(default=DASHBOARD_PATH)


class AuthResponse(BaseModel):
    """Successful sign-in or sign-up.

    Attributes:
        token: Session token (also set as httponly cookie)
        user_id: Authenticated user id
        role: User role
        callback_url: Where the client should navigate next
        expires_at: Session expiry
    """

    token: str
    user_id: str
    role: str
    callback_url: str
    expires_at: datetime


class SocialSignInResponse(BaseModel):
    url: str
    redirect: bool = True


def _client_meta(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


def _set_session_cookie(response: Response, request: Request, result: SignInResult):
    settings = request.app.state.app_settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=result.token,
        max_age=settings.session_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def _auth_response(result: SignInResult) -> AuthResponse:
    return AuthResponse(
        token=result.token,
        user_id=str(result.user_id),
        role=result.role,
        callback_url=result.callback_url,
        expires_at=result.expires_at,
    )


@router.post(
    "/api/auth/sign-up/email",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up_email(body: SignUpRequest, request: Request, response: Response):
    """Register with email and password.

    Raises:
        ValidationError: 422 for a bad role, email or password length
        ResourceAlreadyExistsError: 409 if the email is taken
    """
    auth_service = request.app.state.auth_service
    ip_address, user_agent = _client_meta(request)
    result = await auth_service.sign_up_email(
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    _set_session_cookie(response, request, result)
    return _auth_response(result)


@router.post("/api/auth/sign-in/email", response_model=AuthResponse)
async def sign_in_email(body: SignInRequest, request: Request, response: Response):
    """Sign in with email and password.

    Raises:
        InvalidCredentialsError: 401 on any credential mismatch
    """
    auth_service = request.app.state.auth_service
    ip_address, user_agent = _client_meta(request)
    result = await auth_service.sign_in_email(
        email=body.email,
        password=body.password,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    _set_session_cookie(response, request, result)
    return _auth_response(result)


@router.post("/api/auth/sign-in/social", response_model=SocialSignInResponse)
async def sign_in_social(body: SocialSignInRequest, request: Request):
    """Get the provider consent URL for a social sign-in.

    Raises:
        ValidationError: 422 for an unsupported provider
        ConfigurationError: 500 when Google OAuth is not configured
    """
    if body.provider != GOOGLE_PROVIDER_ID:
        raise ValidationError(
            f"Unsupported provider '{body.provider}'.", field="provider"
        )
    auth_service = request.app.state.auth_service
    url = await auth_service.sign_in_social_url(body.callback_url)
    return SocialSignInResponse(url=url)


@router.get("/api/auth/callback/google", include_in_schema=False)
async def google_callback(
    request: Request,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
):
    """Finish a Google sign-in and redirect to the stored callback URL."""
    if error or not code:
        reason = quote(error or "missing_code")
        logger.warning(f"Google sign-in aborted: {reason}")
        return RedirectResponse(
            url=f"{LOGIN_PATH}?error={reason}", status_code=status.HTTP_302_FOUND
        )

    auth_service = request.app.state.auth_service
    ip_address, user_agent = _client_meta(request)
    result = await auth_service.complete_social_sign_in(
        code=code, state=state or "", ip_address=ip_address, user_agent=user_agent
    )
    response = RedirectResponse(
        url=result.callback_url, status_code=status.HTTP_302_FOUND
    )
    _set_session_cookie(response, request, result)
    return response


@router.post("/api/auth/sign-out")
async def sign_out(request: Request, response: Response):
    """Delete the current session. Succeeds without a session too."""
    auth_service = request.app.state.auth_service
    ctx = get_request_context(request)
    await auth_service.sign_out(ctx.headers, ctx.cookies)
    response.delete_cookie(
        key=request.app.state.app_settings.session_cookie_name, path="/"
    )
    return {"success": True}


@router.get("/api/auth/get-session")
async def get_session(request: Request):
    """Return the normalized session, or null when signed out."""
    resolver = request.app.state.session_resolver
    result = await resolver.resolve(get_request_context(request))
    if result is None:
        return None
    return {
        "user": {
            "id": result.user.id,
            "email": result.user.email,
            "role": result.user.role,
        },
        "session": {
            "id": result.session.id,
            "expires_at": (
                result.session.expires_at.isoformat()
                if result.session.expires_at
                else None
            ),
        },
    }
