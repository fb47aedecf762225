"""Google OAuth 2.0 client.

Builds the authorization URL and performs the code-for-token exchange and
profile lookup. State handling and account linking live in AuthService.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid email profile"
PROVIDER_ID = "google"


@dataclass
class GoogleProfile:
    """Identity returned by Google after a successful code exchange.

    Attributes:
        subject: Stable Google account identifier ("sub" claim)
        email: Account email
        name: Display name (may be empty)
        picture: Avatar URL
        email_verified: Whether Google verified the email
        access_token: OAuth access token
        refresh_token: OAuth refresh token (first consent only)
        id_token: Raw OpenID id_token
        scope: Granted scopes
    """

    subject: str
    email: str
    name: str
    picture: Optional[str]
    email_verified: bool
    access_token: Optional[str]
    refresh_token: Optional[str]
    id_token: Optional[str]
    scope: Optional[str]


class GoogleOAuthClient:
    """Thin async client for Google's OAuth endpoints.

    Attributes:
        client_id: OAuth client id
        client_secret: OAuth client secret
        redirect_uri: Callback URL registered with Google
        timeout: HTTP timeout in seconds
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 15.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def authorization_url(self, state: str) -> str:
        """Build the consent-screen URL the browser is redirected to."""
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": GOOGLE_SCOPES,
                "state": state,
                "access_type": "offline",
                "prompt": "select_account",
            }
        )
        return f"{GOOGLE_AUTH_URL}?{query}"

    async def exchange_code(self, code: str) -> GoogleProfile:
        """Exchange an authorization code for tokens and fetch the profile.

        Args:
            code: Authorization code from the callback query string

        Returns:
            GoogleProfile for the signed-in account

        Raises:
            httpx.HTTPError: If Google rejects the code or is unreachable
            ValueError: If the profile lacks a subject or email
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                },
            )
            token_response.raise_for_status()
            tokens: Dict[str, Any] = token_response.json()

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {tokens.get('access_token', '')}"},
            )
            userinfo_response.raise_for_status()
            claims: Dict[str, Any] = userinfo_response.json()

        subject = str(claims.get("sub") or "")
        email = str(claims.get("email") or "").strip().lower()
        if not subject or not email:
            raise ValueError("Google profile is missing sub or email")

        logger.debug(f"Google code exchanged for subject={subject}")
        return GoogleProfile(
            subject=subject,
            email=email,
            name=str(claims.get("name") or ""),
            picture=claims.get("picture"),
            email_verified=bool(claims.get("email_verified")),
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            id_token=tokens.get("id_token"),
            scope=tokens.get("scope"),
        )
