"""OAuth provider clients."""

from .google import GoogleOAuthClient, GoogleProfile

__all__ = ["GoogleOAuthClient", "GoogleProfile"]
