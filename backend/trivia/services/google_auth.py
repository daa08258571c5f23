"""Google sign-in.

Only the result of the OAuth exchange matters to the rest of the app: a
verified ``ExternalIdentity``. The provider is built once per process and
handed to routes through a dependency so tests can substitute it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from ..core.config import get_settings
from ..core.errors import AuthenticationError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
SCOPES = ("openid", "email", "profile")

TokenVerifier = Callable[[str, str], Dict[str, Any]]


@dataclass(frozen=True)
class ExternalIdentity:
    external_id: str
    email: str
    display_name: Optional[str] = None


def _verify_with_google(credential: str, client_id: str) -> Dict[str, Any]:
    return id_token.verify_oauth2_token(credential, google_requests.Request(), client_id)


class GoogleIdentityProvider:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: Optional[httpx.AsyncClient] = None,
        verifier: TokenVerifier = _verify_with_google,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._http_client = http_client
        self._verifier = verifier

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    def authorization_url(self, state: Optional[str] = None) -> str:
        if not self.configured:
            raise AuthenticationError("Google OAuth is not configured")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_ENDPOINT}?{urlencode(params)}"

    async def _fetch_tokens(self, code: str) -> Dict[str, Any]:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        if self._http_client is not None:
            response = await self._http_client.post(GOOGLE_TOKEN_ENDPOINT, data=data)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(GOOGLE_TOKEN_ENDPOINT, data=data)
        response.raise_for_status()
        return response.json()

    async def exchange_code(self, code: str) -> ExternalIdentity:
        if not self.configured:
            raise AuthenticationError("Google OAuth is not configured")

        try:
            tokens = await self._fetch_tokens(code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Google token exchange failed: %s", exc)
            raise AuthenticationError("Failed to authenticate with Google") from exc

        credential = tokens.get("id_token")
        if not credential:
            raise AuthenticationError("Failed to authenticate with Google")

        try:
            payload = self._verifier(credential, self.client_id)
        except (ValueError, GoogleAuthError) as exc:
            logger.warning("Google ID token failed verification: %s", exc)
            raise AuthenticationError("Failed to authenticate with Google") from exc

        if not payload.get("sub") or not payload.get("email"):
            raise AuthenticationError("Failed to authenticate with Google")

        return ExternalIdentity(
            external_id=payload["sub"],
            email=payload["email"],
            display_name=payload.get("name"),
        )


@lru_cache(maxsize=1)
def get_identity_provider() -> GoogleIdentityProvider:
    settings = get_settings()
    return GoogleIdentityProvider(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
    )
