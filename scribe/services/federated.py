"""Identity provider client for federated (Google) sign-in."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from httpx_oauth.clients.google import GoogleOAuth2
from httpx_oauth.oauth2 import GetAccessTokenError

from scribe.config import settings
from scribe.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v3/userinfo"
SCOPES = ["openid", "email", "profile"]


@dataclass(frozen=True, slots=True)
class FederatedIdentity:
    email: str | None
    name: str | None


class GoogleIdentityProvider:
    """Builds the consent URL and turns a callback code into an identity."""

    def __init__(self, client_id: str, client_secret: str) -> None:
        self.client = GoogleOAuth2(client_id, client_secret)

    async def authorization_url(self, redirect_uri: str, state: str) -> str:
        return await self.client.get_authorization_url(
            redirect_uri, state=state, scope=SCOPES
        )

    async def fetch_identity(self, code: str, redirect_uri: str) -> FederatedIdentity:
        try:
            token = await self.client.get_access_token(code, redirect_uri)
        except GetAccessTokenError as exc:
            logger.warning("Google code exchange failed: %s", exc)
            raise ValidationFailed("Sign-in with Google failed") from exc

        async with httpx.AsyncClient(timeout=10.0) as http:
            response = await http.get(
                USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {token['access_token']}"},
            )
        if response.status_code != httpx.codes.OK:
            logger.warning("Google userinfo returned %s", response.status_code)
            raise ValidationFailed("Sign-in with Google failed")

        profile = response.json()
        return FederatedIdentity(email=profile.get("email"), name=profile.get("name"))


def get_identity_provider() -> GoogleIdentityProvider:
    return GoogleIdentityProvider(
        settings.google_client_id or "", settings.google_client_secret or ""
    )
