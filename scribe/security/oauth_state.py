"""Signed, short-lived ``state`` parameter for the federated login round trip."""

from __future__ import annotations

import jwt
from fastapi_users.jwt import decode_jwt, generate_jwt

from scribe.config import settings

STATE_TOKEN_AUDIENCE = "scribe:oauth-state"


def write_state_token(data: dict[str, str] | None = None) -> str:
    payload = dict(data or {})
    payload["aud"] = STATE_TOKEN_AUDIENCE
    return generate_jwt(
        payload, settings.secret_key, settings.oauth_state_lifetime_seconds
    )


def read_state_token(token: str) -> dict | None:
    """Return the decoded payload, or ``None`` for a forged or expired state."""
    try:
        return decode_jwt(token, settings.secret_key, [STATE_TOKEN_AUDIENCE])
    except jwt.PyJWTError:
        return None
