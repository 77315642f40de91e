"""Sign-in with Google, with the identity provider replaced by a fake."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from scribe.config import settings
from scribe.security import write_state_token
from scribe.services.federated import FederatedIdentity, get_identity_provider


class FakeProvider:
    def __init__(self, identity: FederatedIdentity) -> None:
        self.identity = identity
        self.exchanged: list[str] = []

    async def authorization_url(self, redirect_uri: str, state: str) -> str:
        return f"https://accounts.example.com/o/oauth2/auth?state={state}&redirect_uri={redirect_uri}"

    async def fetch_identity(self, code: str, redirect_uri: str) -> FederatedIdentity:
        self.exchanged.append(code)
        return self.identity


@pytest.fixture
def provider(app):
    fake = FakeProvider(FederatedIdentity(email="gina@example.com", name="Gina"))
    app.dependency_overrides[get_identity_provider] = lambda: fake
    return fake


def _callback(client, code="auth-code", state=None):
    state = write_state_token() if state is None else state
    response = client.get(
        "/auth/google/callback", params={"code": code, "state": state}
    )
    client.cookies.clear()
    return response


def _session_headers(response) -> dict[str, str]:
    token = response.cookies[settings.auth_cookie_name]
    return {"Cookie": f"{settings.auth_cookie_name}={token}"}


def test_authorize_returns_url_with_signed_state(client, provider):
    response = client.get("/auth/google/authorize")
    assert response.status_code == 200
    url = response.json()["authorizationUrl"]
    query = parse_qs(urlparse(url).query)
    assert query["state"][0].count(".") == 2  # a JWT
    assert query["redirect_uri"][0].endswith("/auth/google/callback")


def test_callback_creates_account_and_session(client, provider):
    response = _callback(client)
    assert response.status_code == 204
    assert provider.exchanged == ["auth-code"]

    me = client.get("/me", headers=_session_headers(response))
    assert me.status_code == 200
    assert me.json()["email"] == "gina@example.com"
    assert me.json()["name"] == "Gina"


def test_callback_links_existing_password_account(client, provider, make_account):
    account = make_account(name="Original", email="gina@example.com")
    response = _callback(client)
    assert response.status_code == 204

    me = client.get("/me", headers=_session_headers(response)).json()
    assert me["id"] == account.id
    assert me["name"] == "Gina"


def test_federated_account_cannot_sign_in_with_password(client, provider):
    assert _callback(client).status_code == 204
    response = client.post(
        "/auth/jwt/login",
        data={"username": "gina@example.com", "password": "whatever-password"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "LOGIN_BAD_CREDENTIALS"


def test_callback_without_name_uses_default(client, provider):
    provider.identity = FederatedIdentity(email="noname@example.com", name=None)
    response = _callback(client)
    me = client.get("/me", headers=_session_headers(response)).json()
    assert me["name"] == "Unnamed"


def test_callback_without_email_is_rejected(client, provider):
    provider.identity = FederatedIdentity(email=None, name="Ghost")
    response = _callback(client)
    assert response.status_code == 400
    assert settings.auth_cookie_name not in response.cookies


def test_callback_rejects_forged_state(client, provider):
    response = _callback(client, state="not-a-valid-token")
    assert response.status_code == 400
    assert provider.exchanged == []


def test_callback_without_code_is_rejected(client, provider):
    response = client.get("/auth/google/callback", params={"error": "access_denied"})
    assert response.status_code == 400
