"""Test fixtures for the API and database."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path

TESTS_ROOT = Path(__file__).parent
TEST_DB_PATH = Path("test_scribe.db")

# Configure the environment *before* importing scribe so settings pick it up.
os.environ.setdefault("DATABASE_URL", f"sqlite:///./{TEST_DB_PATH}")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "10")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-google-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from scribe.config import settings  # noqa: E402
from scribe.database import Base, Database  # noqa: E402
from scribe.db_events import attach_sqlite_listeners  # noqa: E402
from scribe.main import create_app  # noqa: E402
from scribe.security.rate_limit import limiter  # noqa: E402

# Disable rate limiting in tests to prevent cross-test 429 flakes
limiter.enabled = False

DEFAULT_PASSWORD = "correct-horse"


@dataclass
class Account:
    id: str
    email: str
    password: str
    name: str
    headers: dict[str, str]


def login_headers(client: TestClient, email: str, password: str) -> dict[str, str]:
    """Sign in through the real endpoint and return a Cookie header for it."""
    response = client.post(
        "/auth/jwt/login", data={"username": email, "password": password}
    )
    assert response.status_code == 204, response.text
    token = response.cookies[settings.auth_cookie_name]
    # Keep the jar empty so each request names its account explicitly.
    client.cookies.clear()
    return {"Cookie": f"{settings.auth_cookie_name}={token}"}


@pytest.fixture(scope="session")
def app():
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
    return create_app()


@pytest.fixture(scope="session")
def client(app):
    with TestClient(app) as test_client:
        yield test_client
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture(scope="session")
def sync_engine(client):
    engine = create_engine(settings.resolved_database_url)
    attach_sqlite_listeners(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_database(client, sync_engine):
    yield
    client.cookies.clear()
    client.app.dependency_overrides.clear()
    # Ensure database state is isolated between tests
    with sync_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
async def database(client):
    """A second handle on the test database for service-level tests."""
    db = Database(settings.resolved_async_database_url)
    yield db
    await db.dispose()


@pytest.fixture
def make_account(client):
    def _make(
        name: str = "Alice",
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> Account:
        email = email or f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        response = client.post(
            "/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        return Account(
            id=response.json()["id"],
            email=email,
            password=password,
            name=name,
            headers=login_headers(client, email, password),
        )

    return _make


@pytest.fixture
def make_post(client):
    def _make(author: Account, title: str = "A Post", **fields) -> dict:
        body = {"title": title, "excerpt": "", "content": "<p>Body</p>"}
        body.update(fields)
        response = client.post("/posts", json=body, headers=author.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def login(client):
    def _login(email: str, password: str) -> dict[str, str]:
        return login_headers(client, email, password)

    return _login
