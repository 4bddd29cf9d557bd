"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- An in-memory SQLite store per test
- A recording mailer in place of SMTP
- An HTTP client wired to the FastAPI app
"""

import os

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test_secret_key_at_least_32_characters_long_for_jwt"
os.environ["STORE_BACKEND"] = "sql"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"  # keep hashing fast
os.environ["EMAIL_ENABLED"] = "false"
os.environ["RESET_TOKEN_PURGE_MINUTES"] = "0"
os.environ["FRONTEND_BASE_URL"] = "http://cms.test"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.api.deps import get_mailer  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.auth import Principal  # noqa: E402
from app.services.auth import AuthService  # noqa: E402
from app.services.email import Mailer  # noqa: E402
from app.stores.factory import get_store  # noqa: E402
from app.stores.sql import SqlStore  # noqa: E402

ROOT_PASSWORD = "rootpass"
EDITOR_PASSWORD = "editorpass"


class RecordingMailer(Mailer):
    """Collects outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.sent = []

    @property
    def configured(self) -> bool:
        return True

    async def send(self, to_email, subject, body, html=None):
        self.sent.append({"to": to_email, "subject": subject, "body": body, "html": html})
        return True


class FailingMailer(Mailer):
    @property
    def configured(self) -> bool:
        return True

    async def send(self, to_email, subject, body, html=None):
        raise ConnectionRefusedError("smtp down")


@pytest.fixture
async def store():
    """Fresh in-memory database with the schema created."""
    s = SqlStore("sqlite+aiosqlite:///:memory:")
    await s.init()
    yield s
    await s.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def failing_mailer():
    return FailingMailer()


@pytest.fixture
def auth(store, mailer):
    return AuthService(store, mailer)


@pytest.fixture
async def client(store, mailer):
    """
    HTTP client against the app, with the store and mailer swapped for test doubles.

    Yields:
        AsyncClient for testing
    """
    async def _store():
        return store

    app.dependency_overrides[get_store] = _store
    app.dependency_overrides[get_mailer] = lambda: mailer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def root(auth):
    """The bootstrap super administrator."""
    return await auth.bootstrap_admin("root", "root@example.com", ROOT_PASSWORD)


@pytest.fixture
async def editor(auth, root):
    """A regular administrator created by root."""
    return await auth.create_admin(as_principal(root), "editor", "editor@example.com", EDITOR_PASSWORD)


def as_principal(admin) -> Principal:
    return Principal(id=admin.id, username=admin.username, is_super_admin=admin.is_super_admin)


@pytest.fixture
def principal():
    """Turns a stored admin into the identity a session token carries."""
    return as_principal


@pytest.fixture
def login(client: AsyncClient):
    """Log in over HTTP and return Authorization headers."""
    async def _login(username: str, password: str) -> dict:
        resp = await client.post("/api/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['sessionToken']}"}

    return _login


@pytest.fixture
async def root_headers(login, root):
    return await login("root", ROOT_PASSWORD)


@pytest.fixture
async def editor_headers(login, editor):
    return await login("editor", EDITOR_PASSWORD)
