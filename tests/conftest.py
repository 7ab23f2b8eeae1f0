"""
tests/conftest.py -- Shared test fixtures for the SSO service.

This module provides:
  - store: an isolated SqlStore on a named shared-memory SQLite DB
  - fake_store: an in-memory implementation of the four store roles, with
    knobs for failure injection (technical errors, slow calls, a lost
    registration race)
  - clock: a settable UTC clock so token expiries are exact
  - make_service: builds an AuthService over any store with fast bcrypt
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because AuthService runs store calls on worker threads and TestClient runs
the app in its own thread. Plain :memory: DBs are per-connection and would
present a blank schema to each worker thread.

BCRYPT_ROUNDS is lowered before any import so get_settings() builds a fast
hasher for the API tests.
"""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import App, User
from auth.passwords import PasswordHasher
from auth.service import AuthService, create_auth_service
from auth.store import SqlStore
from auth.tokens import TokenLifecycle
from core.config import get_settings
from core.errors import AuthError, ErrorKind

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
ACCESS_TTL = timedelta(minutes=15)
REFRESH_TTL = timedelta(hours=24)
APP_SECRET = "test-app-secret-0123456789abcdef0123"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FixedClock:
    """Callable clock returning a settable aware UTC datetime."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeStore:
    """In-memory UserSaver/UserProvider/AdminChecker/AppProvider.

    Knobs:
        fail:           exception raised by every call when set
        delay:          seconds each call sleeps before answering
        hide_on_lookup: find_by_email always returns None (lost-race setup)
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.apps: dict[int, App] = {}
        self.fail: Exception | None = None
        self.delay = 0.0
        self.hide_on_lookup = False
        self._next_id = 1

    def _enter(self) -> None:
        if self.delay:
            time.sleep(self.delay)
        if self.fail is not None:
            raise self.fail

    def add_app(self, app_id: int, secret: str = APP_SECRET) -> App:
        self.apps[app_id] = App(id=app_id, name=f"app-{app_id}", secret=secret)
        return self.apps[app_id]

    def save_user(self, email: str, pass_hash: bytes) -> int:
        self._enter()
        if email in self.users:
            raise AuthError(ErrorKind.USER_EXISTS, op="fake.save_user")
        user = User(id=self._next_id, email=email, pass_hash=pass_hash)
        self.users[email] = user
        self._next_id += 1
        return user.id

    def find_by_email(self, email: str) -> User | None:
        self._enter()
        if self.hide_on_lookup:
            return None
        return self.users.get(email)

    def is_admin(self, user_id: int) -> bool | None:
        self._enter()
        for user in self.users.values():
            if user.id == user_id:
                return user.is_admin
        return None

    def get_app(self, app_id: int) -> App | None:
        self._enter()
        return self.apps.get(app_id)


def _memory_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[SqlStore, None, None]:
    s = SqlStore(_memory_url("test_sso"))
    yield s
    s.close()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def tokens() -> TokenLifecycle:
    return TokenLifecycle(ACCESS_TTL, REFRESH_TTL)


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def make_service(clock, tokens, hasher):
    """Factory: AuthService over the given store, sharing clock/tokens/hasher."""

    def _make(store, call_timeout: float | None = 5.0) -> AuthService:
        return AuthService(
            user_saver=store,
            user_provider=store,
            admin_checker=store,
            app_provider=store,
            tokens=tokens,
            hasher=hasher,
            clock=clock,
            call_timeout=call_timeout,
        )

    return _make


@pytest.fixture
def service(store, make_service) -> AuthService:
    return make_service(store)


@pytest.fixture
def app_record(store) -> App:
    app_id = store.create_app("test-app", APP_SECRET)
    return store.get_app(app_id)


def _patch_lifespan(store: SqlStore):
    """Return a lifespan that wires a test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.store = store
        app.state.auth_service = create_auth_service(store, settings)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, SqlStore, int], None, None]:
    """Yield (client, store, app_id) for API integration tests.

    One client per test module; tests use distinct emails so they do not
    collide in the shared store.
    """
    s = SqlStore(_memory_url("test_api"))
    app_id = s.create_app("api-test-app", APP_SECRET)

    app.router.lifespan_context = _patch_lifespan(s)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, s, app_id

    s.close()
