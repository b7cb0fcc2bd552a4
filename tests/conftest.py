"""
tests/conftest.py -- Shared test fixtures for Natours auth tests.

This module provides:
  - settings:      explicit Settings (fixed secret, cheap bcrypt rounds)
  - store:         isolated in-memory UserStore per test
  - hasher / issuer / auth_service / reset_flow: the real components
  - mailer:        RecordingEmailSender that keeps every message (or fails on demand)
  - client:        TestClient around create_app() wired to the fixtures above
  - make_user():   helper that inserts a user with a known password

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
Each test gets its own name, so no state leaks between tests.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import create_app
from auth.errors import DeliveryError
from auth.mailer import EmailMessage
from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.reset import PasswordResetFlow
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import Settings

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
DEFAULT_PASSWORD = "pass1234"

_RESET_LINK_RE = re.compile(r"resetPassword/([0-9a-f]{64})")


class RecordingEmailSender:
    """EmailSender double: records messages, or raises DeliveryError when fail=True."""

    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []
        self.fail = False

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise DeliveryError()
        self.messages.append(message)

    def last_reset_token(self) -> str:
        match = _RESET_LINK_RE.search(self.messages[-1].body)
        assert match, f"No reset link in email body: {self.messages[-1].body!r}"
        return match.group(1)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


@pytest.fixture
def secret_key() -> str:
    return TEST_SECRET


@pytest.fixture
def settings(secret_key: str) -> Settings:
    return Settings(secret_key=secret_key, bcrypt_rounds=4, email_host="")


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(db_url=f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer(secret_key: str) -> TokenIssuer:
    return TokenIssuer(secret_key, expire_seconds=3600)


@pytest.fixture
def auth_service(store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> AuthService:
    return AuthService(store, hasher, issuer)


@pytest.fixture
def mailer() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def reset_flow(store: UserStore, auth_service: AuthService, mailer: RecordingEmailSender) -> PasswordResetFlow:
    return PasswordResetFlow(store, auth_service, mailer)


@pytest.fixture
def make_user(store: UserStore, hasher: PasswordHasher) -> Callable[..., User]:
    """Return a factory that inserts a user and returns the stored record."""

    def _make(
        email: str = "jonas@example.com",
        password: str = DEFAULT_PASSWORD,
        role: Role = Role.USER,
        name: str = "Jonas",
    ) -> User:
        uid = store.create_user(User(name=name, email=email, hashed_password=hasher.hash(password), role=role))
        return store.get_by_id(uid)

    return _make


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def client(
    settings: Settings,
    store: UserStore,
    mailer: RecordingEmailSender,
) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated store and recording mailer.

    Rate limiting is switched off: the limiter is process-global and the
    suite logs in far more than 10 times a minute from the same address.
    """
    limiter.enabled = False
    app = create_app(settings, user_store=store, email_sender=mailer)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    limiter.enabled = True
