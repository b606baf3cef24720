"""
tests/conftest.py -- Shared test fixtures for the KIN API tests.

This module provides:
  - RecordingMailer: a Mailer stand-in that keeps every message so tests can
    read the mailed codes and link tokens
  - make_account(): inserts an account directly through the store
  - auth_headers(): a Bearer header for an account, minted like a real login
  - _make_test_stores() / _patch_lifespan(): isolated in-memory DBs wired into
    app.state, bypassing the real startup
  - env: a fresh TestClient plus its stores, per test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
Each test gets its own DB name, so no state leaks between tests; the TestClient
is function-scoped too, so cookies never leak either.

The DEBUG env var must be set before any core/auth import so get_settings()
auto-generates the signing secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate the signing secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.mailer import MailMessage
from auth.models import ROLE_USER, Account
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import create_session_token, hash_password
from content.store import ContentStore
from core.config import Settings, get_settings
from storage.local import LocalImageStorage

# Rate limits are exercised in production only; tests log in many times.
limiter.enabled = False

DEFAULT_PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Fakes and helpers
# ---------------------------------------------------------------------------


class RecordingMailer:
    """Mailer replacement that records messages instead of sending them."""

    def __init__(self, deliver: bool = True) -> None:
        self.deliver = deliver
        self.messages: list[MailMessage] = []

    @property
    def is_configured(self) -> bool:
        return True

    def send(self, msg: MailMessage) -> bool:
        self.messages.append(msg)
        return self.deliver

    def last_to(self, email: str) -> MailMessage:
        for msg in reversed(self.messages):
            if msg.to == email:
                return msg
        raise AssertionError(f"no mail sent to {email}")


def make_account(
    store: AccountStore,
    email: str,
    role: str = ROLE_USER,
    password: str = DEFAULT_PASSWORD,
    verified: bool = True,
    banned: bool = False,
    name: str = "Test Member",
    **profile,
) -> Account:
    """Insert an account straight into the store and return it."""
    account = Account(
        name=name,
        email=email,
        gender="male",
        role=role,
        hashed_password=hash_password(password),
        is_verified=verified,
        is_banned=banned,
        user_photo="default.png",
        **profile,
    )
    account_id = store.create_account(account)
    return store.get_by_id(account_id)


def auth_headers(account: Account, settings: Settings | None = None) -> dict[str, str]:
    token = create_session_token(account, settings or get_settings())
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[AccountStore, ContentStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so tests don't share state.
    """
    url = f"sqlite:///file:test_kin_{db_suffix}?mode=memory&cache=shared&uri=true"
    return AccountStore(db_url=url), ContentStore(db_url=url)


def _patch_lifespan(env: "TestEnv"):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = env.settings
        app.state.account_store = env.accounts
        app.state.content_store = env.content
        app.state.image_storage = env.images
        app.state.mailer = env.mailer
        app.state.auth_service = AuthService(env.accounts, env.mailer, env.settings)
        yield

    return test_lifespan


@dataclass
class TestEnv:
    __test__ = False  # not a test class

    settings: Settings
    accounts: AccountStore
    content: ContentStore
    images: LocalImageStorage
    mailer: RecordingMailer = field(default_factory=RecordingMailer)
    client: TestClient | None = None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def account_store() -> Generator[AccountStore, None, None]:
    """A bare AccountStore for unit tests (no HTTP)."""
    store = AccountStore(f"sqlite:///file:test_accounts_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()


@pytest.fixture
def env(tmp_path, settings) -> Generator[TestEnv, None, None]:
    """Yield a TestEnv whose client talks to the real app with isolated stores.

    Image uploads land in a per-test temporary directory.
    """
    accounts, content = _make_test_stores(uuid.uuid4().hex)
    test_env = TestEnv(
        settings=settings,
        accounts=accounts,
        content=content,
        images=LocalImageStorage(tmp_path / "images"),
    )
    app.router.lifespan_context = _patch_lifespan(test_env)

    with TestClient(app, raise_server_exceptions=True) as client:
        test_env.client = client
        yield test_env

    accounts.close()
    content.close()


@pytest.fixture
def admin(env) -> Account:
    return make_account(env.accounts, "admin@kin.org", role="admin", name="Site Admin")


@pytest.fixture
def super_admin(env) -> Account:
    return make_account(env.accounts, "root@kin.org", role="superAdmin", name="Super Admin")


@pytest.fixture
def member(env) -> Account:
    return make_account(env.accounts, "member@kin.org", name="Plain Member", mobile="01700000000")
