"""
tests/conftest.py -- Shared test fixtures for TaskBoard tests.

This module provides:
  - user_store / board_store: isolated in-memory stores for unit tests
  - codec / sessions: a CredentialCodec with a test-only secret and a
    SessionManager over user_store
  - api: a TestClient wired to fresh stores through a patched lifespan, plus
    helpers to create users and credentials

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each API test gets its own DB name so no state leaks
between tests.

The DEBUG env var must be set before any api/auth import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import CredentialCodec
from boards.store import BoardStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_memory_url("users"))
    yield store
    store.close()


@pytest.fixture
def board_store() -> Generator[BoardStore, None, None]:
    store = BoardStore(_memory_url("boards"))
    yield store
    store.close()


@pytest.fixture
def signing_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def codec(signing_secret: str) -> CredentialCodec:
    return CredentialCodec(signing_secret, "HS256")


@pytest.fixture
def sessions(user_store: UserStore, codec: CredentialCodec) -> SessionManager:
    return SessionManager(user_store, codec)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    """TestClient plus direct handles on the stores behind it."""

    client: TestClient
    user_store: UserStore
    board_store: BoardStore
    sessions: SessionManager

    def make_user(self, email: str, is_admin: bool = False) -> tuple[int, str]:
        """Create a user and return (user_id, credential) for them."""
        uid = self.user_store.create_user(User(email=email, first_name=email.split("@")[0], is_admin=is_admin))
        return uid, self.sessions.authenticate(email)

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore, board_store: BoardStore, sessions: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.board_store = board_store
        app.state.sessions = sessions
        yield

    return test_lifespan


@pytest.fixture
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness over fresh stores for one test."""
    user_store = UserStore(_memory_url("api_users"))
    board_store = BoardStore(_memory_url("api_boards"))
    sessions = SessionManager(user_store, CredentialCodec(TEST_SECRET, "HS256"))

    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(user_store, board_store, sessions)
    try:
        with TestClient(app, raise_server_exceptions=True) as client:
            yield ApiHarness(client, user_store, board_store, sessions)
    finally:
        app.router.lifespan_context = original
        board_store.close()
        user_store.close()
