"""
tests/conftest.py -- Shared test fixtures for DatingApp tests.

This module provides:
  - TEST_TOKEN_KEY: the 64+ character signing secret every test runs with
  - _make_test_store(): creates an isolated in-memory user DB
  - _patch_lifespan(): wires test state into app.state, bypassing real startup
  - api_client: TestClient plus a registered user and a valid bearer token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Environment variables must be set before any api/auth/core import so
get_settings() sees them on its first (cached) call.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

TEST_TOKEN_KEY = "test-signing-key-" + "k" * 64

# CRITICAL: Set before any api/auth/core import.
os.environ.setdefault("TOKEN_KEY", TEST_TOKEN_KEY)
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.identity import add_identity_services
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, hash_password
from core.config import get_settings

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Token services are built the same way production builds them; only the
    user store is swapped for the in-memory one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        add_identity_services(app, get_settings())
        app.state.user_store = user_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def token_key() -> str:
    return TEST_TOKEN_KEY


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, token, username) for API integration tests.

    The user "testuser" (password "testpass123") exists before the client
    starts and the token is a valid bearer token for that user.
    """
    user_store = _make_test_store("api")
    user_store.create_user(User(username="testuser", hashed_password=hash_password("testpass123")))

    token = TokenService(get_settings().token_key).create_token(User(username="testuser"))

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, "testuser"

    user_store.close()
