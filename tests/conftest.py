"""
tests/conftest.py -- Shared test fixtures for the campus blog test suite.

This module provides:
  - make_engine(): creates an isolated named shared-memory SQLite engine
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient over the real app, one database per test module
  - register_user: factory that stores a user directly and returns (user, token)
  - reset_rate_limits (autouse): clears slowapi counters before each test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Settings are read once and cached, so every environment variable must be set
before the first import of core/, auth/ or api/.
"""

import itertools
import os
import tempfile
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: configure the environment before any application import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:campusblog_default?mode=memory&cache=shared&uri=true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_RATE_LIMIT", "5/minute")
os.environ.setdefault("GENERAL_RATE_LIMIT", "40/minute")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="campusblog-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.limiter import limiter
from api.main import app
from auth.models import Department, SignupCandidate, StudentProfile, User
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import create_access_token
from blog.store import BlogStore
from core.config import get_settings
from core.database import create_db_engine

_seq = itertools.count(1)


def make_engine(name: str) -> Engine:
    """Return an engine on a fresh named shared-memory database."""
    return create_db_engine(f"sqlite:///file:test_{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Wires stores built on the test engine into app.state so TestClient routes
    see an isolated database rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.engine = engine
        app.state.user_store = UserStore(engine)
        app.state.blog_store = BlogStore(engine)
        app.state.accounts = AccountService(app.state.user_store, settings)
        yield

    return test_lifespan


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """Every test starts with empty rate-limit windows."""
    limiter.reset()


@pytest.fixture
def fresh_engine() -> Generator[Engine, None, None]:
    """An empty database per test, for store-level unit tests."""
    engine = make_engine("unit")
    yield engine
    engine.dispose()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with a per-module database.

    raise_server_exceptions=False so the catch-all 500 handler can be
    asserted on like any other response.
    """
    engine = make_engine(request.module.__name__.rsplit(".", 1)[-1])
    app.router.lifespan_context = _patch_lifespan(engine)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    engine.dispose()


@pytest.fixture
def register_user(api_client):
    """Return a factory that stores a Student (by default) and issues a token.

    Users are written through UserStore, not POST /signup, so fixtures do not count
    against the auth rate limit. Keyword overrides replace any
    SignupCandidate field.
    """
    store: UserStore = api_client.app.state.user_store

    def _register(**overrides) -> tuple[User, str]:
        n = next(_seq)
        fields = {
            "fullname": f"Test User {n}",
            "email": f"user{n}@gecidukki.ac.in",
            "password": "Secret1",
            "username": f"user{n}",
            "department": Department.CSE,
            "phone": f"+91{9000000000 + n}",
            "profile": StudentProfile(ktu_id=f"IDK{n:04d}"),
        }
        fields.update(overrides)
        user = store.register(SignupCandidate(**fields))
        return user, create_access_token(user.id)

    return _register


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Return the helper that builds an Authorization header from a token."""
    return bearer
