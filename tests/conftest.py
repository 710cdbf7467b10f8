"""
tests/conftest.py -- Shared test fixtures for LocalHelp.

This module provides:
  - engine / user_store / resource_store / lifecycle: stores over a fresh
    in-memory SQLite engine per test (unit tests)
  - client: TestClient running the real app with a patched lifespan wired
    to those same stores (integration tests)
  - make_user / login helpers for building multi-user scenarios

Design: "sqlite://" engines from core.database use StaticPool, so the worker
thread TestClient runs sync handlers in sees the same in-memory database as
the test body.

Environment variables must be set before any app import: get_settings() is
cached on first use and several modules read it at import time.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.database import create_db_engine
from geocode.store import GeocodeStore
from listings.lifecycle import ResourceLifecycle
from listings.store import ResourceStore

DEFAULT_PASSWORD = "secret123"

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def resource_store(engine) -> ResourceStore:
    return ResourceStore(engine)


@pytest.fixture
def geocode_store(engine) -> GeocodeStore:
    return GeocodeStore(engine)


@pytest.fixture
def lifecycle(resource_store, user_store) -> ResourceLifecycle:
    return ResourceLifecycle(resource_store, user_store)


@pytest.fixture
def make_user(user_store):
    """Factory: insert a user directly into the store and return it with its id."""

    def _make(
        email: str,
        name: str = "",
        role: Role = Role.user,
        password: str = DEFAULT_PASSWORD,
        **fields,
    ) -> User:
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            hashed_password=hash_password(password),
            role=role,
            **fields,
        )
        user.id = user_store.create_user(user)
        return user_store.get_by_id(user.id)

    return _make


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(engine, user_store, resource_store, geocode_store, lifecycle):
    """Return an async context manager that replaces the real lifespan.

    Wires the per-test stores into app.state so routes and the test body
    share one database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.resource_store = resource_store
        app.state.geocode_store = geocode_store
        app.state.lifecycle = lifecycle
        yield

    return test_lifespan


@pytest.fixture
def client(engine, user_store, resource_store, geocode_store, lifecycle) -> Generator[TestClient, None, None]:
    """TestClient against the real app and a fresh database.

    The client keeps a cookie jar like a browser: after register or login,
    later requests carry that session until another login replaces it.
    """
    app.router.lifespan_context = _patch_lifespan(engine, user_store, resource_store, geocode_store, lifecycle)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def login():
    """Log client in as email, replacing whatever session it had."""

    def _login(client: TestClient, email: str, password: str = DEFAULT_PASSWORD):
        resp = client.post("/api/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp

    return _login


@pytest.fixture
def register():
    def _register(client: TestClient, email: str, password: str = DEFAULT_PASSWORD, **fields):
        body = {
            "name": fields.pop("name", email.split("@")[0].title()),
            "email": email,
            "passwordHash": password,
            **fields,
        }
        return client.post("/api/register", json=body)

    return _register
