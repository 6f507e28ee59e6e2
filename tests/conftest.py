"""
tests/conftest.py -- Shared test fixtures for userbase.

This module provides:
  - settings: a Settings instance with a fixed secret and cheap bcrypt cost
  - store / auth_service / user_service: isolated in-memory service graph
  - api_client: TestClient over the real FastAPI app with a patched lifespan
  - grpc_target: a real grpc.Server on an ephemeral localhost port

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient and the gRPC server run handlers in thread pools. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each store gets a unique name so tests never share rows unless
they share the fixture.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec
from auth.users import UserService
from core.config import Settings
from rpc.server import create_server

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"


def make_store() -> UserStore:
    """Create an isolated named shared-memory SQLite store."""
    return UserStore(f"sqlite:///file:userbase_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def make_auth_service(store: UserStore, settings: Settings) -> AuthService:
    return AuthService(
        store,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        TokenCodec(settings.secret_key),
        token_ttl=settings.token_ttl,
        password_min_length=settings.password_min_length,
    )


@pytest.fixture(scope="session")
def settings() -> Settings:
    # bcrypt's minimum cost keeps the suite fast; hashing semantics are unchanged.
    return Settings(secret_key=TEST_SECRET, bcrypt_rounds=4, debug=False)


# ---------------------------------------------------------------------------
# Service graph -- function scoped, fresh DB per test
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def auth_service(store: UserStore, settings: Settings) -> AuthService:
    return make_auth_service(store, settings)


@pytest.fixture
def user_service(store: UserStore) -> UserService:
    return UserService(store)


# ---------------------------------------------------------------------------
# Transport fixtures -- module scoped, one server per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(store: UserStore, settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and settings into app.state so TestClient routes
    see an isolated DB instead of DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        build_services(app, settings, store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(settings: Settings) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, token, user_id) for a TestClient over the real app.

    The fixture registers one account, "Test Admin" / admin@example.com /
    testpass123, and hands back its bearer token and id.
    """
    test_store = make_store()
    app.router.lifespan_context = _patch_lifespan(test_store, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        result = app.state.auth_service.register("Test Admin", "admin@example.com", "testpass123")
        yield client, result.token, result.user.id

    test_store.close()


@pytest.fixture(scope="module")
def grpc_target(settings: Settings) -> Generator[tuple[str, AuthService], None, None]:
    """Yield ("127.0.0.1:<port>", auth_service) for a running gRPC server."""
    test_store = make_store()
    auth = make_auth_service(test_store, settings)
    server, port = create_server(auth, UserService(test_store), settings, address="127.0.0.1:0")
    server.start()

    yield f"127.0.0.1:{port}", auth

    server.stop(grace=None)
    test_store.close()
