"""
tests/conftest.py -- Shared test fixtures for userdir tests.

This module provides:
  - users_file / store: an isolated, initialized JSON user store in tmp_path
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - client: TestClient over the real app, using the isolated store
  - make_client: factory for clients with raise_server_exceptions=False
  - issue_token: creates a stored user and returns a bearer token for it

SECRET_KEY must be set before any auth/core import so get_settings() can build
Settings at all. BCRYPT_ROUNDS=4 keeps the suite fast; production uses 12.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: Set SECRET_KEY before any auth/core import -- Settings refuses to
# construct without one.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def users_file(tmp_path: Path) -> Path:
    """Path of an initialized, empty user store file."""
    path = tmp_path / "users.json"
    UserStore.initialize(path)
    return path


@pytest.fixture
def store(users_file: Path) -> UserStore:
    return UserStore(users_file)


def add_user(store: UserStore, username: str, password: str = "Passw0rd!", role: Role = Role.USER) -> User:
    return store.create(User(username=username, password_hash=hash_password(password), role=role))


@pytest.fixture
def issue_token(store: UserStore) -> Callable[..., str]:
    """Return a function that stores a user and returns a bearer token for it."""

    def _issue(username: str, role: Role = Role.USER, password: str = "Passw0rd!") -> str:
        user = add_user(store, username, password, role)
        return create_access_token(user.to_public())

    return _issue


# ---------------------------------------------------------------------------
# App helpers
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    The real lifespan loads Settings.users_file; tests inject their own store
    so every test starts from an isolated file in tmp_path.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        yield

    return test_lifespan


@pytest.fixture
def make_client(store: UserStore) -> Generator[Callable[..., TestClient], None, None]:
    """Yield a factory building TestClients bound to the test store."""
    clients: list[TestClient] = []
    original = app.router.lifespan_context

    def _make(raise_server_exceptions: bool = True) -> TestClient:
        app.router.lifespan_context = _patch_lifespan(store)
        client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    app.router.lifespan_context = original


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
