"""
tests/conftest.py -- Shared test fixtures for Usersvc.

This module provides:
  - _patch_lifespan(): wires a test AccountService into app.state, bypassing real startup
  - api_client: TestClient over the real app backed by an in-memory store
  - service: AccountService over a fresh in-memory store (function scope)
  - store: each AccountStore implementation in turn (parametrized)

Environment must be set before any core/accounts/api import so get_settings()
picks up the test values: bcrypt cost 4 keeps hashing fast, a generous
default rate limit keeps the suite from throttling itself, and "testserver"
(TestClient's Host header) must be a trusted host.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any project import -- Settings is read once and cached.
os.environ.setdefault("DEBUG", "true")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ACCOUNT_STORE"] = "memory"
os.environ["RATE_LIMIT"] = "10000 per minute"
os.environ["VERIFY_RATE_LIMIT"] = "10/minute"
os.environ["TRUSTED_HOSTS"] = '["testserver", "localhost"]'
os.environ["ALLOWED_ORIGINS"] = '["http://localhost:3000"]'

import pytest
from fastapi.testclient import TestClient

from accounts.service import AccountService
from accounts.store import AccountStore, InMemoryAccountStore, SQLAccountStore
from api.limiter import limiter
from api.main import app

# ---------------------------------------------------------------------------
# Lifespan patch
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AccountService):
    """Return an async context manager that replaces the real lifespan.

    The real lifespan builds a store from Settings; tests want an isolated
    store they can also reach directly for assertions.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.accounts = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AccountService], None, None]:
    """Yield (client, service) for API integration tests.

    Rate limit counters live in the shared limiter; they are reset so each
    module starts with a clean budget.
    """
    service = AccountService(InMemoryAccountStore())
    app.router.lifespan_context = _patch_lifespan(service)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service

    limiter.reset()
    service.close()


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service() -> AccountService:
    return AccountService(InMemoryAccountStore())


@pytest.fixture(params=["memory", "sql"])
def store(request) -> Generator[AccountStore, None, None]:
    """Each store implementation in turn. SQL runs against in-memory SQLite."""
    s: AccountStore = InMemoryAccountStore() if request.param == "memory" else SQLAccountStore("sqlite:///:memory:")
    yield s
    s.close()
