"""
tests/conftest.py -- Shared test fixtures for the K8sNode API tests.

This module provides:
  - unit fixtures: a low-cost PasswordHasher, the demo roster, a TokenIssuer,
    and a StructuredLogger writing to an in-memory stream
  - pipeline: AuthenticationPipeline wired from the unit fixtures
  - api_client: TestClient running the real app with its real lifespan

Environment must be set before any project import: get_settings() is cached
on first call and refuses to start without JWT_SECRET outside debug mode.
BCRYPT_ROUNDS=4 keeps the seed roster cheap to hash.
"""

from __future__ import annotations

import io
import json
import os
from collections.abc import Generator

# CRITICAL: Set env before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters-long")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "error")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.hashing import PasswordHasher
from auth.models import Account
from auth.pipeline import AuthenticationPipeline
from auth.store import InMemoryCredentialStore
from auth.tokens import TokenIssuer
from core.logger import StructuredLogger

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"

# ---------------------------------------------------------------------------
# Log capture helper
# ---------------------------------------------------------------------------


def read_lines(stream: io.StringIO) -> list[dict]:
    """Parse every JSON line written to stream so far."""
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def accounts(hasher: PasswordHasher) -> list[Account]:
    return [
        Account(id="1", username="admin", password_hash=hasher.hash("admin123")),
        Account(id="2", username="user", password_hash=hasher.hash("user123")),
    ]


@pytest.fixture
def store(accounts: list[Account]) -> InMemoryCredentialStore:
    return InMemoryCredentialStore(accounts)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(secret=TEST_SECRET, expire_seconds=86400, issuer="k8snode-api")


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def audit_logger(log_stream: io.StringIO) -> StructuredLogger:
    return StructuredLogger(level="debug", stream=log_stream)


@pytest.fixture
def pipeline(
    store: InMemoryCredentialStore,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
    audit_logger: StructuredLogger,
) -> AuthenticationPipeline:
    return AuthenticationPipeline(store=store, hasher=hasher, issuer=issuer, logger=audit_logger)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app.

    Entering the context runs the real lifespan, so routes see the seeded
    roster (admin/admin123, user/user123) hashed at BCRYPT_ROUNDS=4.
    """
    with TestClient(app) as client:
        yield client
