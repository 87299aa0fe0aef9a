"""
Shared pytest fixtures for connwatch tests.

This module provides:
- A credential cipher with a fixed test secret
- An in-memory ``SQLiteScheduleStore`` with schema applied
- A scripted probe service so runner and dispatcher tests never touch a network
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from connwatch.core.models import Application, Connection, ConnectionKind
from connwatch.core.scheduling import CronPlanner, SQLiteScheduleStore
from connwatch.core.secrets import CredentialCipher
from tests._support import ScriptedProbeService

TEST_SECRET = "test-secret-key-for-connwatch"


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(TEST_SECRET)


@pytest.fixture
def planner() -> CronPlanner:
    return CronPlanner()


@pytest.fixture
def store(cipher):
    """In-memory store shared across threads."""
    s = SQLiteScheduleStore.open(":memory:", cipher=cipher)
    s.init_schema()
    yield s
    s.close()


@pytest.fixture
def application(store) -> Application:
    return store.create_application("billing")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def make_connection(store, application) -> Callable[..., Connection]:
    """Factory that persists a connection for ``application``."""

    def _make(name: str = "primary", *, is_active: bool = True, **fields) -> Connection:
        fields.setdefault("kind", ConnectionKind.POSTGRESQL)
        fields.setdefault("server", "db.internal")
        return store.save_connection(
            Connection(application_id=application.id, name=name, is_active=is_active, **fields)
        )

    return _make


@pytest.fixture
def probe_service() -> ScriptedProbeService:
    return ScriptedProbeService()
