"""
Test support utilities for connwatch tests.

Doubles that are imported directly by test modules rather than injected as
fixtures.
"""

from __future__ import annotations

from connwatch.core.models import ProbeErrorKind, RunOutcome


class ScriptedProbeService:
    """Returns canned outcomes keyed by connection name.

    A value that is an exception instance is raised instead of returned.
    Unknown names succeed.
    """

    def __init__(self, script: dict[str, RunOutcome | Exception] | None = None):
        self.script = script or {}
        self.calls: list[str] = []

    def test_connection(self, connection, credentials=None, timeout=None) -> RunOutcome:
        self.calls.append(connection.name)
        result = self.script.get(connection.name)
        if isinstance(result, Exception):
            raise result
        return result or ok_outcome()


def ok_outcome(message: str = "PostgreSQL connection successful") -> RunOutcome:
    return RunOutcome(success=True, message=message, duration_ms=1.0)


def failed_outcome(code: str = "PG_28P01") -> RunOutcome:
    return RunOutcome(
        success=False,
        message="Database connection failed: Authentication failed. Please check your username and password.",
        duration_ms=1.0,
        error_code=code,
        error_kind=ProbeErrorKind.UNAUTHORIZED,
    )
