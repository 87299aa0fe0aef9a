"""Connection probe base class.

Manifesto:
    A probe answers one question: can a trivial round-trip to this
    connection succeed right now? Every probe returns the same
    ``RunOutcome`` shape, measures wall-clock time for every branch, and
    never raises. Technology differences live in ``_probe`` and in the
    probe's ``ErrorTable``.

Features:
    - ``test()`` wraps ``_probe()`` with timing and classification
    - ``native_code()`` hook extracts the driver's error number/state
    - ``error_table`` maps native codes to the shared taxonomy

Tags:
    connwatch, probes, abstract-base, health-check
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from connwatch.core.errors import ProbeError
from connwatch.core.logging import get_logger
from connwatch.core.models import Connection, ConnectionKind, ProbeErrorKind, RunOutcome

from .taxonomy import ErrorTable, ProbeFailure, classify_generic, classify_native
from .types import Credentials

logger = get_logger(__name__)

DEFAULT_DB_TIMEOUT = 10.0
DEFAULT_API_TIMEOUT = 30.0


@dataclass(frozen=True)
class ProbeOptions:
    """Construction options shared by every probe class."""

    db_timeout: float = DEFAULT_DB_TIMEOUT
    api_timeout: float = DEFAULT_API_TIMEOUT
    github_api_url: str = "https://api.github.com"
    transport: Any = None  # httpx transport override for API probes


class ConnectionProbe(ABC):
    """
    Abstract base class for connectivity probes.

    Subclasses set ``kind`` and implement ``_probe``, returning metadata
    for the success outcome (server version, rate limits...).
    """

    kind: ClassVar[ConnectionKind]
    default_timeout: ClassVar[float] = DEFAULT_DB_TIMEOUT
    error_table: ClassVar[ErrorTable | None] = None

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout or self.default_timeout

    @classmethod
    def configure(cls, options: ProbeOptions) -> ConnectionProbe:
        """Build an instance from shared options."""
        return cls(timeout=options.db_timeout)

    def test(
        self,
        connection: Connection,
        credentials: Credentials | None = None,
        timeout: float | None = None,
    ) -> RunOutcome:
        """Probe ``connection`` and return a normalized outcome. Never raises."""
        credentials = credentials or Credentials()
        started = time.perf_counter()
        try:
            metadata = self._probe(connection, credentials, timeout or self.timeout)
        except Exception as exc:
            failure = self.classify(exc)
            outcome = failure.to_outcome(_elapsed_ms(started))
            logger.warning(
                "probe_failed",
                connection_id=connection.id,
                kind=self.kind.value,
                error_code=outcome.error_code,
                error_kind=outcome.error_kind.value if outcome.error_kind else None,
                details=outcome.error_details,
                duration_ms=round(outcome.duration_ms, 2),
            )
            return outcome

        outcome = RunOutcome(
            success=True,
            message=self.success_message(connection),
            duration_ms=_elapsed_ms(started),
            metadata=metadata,
        )
        logger.info(
            "probe_succeeded",
            connection_id=connection.id,
            kind=self.kind.value,
            duration_ms=round(outcome.duration_ms, 2),
        )
        return outcome

    def classify(self, exc: BaseException) -> ProbeFailure:
        """Map an exception raised by ``_probe`` onto the taxonomy."""
        if self.error_table is not None:
            native = self.native_code(exc)
            if native is not None or self._is_driver_error(exc):
                failure = classify_native(self.error_table, native, exc)
                if failure is not None:
                    return failure
        return classify_generic(exc, self.kind.name)

    def native_code(self, exc: BaseException) -> str | None:
        """Extract the technology's native error key, if any."""
        return None

    def _is_driver_error(self, exc: BaseException) -> bool:
        """Whether message-pattern fallback applies to ``exc``."""
        return False

    def success_message(self, connection: Connection) -> str:
        return f"{self.kind.display_name} connection successful"

    @abstractmethod
    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        """Perform the round-trip. Raise on any failure."""


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def driver_missing(kind: ConnectionKind, package: str, extra: str) -> ProbeError:
    """Build the error raised when an optional driver is not installed."""
    return ProbeError(
        f"Invalid connection configuration: {package} is required for {kind.display_name} probes. "
        f"Install with: pip install connwatch[{extra}]",
        kind=ProbeErrorKind.INVALID_CONFIG,
        code="DRIVER_MISSING",
    )


__all__ = [
    "ConnectionProbe",
    "ProbeOptions",
    "DEFAULT_DB_TIMEOUT",
    "DEFAULT_API_TIMEOUT",
    "driver_missing",
]
