"""Probe registry and factory.

Manifesto:
    Callers never hard-code probe classes. The registry maps
    ``ConnectionKind`` to a probe class; kinds without a probe resolve to
    ``UnsupportedProbe`` so a health check on an exotic connection yields a
    deterministic failed outcome instead of an exception.

Features:
    - ``ProbeRegistry`` with pre-registered defaults
    - ``register()`` for custom probes
    - ``get_probe()`` factory: kind + options -> configured probe

Tags:
    connwatch, probes, registry, factory
"""

from __future__ import annotations

from typing import Any

from connwatch.core.errors import ProbeError
from connwatch.core.models import Connection, ConnectionKind, ProbeErrorKind

from .base import ConnectionProbe, ProbeOptions
from .http import GitHubProbe, RestApiProbe
from .mysql import MySQLProbe
from .oracle import OracleProbe
from .postgresql import PostgreSQLProbe
from .sqlite import SQLiteProbe
from .sqlserver import SqlServerProbe
from .types import Credentials


class UnsupportedProbe(ConnectionProbe):
    """Stands in for kinds that have no probe implementation."""

    def __init__(self, kind: ConnectionKind, timeout: float | None = None):
        super().__init__(timeout)
        self.kind = kind

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        raise ProbeError(
            f"Connection testing is not supported for {self.kind.display_name} connections",
            kind=ProbeErrorKind.INVALID_CONFIG,
            code="UNSUPPORTED",
        )


class ProbeRegistry:
    """
    Registry for probe classes.

    Pre-registered probes:
    - ``sqlserver`` -- :class:`SqlServerProbe`
    - ``postgresql`` -- :class:`PostgreSQLProbe`
    - ``mysql`` -- :class:`MySQLProbe`
    - ``oracle`` -- :class:`OracleProbe`
    - ``sqlite`` -- :class:`SQLiteProbe`
    - ``rest_api`` -- :class:`RestApiProbe`
    - ``github_api`` -- :class:`GitHubProbe`
    """

    def __init__(self):
        self._factories: dict[ConnectionKind, type[ConnectionProbe]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        for probe_class in (
            SqlServerProbe,
            PostgreSQLProbe,
            MySQLProbe,
            OracleProbe,
            SQLiteProbe,
            RestApiProbe,
            GitHubProbe,
        ):
            self._factories[probe_class.kind] = probe_class

    def register(self, kind: ConnectionKind | str | int, probe_class: type[ConnectionProbe]) -> None:
        """Register (or replace) the probe for a kind."""
        self._factories[ConnectionKind.parse(kind)] = probe_class

    def is_supported(self, kind: ConnectionKind | str | int) -> bool:
        return ConnectionKind.parse(kind) in self._factories

    def create(self, kind: ConnectionKind | str | int, options: ProbeOptions | None = None) -> ConnectionProbe:
        """Create a configured probe; unknown kinds get ``UnsupportedProbe``."""
        kind = ConnectionKind.parse(kind)
        options = options or ProbeOptions()
        probe_class = self._factories.get(kind)
        if probe_class is None:
            return UnsupportedProbe(kind, timeout=options.db_timeout)
        return probe_class.configure(options)

    def list_supported(self) -> list[ConnectionKind]:
        return sorted(self._factories, key=lambda k: k.code)


# Global registry
probe_registry = ProbeRegistry()


def get_probe(kind: ConnectionKind | str | int, options: ProbeOptions | None = None) -> ConnectionProbe:
    """
    Get a probe for a connection kind.

    Usage:
        probe = get_probe(ConnectionKind.POSTGRESQL)
        outcome = probe.test(connection, credentials)
    """
    return probe_registry.create(kind, options)


__all__ = [
    "ProbeRegistry",
    "UnsupportedProbe",
    "probe_registry",
    "get_probe",
]
