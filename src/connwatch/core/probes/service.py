"""Probe service: credentials + registry + timeouts in one call.

The runner and the ops layer go through ``ProbeService.test_connection``
rather than instantiating probes directly. The service decrypts the row's
stored credentials, lets explicitly supplied ones override them, picks the
probe for the connection kind and applies the per-family timeout.
"""

from __future__ import annotations

import threading
from typing import Any

from connwatch.core.models import Connection, ConnectionKind, RunOutcome
from connwatch.core.secrets import CredentialCipher
from connwatch.core.settings import ConnwatchSettings

from .base import ConnectionProbe, ProbeOptions
from .registry import ProbeRegistry, probe_registry
from .types import Credentials


class ProbeService:
    """Entry point for testing a single connection."""

    def __init__(
        self,
        cipher: CredentialCipher,
        registry: ProbeRegistry | None = None,
        options: ProbeOptions | None = None,
    ):
        self.cipher = cipher
        self.registry = registry or probe_registry
        self.options = options or ProbeOptions()
        self._probes: dict[ConnectionKind, ConnectionProbe] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: ConnwatchSettings,
        *,
        cipher: CredentialCipher | None = None,
        transport: Any = None,
    ) -> ProbeService:
        options = ProbeOptions(
            db_timeout=settings.db_probe_timeout_seconds,
            api_timeout=settings.api_probe_timeout_seconds,
            github_api_url=settings.github_api_url,
            transport=transport,
        )
        return cls(cipher or CredentialCipher.from_settings(settings), options=options)

    def probe_for(self, kind: ConnectionKind) -> ConnectionProbe:
        """Return the cached probe instance for ``kind``. Probes are stateless."""
        with self._lock:
            probe = self._probes.get(kind)
            if probe is None:
                probe = self.registry.create(kind, self.options)
                self._probes[kind] = probe
            return probe

    def test_connection(
        self,
        connection: Connection,
        credentials: Credentials | None = None,
        timeout: float | None = None,
    ) -> RunOutcome:
        """Probe ``connection``. Never raises; failures come back as outcomes."""
        stored = Credentials.from_connection(connection, self.cipher)
        effective = credentials.merged_over(stored) if credentials else stored
        return self.probe_for(connection.kind).test(connection, effective, timeout)


__all__ = ["ProbeService"]
