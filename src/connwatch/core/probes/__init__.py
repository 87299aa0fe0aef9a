"""Connectivity probes for database and API connections.

Manifesto:
    One probe per technology, one outcome shape for all of them. Driver
    failures are mapped onto a small shared taxonomy (timeout,
    unauthorized, invalid config, not found, network unreachable, rate
    limited, unknown) with stable ``<PREFIX>_<native>`` codes and curated
    user-facing messages. Raw driver text is sanitized before it is kept.

Modules:
    base        ``ConnectionProbe`` ABC and ``ProbeOptions``
    taxonomy    Error tables, classification and sanitization
    types       ``Credentials``, ``ConnectionTarget``, connection strings
    registry    ``ProbeRegistry`` / ``get_probe()``
    service     ``ProbeService.test_connection()``

Tags:
    connwatch, probes, health-check
"""

from .base import DEFAULT_API_TIMEOUT, DEFAULT_DB_TIMEOUT, ConnectionProbe, ProbeOptions
from .http import GitHubProbe, HttpProbe, RestApiProbe
from .mysql import MySQLProbe
from .oracle import OracleProbe
from .postgresql import PostgreSQLProbe
from .registry import ProbeRegistry, UnsupportedProbe, get_probe, probe_registry
from .service import ProbeService
from .sqlite import SQLiteProbe
from .sqlserver import SqlServerProbe
from .taxonomy import ProbeFailure, sanitize_error_text
from .types import (
    ConnectionTarget,
    Credentials,
    build_connection_string,
    parse_connection_string,
    resolve_target,
)

__all__ = [
    "DEFAULT_API_TIMEOUT",
    "DEFAULT_DB_TIMEOUT",
    "ConnectionProbe",
    "ConnectionTarget",
    "Credentials",
    "GitHubProbe",
    "HttpProbe",
    "MySQLProbe",
    "OracleProbe",
    "PostgreSQLProbe",
    "ProbeFailure",
    "ProbeOptions",
    "ProbeRegistry",
    "ProbeService",
    "RestApiProbe",
    "SQLiteProbe",
    "SqlServerProbe",
    "UnsupportedProbe",
    "build_connection_string",
    "get_probe",
    "parse_connection_string",
    "probe_registry",
    "resolve_target",
    "sanitize_error_text",
]
