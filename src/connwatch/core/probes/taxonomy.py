"""
Probe failure taxonomy and error-text sanitization.

Every native failure a probe can hit is folded into one
``ProbeErrorKind`` plus a technology-prefixed code:

    ┌─────────────┬──────────────────────┬──────────────────────────────┐
    │ Technology  │ Native key           │ Code                          │
    ├─────────────┼──────────────────────┼──────────────────────────────┤
    │ SQL Server  │ error number         │ SQL_18456                     │
    │ PostgreSQL  │ SQLSTATE             │ PG_28P01                      │
    │ MySQL       │ errno                │ MYSQL_1045                    │
    │ Oracle      │ ORA number           │ ORA_1017                      │
    │ SQLite      │ result code name     │ SQLITE_CANTOPEN               │
    │ HTTP        │ status               │ HTTP_503 / GITHUB_FORBIDDEN   │
    │ (generic)   │ Python exception     │ TIMEOUT / UNAUTHORIZED /      │
    │             │                      │ INVALID_CONFIG / <KIND>_ERROR │
    └─────────────┴──────────────────────┴──────────────────────────────┘

Well-known native codes carry a curated, user-safe message. Unknown codes
fall back to ``"<Technology> error: <sanitized driver text>"``.

Outcome messages read ``"<context>: <curated message>"`` where the context
is one of "Database connection failed", "Invalid connection configuration",
"Connection timeout" or "Connection test failed".

Sanitization strips credential-shaped substrings from any text before it
reaches storage or logs:

    >>> sanitize_error_text("login failed; password=secret123; user=sa")
    'login failed; password=***; user=sa'
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from connwatch.core.errors import ConfigError, ProbeError, ValidationError
from connwatch.core.models import ProbeErrorKind, RunOutcome

MAX_DETAIL_LENGTH = 2000

_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(password|pwd|pass)=[^;]+", re.IGNORECASE), "password=***"),
    (re.compile(r"\b(apikey|api_key|key)=[^;]+", re.IGNORECASE), "apikey=***"),
    (re.compile(r"\b(token|access_token)=[^;&\s]+", re.IGNORECASE), "token=***"),
    (re.compile(r"\b(authorization:\s*(?:token|bearer|basic))\s+\S+", re.IGNORECASE), r"\1 ***"),
    (re.compile(r"(\w+://[^/\s:@]+):[^@\s/]+@"), r"\1:***@"),
)

CONTEXT_DATABASE = "Database connection failed"
CONTEXT_CONFIG = "Invalid connection configuration"
CONTEXT_TIMEOUT = "Connection timeout"
CONTEXT_GENERIC = "Connection test failed"


def sanitize_error_text(text: str | None) -> str:
    """Redact credential-shaped substrings from ``text``."""
    if not text:
        return ""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


@dataclass(frozen=True)
class TaxonomyEntry:
    kind: ProbeErrorKind
    message: str


@dataclass(frozen=True)
class ErrorTable:
    """Native-code lookup for one technology.

    ``patterns`` map driver message text to a native key for drivers that
    omit the code on connection-time failures (psycopg2 leaves ``pgcode``
    unset when the server never answered).
    """

    prefix: str
    label: str
    entries: Mapping[str, TaxonomyEntry]
    patterns: tuple[tuple[re.Pattern[str], str], ...] = ()

    def match_message(self, text: str) -> str | None:
        for pattern, key in self.patterns:
            if pattern.search(text):
                return key
        return None


def _entry(kind: ProbeErrorKind, message: str) -> TaxonomyEntry:
    return TaxonomyEntry(kind=kind, message=message)


_K = ProbeErrorKind

SQLSERVER_ERRORS = ErrorTable(
    prefix="SQL",
    label="SQL Server",
    entries={
        "-1": _entry(_K.NETWORK_UNREACHABLE, "Cannot connect to SQL Server. Please verify the server address and network connectivity."),
        "2": _entry(_K.NETWORK_UNREACHABLE, "SQL Server not found or network error. Please check the server name and instance."),
        "53": _entry(_K.NETWORK_UNREACHABLE, "SQL Server not found or network error. Please check the server name and instance."),
        "258": _entry(_K.TIMEOUT, "The connection attempt timed out. Please check your network connectivity and server availability."),
        "4060": _entry(_K.NOT_FOUND, "Cannot open database. Please verify the database name exists."),
        "18456": _entry(_K.UNAUTHORIZED, "Login failed. Please check your username and password."),
    },
    patterns=(
        (re.compile(r"login failed", re.IGNORECASE), "18456"),
        (re.compile(r"cannot open database", re.IGNORECASE), "4060"),
        (re.compile(r"login timeout expired|\bHYT00\b", re.IGNORECASE), "258"),
        (re.compile(r"server does not exist|named pipes provider|tcp provider", re.IGNORECASE), "-1"),
    ),
)

POSTGRESQL_ERRORS = ErrorTable(
    prefix="PG",
    label="PostgreSQL",
    entries={
        "28P01": _entry(_K.UNAUTHORIZED, "Authentication failed. Please check your username and password."),
        "28000": _entry(_K.UNAUTHORIZED, "Access denied. Please check your credentials and pg_hba rules."),
        "3D000": _entry(_K.NOT_FOUND, "Database does not exist. Please verify the database name."),
        "08001": _entry(_K.NETWORK_UNREACHABLE, "Unable to connect to PostgreSQL server. Please check the server address and port."),
        "08006": _entry(_K.NETWORK_UNREACHABLE, "Connection failure. The server may be down or unreachable."),
        "57014": _entry(_K.TIMEOUT, "The query was cancelled after exceeding the timeout."),
        "53300": _entry(_K.RATE_LIMITED, "Too many connections. The server has no free connection slots."),
    },
    patterns=(
        (re.compile(r"password authentication failed", re.IGNORECASE), "28P01"),
        (re.compile(r"no pg_hba\.conf entry", re.IGNORECASE), "28000"),
        (re.compile(r"database \".*\" does not exist", re.IGNORECASE), "3D000"),
        (re.compile(r"too many (clients|connections)", re.IGNORECASE), "53300"),
        (re.compile(r"could not connect|connection refused|could not translate host name", re.IGNORECASE), "08001"),
        (re.compile(r"server closed the connection unexpectedly", re.IGNORECASE), "08006"),
    ),
)

MYSQL_ERRORS = ErrorTable(
    prefix="MYSQL",
    label="MySQL",
    entries={
        "1040": _entry(_K.RATE_LIMITED, "Too many connections. The server has no free connection slots."),
        "1042": _entry(_K.NETWORK_UNREACHABLE, "Unable to connect to MySQL server. Please check the server address."),
        "1044": _entry(_K.UNAUTHORIZED, "Access denied to database. Please check your permissions."),
        "1045": _entry(_K.UNAUTHORIZED, "Access denied. Please check your username and password."),
        "1049": _entry(_K.NOT_FOUND, "Unknown database. Please verify the database name."),
        "2003": _entry(_K.NETWORK_UNREACHABLE, "Unable to connect to MySQL server. Please check the server address and port."),
        "2005": _entry(_K.NETWORK_UNREACHABLE, "Unknown MySQL server host. Please check the server name."),
        "2013": _entry(_K.TIMEOUT, "Lost connection to MySQL server during the handshake."),
    },
)

ORACLE_ERRORS = ErrorTable(
    prefix="ORA",
    label="Oracle",
    entries={
        "1017": _entry(_K.UNAUTHORIZED, "Invalid username or password."),
        "28000": _entry(_K.UNAUTHORIZED, "The account is locked."),
        "12154": _entry(_K.NOT_FOUND, "Could not resolve the connect identifier. Please check the service name."),
        "12514": _entry(_K.NOT_FOUND, "The listener does not know the requested service. Please check the service name."),
        "12170": _entry(_K.TIMEOUT, "The connection attempt timed out."),
        "12541": _entry(_K.NETWORK_UNREACHABLE, "No listener at the given address. Please check the server address and port."),
        "12543": _entry(_K.NETWORK_UNREACHABLE, "The destination host is unreachable."),
        "12520": _entry(_K.RATE_LIMITED, "The listener could not find an available handler."),
    },
    patterns=(
        (re.compile(r"DPY-6005|DPY-6000|DPY-4011", re.IGNORECASE), "12541"),
        (re.compile(r"DPY-4027|DPY-6001", re.IGNORECASE), "12514"),
    ),
)

SQLITE_ERRORS = ErrorTable(
    prefix="SQLITE",
    label="SQLite",
    entries={
        "CANTOPEN": _entry(_K.NOT_FOUND, "Unable to open the database file. Please verify the path."),
        "NOTADB": _entry(_K.INVALID_CONFIG, "The file is not a SQLite database."),
        "AUTH": _entry(_K.UNAUTHORIZED, "Authorization denied by the database."),
        "PERM": _entry(_K.UNAUTHORIZED, "Access permission denied for the database file."),
        "BUSY": _entry(_K.TIMEOUT, "The database file is locked."),
    },
    patterns=(
        (re.compile(r"unable to open database file", re.IGNORECASE), "CANTOPEN"),
        (re.compile(r"file is not a database", re.IGNORECASE), "NOTADB"),
        (re.compile(r"database is locked", re.IGNORECASE), "BUSY"),
    ),
)


@dataclass(frozen=True)
class ProbeFailure:
    """A classified failure, ready to become a ``RunOutcome``."""

    kind: ProbeErrorKind
    code: str
    message: str
    details: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_outcome(self, duration_ms: float) -> RunOutcome:
        return RunOutcome(
            success=False,
            message=sanitize_error_text(self.message),
            duration_ms=duration_ms,
            error_code=self.code,
            error_kind=self.kind,
            error_details=sanitize_error_text(self.details)[:MAX_DETAIL_LENGTH] or None,
            metadata=dict(self.metadata),
        )


def _context_for(kind: ProbeErrorKind, native: bool) -> str:
    if kind == ProbeErrorKind.TIMEOUT:
        return CONTEXT_TIMEOUT
    if kind == ProbeErrorKind.INVALID_CONFIG:
        return CONTEXT_CONFIG
    return CONTEXT_DATABASE if native else CONTEXT_GENERIC


def classify_native(table: ErrorTable, native_code: str | None, exc: BaseException) -> ProbeFailure | None:
    """Look up a driver error in ``table``. None if no native key is known."""
    text = str(exc)
    key = native_code if native_code is not None else table.match_message(text)
    if key is None:
        return None

    entry = table.entries.get(key)
    if entry is None:
        kind = ProbeErrorKind.UNKNOWN
        message = f"{table.label} error: {sanitize_error_text(text)}"
    else:
        kind, message = entry.kind, entry.message
    return ProbeFailure(
        kind=kind,
        code=f"{table.prefix}_{key}",
        message=f"{_context_for(kind, native=True)}: {message}",
        details=text,
    )


def classify_generic(exc: BaseException, fallback_prefix: str) -> ProbeFailure:
    """Classify an exception with no technology-specific code."""
    text = str(exc)

    if isinstance(exc, ProbeError):
        kind = exc.kind if isinstance(exc.kind, ProbeErrorKind) else ProbeErrorKind.UNKNOWN
        return ProbeFailure(
            kind=kind,
            code=exc.code,
            message=exc.message,
            details=exc.details or "",
        )
    if isinstance(exc, TimeoutError):
        return ProbeFailure(
            kind=ProbeErrorKind.TIMEOUT,
            code="TIMEOUT",
            message=f"{CONTEXT_TIMEOUT}: The connection attempt timed out. Please check your network connectivity and server availability.",
            details=text,
        )
    if isinstance(exc, PermissionError):
        return ProbeFailure(
            kind=ProbeErrorKind.UNAUTHORIZED,
            code="UNAUTHORIZED",
            message=f"{CONTEXT_GENERIC}: Access denied. Please check your credentials.",
            details=text,
        )
    if isinstance(exc, (ValidationError, ConfigError)):
        return ProbeFailure(
            kind=ProbeErrorKind.INVALID_CONFIG,
            code="INVALID_CONFIG",
            message=f"{CONTEXT_CONFIG}: {exc.message}",
            details=text,
        )
    if isinstance(exc, ValueError):
        return ProbeFailure(
            kind=ProbeErrorKind.INVALID_CONFIG,
            code="INVALID_CONFIG",
            message=f"{CONTEXT_CONFIG}: Invalid connection configuration. Please verify your connection settings.",
            details=text,
        )
    # Socket-level failures: refused, reset, DNS lookup, unreachable host
    if isinstance(exc, OSError):
        return ProbeFailure(
            kind=ProbeErrorKind.NETWORK_UNREACHABLE,
            code="NETWORK_ERROR",
            message=f"{CONTEXT_GENERIC}: The server could not be reached. Please check the address and that the service is running.",
            details=text,
        )
    return ProbeFailure(
        kind=ProbeErrorKind.UNKNOWN,
        code=f"{fallback_prefix}_ERROR",
        message=f"{CONTEXT_GENERIC}: Unable to connect. Please verify your connection settings and try again.",
        details=text,
    )


__all__ = [
    "sanitize_error_text",
    "TaxonomyEntry",
    "ErrorTable",
    "ProbeFailure",
    "classify_native",
    "classify_generic",
    "SQLSERVER_ERRORS",
    "POSTGRESQL_ERRORS",
    "MYSQL_ERRORS",
    "ORACLE_ERRORS",
    "SQLITE_ERRORS",
    "CONTEXT_DATABASE",
    "CONTEXT_CONFIG",
    "CONTEXT_TIMEOUT",
    "CONTEXT_GENERIC",
]
