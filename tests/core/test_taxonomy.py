"""
Tests for the probe failure taxonomy.

Tests cover:
- Credential redaction in error text
- Native-code lookup per technology, with fake driver exceptions
- Generic classification of Python exceptions
"""

import socket
import sqlite3

import pytest

from connwatch.core.errors import ProbeError, ValidationError
from connwatch.core.models import ProbeErrorKind
from connwatch.core.probes import (
    MySQLProbe,
    OracleProbe,
    PostgreSQLProbe,
    SQLiteProbe,
    SqlServerProbe,
    sanitize_error_text,
)
from connwatch.core.probes.taxonomy import POSTGRESQL_ERRORS, ProbeFailure, classify_generic, classify_native


class FakePsycopgError(Exception):
    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


class FakeMySQLError(Exception):
    def __init__(self, message, errno):
        super().__init__(message)
        self.errno = errno


class FakeOracleError:
    def __init__(self, full_code, code, message):
        self.full_code = full_code
        self.code = code
        self.message = message

    def __str__(self):
        return self.message


class FakePyodbcError(Exception):
    pass


class TestSanitizeErrorText:
    """Tests for sanitize_error_text."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("login failed; password=secret123; user=sa", "login failed; password=***; user=sa"),
            ("Pwd=hunter2;Server=x", "password=***;Server=x"),
            ("apikey=abc123;x=1", "apikey=***;x=1"),
            ("GET /?token=ghp_abc&page=2", "GET /?token=***&page=2"),
            ("postgresql://app:s3cret@db:5432/app", "postgresql://app:***@db:5432/app"),
        ],
    )
    def test_redacts(self, text, expected):
        assert sanitize_error_text(text) == expected

    def test_authorization_header(self):
        result = sanitize_error_text("Authorization: token ghp_abcdef")
        assert "ghp_abcdef" not in result
        assert result.endswith("***")

    def test_empty(self):
        assert sanitize_error_text(None) == ""
        assert sanitize_error_text("") == ""

    def test_clean_text_untouched(self):
        assert sanitize_error_text("connection refused") == "connection refused"


class TestClassifyNative:
    """Tests for classify_native."""

    def test_known_code(self):
        failure = classify_native(POSTGRESQL_ERRORS, "28P01", Exception("boom"))
        assert failure.code == "PG_28P01"
        assert failure.kind == ProbeErrorKind.UNAUTHORIZED
        assert failure.message.startswith("Database connection failed: ")

    def test_unknown_code_falls_back_to_driver_text(self):
        failure = classify_native(POSTGRESQL_ERRORS, "XX000", Exception("internal; password=x"))
        assert failure.code == "PG_XX000"
        assert failure.kind == ProbeErrorKind.UNKNOWN
        assert "PostgreSQL error: " in failure.message
        assert "password=***" in failure.message

    def test_message_pattern(self):
        failure = classify_native(POSTGRESQL_ERRORS, None, Exception('database "nope" does not exist'))
        assert failure.code == "PG_3D000"
        assert failure.kind == ProbeErrorKind.NOT_FOUND

    def test_no_key(self):
        assert classify_native(POSTGRESQL_ERRORS, None, Exception("something else")) is None


class TestClassifyGeneric:
    """Tests for classify_generic."""

    def test_timeout(self):
        failure = classify_generic(TimeoutError("timed out"), "POSTGRESQL")
        assert failure.kind == ProbeErrorKind.TIMEOUT
        assert failure.code == "TIMEOUT"
        assert failure.message.startswith("Connection timeout: ")

    def test_permission(self):
        failure = classify_generic(PermissionError("denied"), "POSTGRESQL")
        assert failure.kind == ProbeErrorKind.UNAUTHORIZED

    def test_validation(self):
        failure = classify_generic(ValidationError("Server is required"), "MYSQL")
        assert failure.kind == ProbeErrorKind.INVALID_CONFIG
        assert failure.message == "Invalid connection configuration: Server is required"

    def test_value_error(self):
        assert classify_generic(ValueError("bad"), "MYSQL").kind == ProbeErrorKind.INVALID_CONFIG

    def test_connection_error(self):
        failure = classify_generic(ConnectionRefusedError("refused"), "MYSQL")
        assert failure.kind == ProbeErrorKind.NETWORK_UNREACHABLE
        assert failure.code == "NETWORK_ERROR"

    def test_dns_failure_is_network(self):
        failure = classify_generic(socket.gaierror(-2, "Name or service not known"), "POSTGRESQL")
        assert failure.kind == ProbeErrorKind.NETWORK_UNREACHABLE
        assert failure.code == "NETWORK_ERROR"

    def test_unreachable_host_is_network(self):
        failure = classify_generic(OSError(113, "No route to host"), "MYSQL")
        assert failure.kind == ProbeErrorKind.NETWORK_UNREACHABLE

    def test_probe_error_passes_through(self):
        exc = ProbeError("GitHub token is required", kind=ProbeErrorKind.UNAUTHORIZED, code="GITHUB_NO_TOKEN")
        failure = classify_generic(exc, "GITHUB_API")
        assert failure.code == "GITHUB_NO_TOKEN"
        assert failure.message == "GitHub token is required"

    def test_unknown(self):
        failure = classify_generic(RuntimeError("???"), "ORACLE")
        assert failure.kind == ProbeErrorKind.UNKNOWN
        assert failure.code == "ORACLE_ERROR"


class TestProbeFailure:
    """Tests for ProbeFailure.to_outcome."""

    def test_outcome_is_sanitized(self):
        failure = ProbeFailure(
            kind=ProbeErrorKind.UNKNOWN,
            code="X",
            message="failed with password=abc",
            details="dsn: user:pw@; pwd=abc",
        )
        outcome = failure.to_outcome(12.5)
        assert outcome.success is False
        assert outcome.duration_ms == 12.5
        assert "abc" not in outcome.message
        assert "abc" not in outcome.error_details

    def test_empty_details_become_none(self):
        outcome = ProbeFailure(kind=ProbeErrorKind.TIMEOUT, code="TIMEOUT", message="m").to_outcome(1.0)
        assert outcome.error_details is None


class TestDriverClassification:
    """Per-probe classification of driver exceptions."""

    def test_postgresql_sqlstate(self):
        failure = PostgreSQLProbe().classify(FakePsycopgError("auth", pgcode="28P01"))
        assert failure.code == "PG_28P01"
        assert failure.kind == ProbeErrorKind.UNAUTHORIZED

    def test_postgresql_connect_time_message(self):
        exc = FakePsycopgError('FATAL:  password authentication failed for user "app"')
        failure = PostgreSQLProbe().classify(exc)
        assert failure.code == "PG_28P01"

    def test_mysql_errno(self):
        failure = MySQLProbe().classify(FakeMySQLError("Access denied", errno=1045))
        assert failure.code == "MYSQL_1045"
        assert failure.kind == ProbeErrorKind.UNAUTHORIZED

    def test_mysql_ignores_socket_errno(self):
        failure = MySQLProbe().classify(ConnectionRefusedError(111, "refused"))
        assert failure.code == "NETWORK_ERROR"

    def test_sqlserver_login_failed(self):
        exc = FakePyodbcError(
            "28000",
            "[28000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"
            "Login failed for user 'sa'. (18456) (SQLDriverConnect)",
        )
        failure = SqlServerProbe().classify(exc)
        assert failure.code == "SQL_18456"
        assert failure.message == "Database connection failed: Login failed. Please check your username and password."

    def test_sqlserver_timeout_sqlstate(self):
        failure = SqlServerProbe().classify(FakePyodbcError("HYT00", "[HYT00] Login timeout expired (0)"))
        assert failure.code == "SQL_258"
        assert failure.kind == ProbeErrorKind.TIMEOUT
        assert failure.message.startswith("Connection timeout: ")

    def test_oracle_error_object(self):
        exc = Exception(FakeOracleError("ORA-01017", 1017, "ORA-01017: invalid username/password"))
        failure = OracleProbe().classify(exc)
        assert failure.code == "ORA_1017"
        assert failure.kind == ProbeErrorKind.UNAUTHORIZED

    def test_oracle_code_in_text(self):
        failure = OracleProbe().classify(Exception("ORA-12541: TNS:no listener"))
        assert failure.code == "ORA_12541"
        assert failure.kind == ProbeErrorKind.NETWORK_UNREACHABLE

    def test_sqlite_message_fallback(self):
        failure = SQLiteProbe().classify(sqlite3.OperationalError("unable to open database file"))
        assert failure.code == "SQLITE_CANTOPEN"
        assert failure.kind == ProbeErrorKind.NOT_FOUND

    def test_non_driver_error_is_generic(self):
        failure = PostgreSQLProbe().classify(TimeoutError("slow"))
        assert failure.code == "TIMEOUT"
