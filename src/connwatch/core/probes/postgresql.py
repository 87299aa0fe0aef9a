"""PostgreSQL probe (psycopg2)."""

from __future__ import annotations

from typing import Any

from connwatch.core.models import Connection, ConnectionKind

from .base import ConnectionProbe, driver_missing
from .taxonomy import POSTGRESQL_ERRORS
from .types import Credentials, resolve_target

_OPTION_KEYS = {
    "sslmode": "sslmode",
    "ssl mode": "sslmode",
    "application_name": "application_name",
    "application name": "application_name",
}


class PostgreSQLProbe(ConnectionProbe):
    """Connect and run ``SELECT version()``.

    ``connect_timeout`` bounds the handshake and ``statement_timeout``
    bounds the query, both derived from the probe timeout.
    """

    kind = ConnectionKind.POSTGRESQL
    error_table = POSTGRESQL_ERRORS

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        try:
            import psycopg2
        except ImportError:
            raise driver_missing(self.kind, "psycopg2", "postgresql") from None

        target = resolve_target(connection, credentials)
        params: dict[str, Any] = {
            "host": target.host,
            "port": target.port,
            "dbname": target.database or "postgres",
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
        if target.username:
            params["user"] = target.username
        if target.password:
            params["password"] = target.password
        for key, value in target.options.items():
            if key in _OPTION_KEYS:
                params[_OPTION_KEYS[key]] = value

        conn = psycopg2.connect(**params)
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT version()")
                version = cursor.fetchone()[0]
        finally:
            conn.close()

        return {
            "provider": "PostgreSQL",
            "server_version": version,
            "database": params["dbname"],
            "host": target.host,
            "port": target.port,
        }

    def native_code(self, exc: BaseException) -> str | None:
        return getattr(exc, "pgcode", None) or None

    def _is_driver_error(self, exc: BaseException) -> bool:
        return hasattr(exc, "pgcode")
