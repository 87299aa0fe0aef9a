"""MySQL probe (mysql-connector-python)."""

from __future__ import annotations

from typing import Any

from connwatch.core.models import Connection, ConnectionKind

from .base import ConnectionProbe, driver_missing
from .taxonomy import MYSQL_ERRORS
from .types import Credentials, resolve_target


class MySQLProbe(ConnectionProbe):
    """Connect and run ``SELECT VERSION()``."""

    kind = ConnectionKind.MYSQL
    error_table = MYSQL_ERRORS

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        try:
            import mysql.connector
        except ImportError:
            raise driver_missing(self.kind, "mysql-connector-python", "mysql") from None

        target = resolve_target(connection, credentials)
        params: dict[str, Any] = {
            "host": target.host,
            "port": target.port,
            "connection_timeout": max(1, int(timeout)),
        }
        if target.database:
            params["database"] = target.database
        if target.username:
            params["user"] = target.username
        if target.password:
            params["password"] = target.password

        conn = mysql.connector.connect(**params)
        try:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT VERSION()")
                version = cursor.fetchone()[0]
            finally:
                cursor.close()
        finally:
            conn.close()

        return {
            "provider": "MySQL",
            "server_version": version,
            "database": target.database,
            "host": target.host,
            "port": target.port,
        }

    def native_code(self, exc: BaseException) -> str | None:
        # OSError also has errno; those are socket errors, not server codes
        if isinstance(exc, OSError):
            return None
        errno = getattr(exc, "errno", None)
        if isinstance(errno, int) and errno > 0:
            return str(errno)
        return None
