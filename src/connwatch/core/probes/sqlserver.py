"""SQL Server probe (pyodbc).

pyodbc reports failures as ``(sqlstate, message)`` with the server's native
error number embedded in the message, e.g.::

    ('28000', "[28000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]
     Login failed for user 'sa'. (18456) (SQLDriverConnect)")
"""

from __future__ import annotations

import re
from typing import Any

from connwatch.core.models import Connection, ConnectionKind

from .base import ConnectionProbe, driver_missing
from .taxonomy import SQLSERVER_ERRORS
from .types import ConnectionTarget, Credentials, resolve_target

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

_SQLSTATE = re.compile(r"^[0-9A-Z]{5}$")
_NATIVE_NUMBER = re.compile(r"\((-?\d+)\)")

# Client-side SQLSTATEs with no server error number
_SQLSTATE_NUMBERS = {
    "08001": "-1",
    "08S01": "-1",
    "HYT00": "258",
    "HYT01": "258",
    "28000": "18456",
}


def build_odbc_connection_string(target: ConnectionTarget) -> str:
    """Render a resolved target as an ODBC connection string."""
    driver = target.options.get("driver", DEFAULT_ODBC_DRIVER).strip("{}")
    server = target.host or ""
    if target.port and target.port != ConnectionKind.SQLSERVER.default_port:
        server = f"{server},{target.port}"

    parts = [f"DRIVER={{{driver}}}", f"SERVER={server}"]
    if target.database:
        parts.append(f"DATABASE={target.database}")
    if target.username and not target.integrated_auth:
        parts.append(f"UID={target.username}")
        parts.append(f"PWD={{{(target.password or '').replace('}', '}}')}}}")
    else:
        parts.append("Trusted_Connection=yes")

    encrypt = target.options.get("encrypt")
    if encrypt:
        parts.append(f"Encrypt={encrypt}")
    trust = target.options.get("trustservercertificate") or target.options.get("trust server certificate")
    if trust:
        parts.append(f"TrustServerCertificate={trust}")
    return ";".join(parts)


def _pyodbc_parts(exc: BaseException) -> tuple[str | None, str]:
    args = getattr(exc, "args", ())
    if len(args) >= 2 and isinstance(args[0], str) and _SQLSTATE.match(args[0]):
        return args[0], str(args[1])
    return None, str(exc)


class SqlServerProbe(ConnectionProbe):
    """Connect and run ``SELECT @@VERSION``."""

    kind = ConnectionKind.SQLSERVER
    error_table = SQLSERVER_ERRORS

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        try:
            import pyodbc
        except ImportError:
            raise driver_missing(self.kind, "pyodbc", "sqlserver") from None

        target = resolve_target(connection, credentials)
        conn = pyodbc.connect(build_odbc_connection_string(target), timeout=max(1, int(timeout)))
        try:
            conn.timeout = max(1, int(timeout))
            cursor = conn.cursor()
            version = cursor.execute("SELECT @@VERSION").fetchone()[0]
        finally:
            conn.close()

        return {
            "provider": "SQL Server",
            "server_version": version.splitlines()[0] if version else None,
            "database": target.database,
            "host": target.host,
            "port": target.port,
        }

    def native_code(self, exc: BaseException) -> str | None:
        sqlstate, text = _pyodbc_parts(exc)
        if sqlstate is None:
            return None
        numbers = _NATIVE_NUMBER.findall(text)
        for number in numbers:
            if number in self.error_table.entries:
                return number
        if sqlstate in _SQLSTATE_NUMBERS:
            return _SQLSTATE_NUMBERS[sqlstate]
        return None

    def _is_driver_error(self, exc: BaseException) -> bool:
        return _pyodbc_parts(exc)[0] is not None
