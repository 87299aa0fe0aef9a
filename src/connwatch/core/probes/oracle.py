"""Oracle probe (python-oracledb, thin mode)."""

from __future__ import annotations

import re
from typing import Any

from connwatch.core.models import Connection, ConnectionKind

from .base import ConnectionProbe, driver_missing
from .taxonomy import ORACLE_ERRORS
from .types import Credentials, resolve_target

_ORA_CODE = re.compile(r"ORA-(\d{4,5})")


class OracleProbe(ConnectionProbe):
    """Connect and run ``SELECT 1 FROM DUAL``."""

    kind = ConnectionKind.ORACLE
    error_table = ORACLE_ERRORS

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        try:
            import oracledb
        except ImportError:
            raise driver_missing(self.kind, "oracledb", "oracle") from None

        target = resolve_target(connection, credentials)
        dsn = f"{target.host}:{target.port}/{target.database or ''}"
        conn = oracledb.connect(
            user=target.username,
            password=target.password,
            dsn=dsn,
            tcp_connect_timeout=timeout,
        )
        try:
            conn.call_timeout = int(timeout * 1000)
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM DUAL")
                cursor.fetchone()
            version = conn.version
        finally:
            conn.close()

        return {
            "provider": "Oracle",
            "server_version": version,
            "database": target.database,
            "host": target.host,
            "port": target.port,
        }

    def native_code(self, exc: BaseException) -> str | None:
        error = exc.args[0] if getattr(exc, "args", None) else None
        full_code = getattr(error, "full_code", "") or ""
        code = getattr(error, "code", None)
        if full_code.startswith("ORA-") and isinstance(code, int):
            return str(code)
        match = _ORA_CODE.search(str(exc))
        if match:
            return str(int(match.group(1)))
        return None

    def _is_driver_error(self, exc: BaseException) -> bool:
        error = exc.args[0] if getattr(exc, "args", None) else None
        return hasattr(error, "full_code") or "DPY-" in str(exc)
