"""SQLite probe (stdlib sqlite3).

Opens the database read-only so probing never creates a missing file.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from connwatch.core.models import Connection, ConnectionKind

from .base import ConnectionProbe
from .taxonomy import SQLITE_ERRORS
from .types import Credentials, resolve_target


class SQLiteProbe(ConnectionProbe):
    """Open read-only and run ``SELECT sqlite_version()``."""

    kind = ConnectionKind.SQLITE
    error_table = SQLITE_ERRORS

    def _probe(self, connection: Connection, credentials: Credentials, timeout: float) -> dict[str, Any]:
        target = resolve_target(connection, credentials)
        path = Path(target.database).expanduser().resolve()

        conn = sqlite3.connect(f"{path.as_uri()}?mode=ro", uri=True, timeout=timeout)
        try:
            version = conn.execute("SELECT sqlite_version()").fetchone()[0]
            # Forces a read of the header; a non-database file fails here
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        finally:
            conn.close()

        return {
            "provider": "SQLite",
            "server_version": version,
            "database": str(path),
        }

    def native_code(self, exc: BaseException) -> str | None:
        name = getattr(exc, "sqlite_errorname", None)
        if not name or not name.startswith("SQLITE_"):
            return None
        return name[len("SQLITE_"):].split("_")[0]

    def _is_driver_error(self, exc: BaseException) -> bool:
        return isinstance(exc, sqlite3.Error)
