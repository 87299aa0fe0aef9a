"""Schedule store: persistence for schedules, connections and applications.

Manifesto:
    The dispatcher and the runner only ever see the ``ScheduleStore``
    protocol. Persistence, timestamp encoding and credential encryption on
    write live here, so the scheduling logic can be tested against an
    in-memory SQLite database.

Tags:
    connwatch, scheduling, repository, sqlite, CRUD


┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULE STORE                                                               │
│                                                                               │
│   Scheduling:                                                                 │
│   ├── list_due_schedules(now) → list[Schedule]                               │
│   ├── get_connections_for_application(app_id) → list[Connection]             │
│   ├── save_schedule_run_result(id, status, message, duration, ...)           │
│   └── record_connection_test(connection_id, outcome)                         │
│                                                                               │
│   Schedule CRUD:                                                              │
│   ├── upsert_schedule(app_id, cron, enabled, next_run_at) → Schedule         │
│   ├── get_schedule / get_schedule_for_application / list_schedules           │
│   ├── set_enabled(id, enabled, next_run_at) → Schedule | None                │
│   └── delete_schedule(id) → bool                                             │
│                                                                               │
│   Connections & applications:                                                 │
│   ├── save_connection(connection, password=..., ...) → Connection            │
│   ├── get_connection(id) → Connection | None                                 │
│   └── create_application / get_application                                   │
│                                                                               │
│  Timestamps are stored as ISO-8601 UTC strings with microseconds so that    │
│  string comparison in ``list_due_schedules`` matches time order.             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from connwatch.core.errors import MissingConfigError, NotFoundError
from connwatch.core.logging import get_logger
from connwatch.core.models import (
    Application,
    Connection,
    ConnectionKind,
    ConnectionStatus,
    RunOutcome,
    RunStatus,
    Schedule,
)
from connwatch.core.secrets import CredentialCipher

logger = get_logger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS applications (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS connections (
    id                          INTEGER PRIMARY KEY AUTOINCREMENT,
    application_id              INTEGER REFERENCES applications(id) ON DELETE SET NULL,
    name                        TEXT NOT NULL,
    kind                        TEXT NOT NULL,
    description                 TEXT,
    server                      TEXT,
    port                        INTEGER,
    database                    TEXT,
    api_base_url                TEXT,
    additional_settings         TEXT,
    github_organization         TEXT,
    github_repository           TEXT,
    username                    TEXT,
    password_encrypted          TEXT,
    connection_string_encrypted TEXT,
    api_key_encrypted           TEXT,
    github_token_encrypted      TEXT,
    is_active                   INTEGER NOT NULL DEFAULT 1,
    status                      TEXT NOT NULL DEFAULT 'untested',
    last_tested_at              TEXT,
    last_test_result            TEXT,
    created_at                  TEXT NOT NULL,
    updated_at                  TEXT
);

CREATE INDEX IF NOT EXISTS idx_connections_application ON connections(application_id);

CREATE TABLE IF NOT EXISTS connection_test_schedules (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    application_id       INTEGER NOT NULL UNIQUE REFERENCES applications(id) ON DELETE CASCADE,
    cron_expression      TEXT NOT NULL,
    is_enabled           INTEGER NOT NULL DEFAULT 1,
    last_run_time        TEXT,
    last_run_status      TEXT,
    last_run_message     TEXT,
    last_run_duration_ms REAL,
    next_run_time        TEXT,
    created_at           TEXT NOT NULL,
    updated_at           TEXT
);

CREATE INDEX IF NOT EXISTS idx_schedules_due ON connection_test_schedules(is_enabled, next_run_time);
"""

_CONNECTION_COLUMNS = (
    "application_id",
    "name",
    "kind",
    "description",
    "server",
    "port",
    "database",
    "api_base_url",
    "additional_settings",
    "github_organization",
    "github_repository",
    "username",
    "password_encrypted",
    "connection_string_encrypted",
    "api_key_encrypted",
    "github_token_encrypted",
    "is_active",
)


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _now_iso() -> str:
    return _to_iso(datetime.now(UTC))  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ScheduleStore(Protocol):
    """What the dispatcher, runner and ops layer need from persistence."""

    def list_due_schedules(self, now: datetime) -> list[Schedule]: ...

    def get_connections_for_application(self, application_id: int) -> list[Connection]: ...

    def save_schedule_run_result(
        self,
        schedule_id: int,
        status: RunStatus,
        message: str,
        duration_ms: float,
        next_run_at: datetime | None,
        last_run_at: datetime,
    ) -> bool: ...

    def upsert_schedule(
        self,
        application_id: int,
        cron_expression: str,
        enabled: bool,
        next_run_at: datetime | None,
    ) -> Schedule: ...

    def delete_schedule(self, schedule_id: int) -> bool: ...

    def get_schedule(self, schedule_id: int) -> Schedule | None: ...

    def get_schedule_for_application(self, application_id: int) -> Schedule | None: ...

    def list_schedules(self, enabled_only: bool = False) -> list[Schedule]: ...

    def set_enabled(self, schedule_id: int, enabled: bool, next_run_at: datetime | None) -> Schedule | None: ...

    def record_connection_test(self, connection_id: int, outcome: RunOutcome) -> None: ...

    def get_connection(self, connection_id: int) -> Connection | None: ...

    def save_connection(
        self,
        connection: Connection,
        *,
        password: str | None = None,
        connection_string: str | None = None,
        api_key: str | None = None,
        github_token: str | None = None,
    ) -> Connection: ...

    def create_application(self, name: str, is_active: bool = True) -> Application: ...

    def get_application(self, application_id: int) -> Application | None: ...


# ---------------------------------------------------------------------------
# SQLite implementation
# ---------------------------------------------------------------------------


class SQLiteScheduleStore:
    """SQLite-backed ``ScheduleStore``.

    The dispatcher runs ticks on a background thread and the runner may
    probe from a worker thread, so a single connection opened with
    ``check_same_thread=False`` is shared behind a lock.

    Example:
        >>> store = SQLiteScheduleStore.open(":memory:", cipher=cipher)
        >>> store.init_schema()
        >>> app = store.create_application("billing")
        >>> store.upsert_schedule(app.id, "*/15 * * * *", True, next_run)
    """

    def __init__(self, conn: sqlite3.Connection, cipher: CredentialCipher | None = None) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.cipher = cipher
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: str | Path, cipher: CredentialCipher | None = None) -> SQLiteScheduleStore:
        """Open (creating parent directories) a database file or ``:memory:``."""
        if str(path) != ":memory:":
            Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            path = Path(path).expanduser()
        conn = sqlite3.connect(str(path), check_same_thread=False)
        conn.execute("PRAGMA foreign_keys = ON")
        return cls(conn, cipher=cipher)

    def init_schema(self) -> None:
        with self._lock:
            self.conn.executescript(SCHEMA)
            self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def _fetchone(self, sql: str, params: tuple | list = ()) -> sqlite3.Row | None:
        with self._lock:
            return self.conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    def _write(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        with self._lock:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor

    # === Applications ===

    def create_application(self, name: str, is_active: bool = True) -> Application:
        cursor = self._write(
            "INSERT INTO applications (name, is_active, created_at) VALUES (?, ?, ?)",
            (name, 1 if is_active else 0, _now_iso()),
        )
        return Application(id=cursor.lastrowid, name=name, is_active=is_active)

    def get_application(self, application_id: int) -> Application | None:
        row = self._fetchone(
            "SELECT id, name, is_active FROM applications WHERE id = ?",
            (application_id,),
        )
        if not row:
            return None
        return Application(id=row["id"], name=row["name"], is_active=bool(row["is_active"]))

    # === Schedules ===

    def list_due_schedules(self, now: datetime) -> list[Schedule]:
        """Enabled schedules whose ``next_run_at`` is at or before ``now``."""
        rows = self._fetchall(
            """
            SELECT * FROM connection_test_schedules
            WHERE is_enabled = 1 AND next_run_time IS NOT NULL AND next_run_time <= ?
            ORDER BY next_run_time, id
            """,
            (_to_iso(now),),
        )
        return [self._row_to_schedule(row) for row in rows]

    def get_schedule(self, schedule_id: int) -> Schedule | None:
        row = self._fetchone(
            "SELECT * FROM connection_test_schedules WHERE id = ?",
            (schedule_id,),
        )
        return self._row_to_schedule(row) if row else None

    def get_schedule_for_application(self, application_id: int) -> Schedule | None:
        row = self._fetchone(
            "SELECT * FROM connection_test_schedules WHERE application_id = ?",
            (application_id,),
        )
        return self._row_to_schedule(row) if row else None

    def list_schedules(self, enabled_only: bool = False) -> list[Schedule]:
        sql = "SELECT * FROM connection_test_schedules"
        if enabled_only:
            sql += " WHERE is_enabled = 1"
        rows = self._fetchall(sql + " ORDER BY application_id")
        return [self._row_to_schedule(row) for row in rows]

    def upsert_schedule(
        self,
        application_id: int,
        cron_expression: str,
        enabled: bool,
        next_run_at: datetime | None,
    ) -> Schedule:
        """Create the application's schedule, or replace its cron/enabled/next run."""
        now = _now_iso()
        self._write(
            """
            INSERT INTO connection_test_schedules (
                application_id, cron_expression, is_enabled, next_run_time, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(application_id) DO UPDATE SET
                cron_expression = excluded.cron_expression,
                is_enabled = excluded.is_enabled,
                next_run_time = excluded.next_run_time,
                updated_at = excluded.updated_at
            """,
            (application_id, cron_expression, 1 if enabled else 0, _to_iso(next_run_at), now, now),
        )
        return self.get_schedule_for_application(application_id)  # type: ignore[return-value]

    def set_enabled(self, schedule_id: int, enabled: bool, next_run_at: datetime | None) -> Schedule | None:
        cursor = self._write(
            """
            UPDATE connection_test_schedules
            SET is_enabled = ?, next_run_time = ?, updated_at = ?
            WHERE id = ?
            """,
            (1 if enabled else 0, _to_iso(next_run_at), _now_iso(), schedule_id),
        )
        if cursor.rowcount == 0:
            return None
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: int) -> bool:
        cursor = self._write("DELETE FROM connection_test_schedules WHERE id = ?", (schedule_id,))
        return cursor.rowcount > 0

    def save_schedule_run_result(
        self,
        schedule_id: int,
        status: RunStatus,
        message: str,
        duration_ms: float,
        next_run_at: datetime | None,
        last_run_at: datetime,
    ) -> bool:
        """Persist a run's outcome. Returns False if the schedule no longer exists."""
        cursor = self._write(
            """
            UPDATE connection_test_schedules
            SET last_run_time = ?, last_run_status = ?, last_run_message = ?,
                last_run_duration_ms = ?, next_run_time = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                _to_iso(last_run_at),
                RunStatus(status).value,
                message,
                duration_ms,
                _to_iso(next_run_at),
                _now_iso(),
                schedule_id,
            ),
        )
        if cursor.rowcount == 0:
            logger.warning("schedule_result_dropped", schedule_id=schedule_id, reason="not_found")
            return False
        return True

    # === Connections ===

    def get_connection(self, connection_id: int) -> Connection | None:
        row = self._fetchone("SELECT * FROM connections WHERE id = ?", (connection_id,))
        return self._row_to_connection(row) if row else None

    def get_connections_for_application(self, application_id: int) -> list[Connection]:
        rows = self._fetchall(
            "SELECT * FROM connections WHERE application_id = ? ORDER BY id",
            (application_id,),
        )
        return [self._row_to_connection(row) for row in rows]

    def save_connection(
        self,
        connection: Connection,
        *,
        password: str | None = None,
        connection_string: str | None = None,
        api_key: str | None = None,
        github_token: str | None = None,
    ) -> Connection:
        """Insert or update a connection.

        Plaintext credentials passed as keyword arguments are encrypted with
        the store's cipher before they reach the database.
        """
        plaintext = {
            "password_encrypted": password,
            "connection_string_encrypted": connection_string,
            "api_key_encrypted": api_key,
            "github_token_encrypted": github_token,
        }
        for attr, value in plaintext.items():
            if value:
                setattr(connection, attr, self._encrypt(value))

        values: list[Any] = []
        for column in _CONNECTION_COLUMNS:
            value = getattr(connection, column)
            if column == "kind":
                value = ConnectionKind.parse(value).value
            elif column == "is_active":
                value = 1 if value else 0
            values.append(value)

        now = _now_iso()
        if connection.id is None:
            columns = ", ".join((*_CONNECTION_COLUMNS, "status", "created_at", "updated_at"))
            placeholders = ", ".join("?" * (len(_CONNECTION_COLUMNS) + 3))
            cursor = self._write(
                f"INSERT INTO connections ({columns}) VALUES ({placeholders})",
                (*values, ConnectionStatus(connection.status).value, now, now),
            )
            connection.id = cursor.lastrowid
        else:
            assignments = ", ".join(f"{column} = ?" for column in _CONNECTION_COLUMNS)
            cursor = self._write(
                f"UPDATE connections SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, now, connection.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Connection", connection.id)
        return self.get_connection(connection.id)  # type: ignore[return-value]

    def record_connection_test(self, connection_id: int, outcome: RunOutcome) -> None:
        status = ConnectionStatus.CONNECTED if outcome.success else ConnectionStatus.FAILED
        self._write(
            """
            UPDATE connections
            SET status = ?, last_tested_at = ?, last_test_result = ?, updated_at = ?
            WHERE id = ?
            """,
            (status.value, _to_iso(outcome.tested_at), outcome.message, _now_iso(), connection_id),
        )

    def _encrypt(self, value: str) -> str:
        if self.cipher is None:
            raise MissingConfigError(
                "secret_key",
                "A credential cipher is required to store connection credentials",
            )
        return self.cipher.encrypt(value)

    # === Private Helpers ===

    def _row_to_schedule(self, row: sqlite3.Row) -> Schedule:
        status = row["last_run_status"]
        return Schedule(
            id=row["id"],
            application_id=row["application_id"],
            cron_expression=row["cron_expression"],
            enabled=bool(row["is_enabled"]),
            last_run_at=_from_iso(row["last_run_time"]),
            last_run_status=RunStatus(status) if status else None,
            last_run_message=row["last_run_message"],
            last_run_duration_ms=row["last_run_duration_ms"],
            next_run_at=_from_iso(row["next_run_time"]),
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
        )

    def _row_to_connection(self, row: sqlite3.Row) -> Connection:
        data = {column: row[column] for column in _CONNECTION_COLUMNS}
        data["kind"] = ConnectionKind.parse(data["kind"])
        data["is_active"] = bool(data["is_active"])
        return Connection(
            id=row["id"],
            status=ConnectionStatus(row["status"]),
            last_tested_at=_from_iso(row["last_tested_at"]),
            last_test_result=row["last_test_result"],
            created_at=_from_iso(row["created_at"]),
            updated_at=_from_iso(row["updated_at"]),
            **data,
        )


__all__ = ["SCHEMA", "ScheduleStore", "SQLiteScheduleStore"]
