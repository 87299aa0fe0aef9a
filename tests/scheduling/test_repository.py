"""
Tests for SQLiteScheduleStore.

Tests cover:
- Application and schedule CRUD
- Due-schedule query semantics
- Run-result persistence, including deleted schedules
- Connection persistence with credential encryption
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest

from connwatch.core.errors import MissingConfigError, NotFoundError
from connwatch.core.models import Connection, ConnectionKind, ConnectionStatus, RunOutcome, RunStatus
from connwatch.core.scheduling import ScheduleStore, SQLiteScheduleStore


class TestApplications:
    """Test application persistence."""

    def test_create_and_get(self, store):
        app = store.create_application("payments")
        assert app.id is not None
        fetched = store.get_application(app.id)
        assert fetched.name == "payments"
        assert fetched.is_active is True

    def test_get_missing(self, store):
        assert store.get_application(999) is None

    def test_satisfies_protocol(self, store):
        assert isinstance(store, ScheduleStore)


class TestScheduleCrud:
    """Test schedule create/read/update/delete."""

    def test_upsert_creates(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        assert schedule.id is not None
        assert schedule.application_id == application.id
        assert schedule.cron_expression == "0 9 * * *"
        assert schedule.enabled is True
        assert schedule.next_run_at == fixed_now
        assert schedule.last_run_status is None

    def test_upsert_replaces(self, store, application, fixed_now):
        """A second upsert for the same application updates the same row."""
        first = store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        second = store.upsert_schedule(application.id, "*/5 * * * *", False, None)
        assert second.id == first.id
        assert second.cron_expression == "*/5 * * * *"
        assert second.enabled is False
        assert second.next_run_at is None
        assert len(store.list_schedules()) == 1

    def test_list_enabled_only(self, store, fixed_now):
        a = store.create_application("a")
        b = store.create_application("b")
        store.upsert_schedule(a.id, "0 9 * * *", True, fixed_now)
        store.upsert_schedule(b.id, "0 9 * * *", False, fixed_now)
        assert len(store.list_schedules()) == 2
        assert [s.application_id for s in store.list_schedules(enabled_only=True)] == [a.id]

    def test_set_enabled(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        later = fixed_now + timedelta(days=1)
        updated = store.set_enabled(schedule.id, False, later)
        assert updated.enabled is False
        assert updated.next_run_at == later

    def test_set_enabled_missing(self, store):
        assert store.set_enabled(404, True, None) is None

    def test_delete(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        assert store.delete_schedule(schedule.id) is True
        assert store.get_schedule(schedule.id) is None
        assert store.delete_schedule(schedule.id) is False

    def test_get_for_application(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        assert store.get_schedule_for_application(application.id).id == schedule.id
        assert store.get_schedule_for_application(999) is None


class TestListDueSchedules:
    """Test the due-schedule query."""

    def test_due_includes_past_and_exact(self, store, fixed_now):
        past = store.create_application("past")
        exact = store.create_application("exact")
        store.upsert_schedule(past.id, "0 9 * * *", True, fixed_now - timedelta(hours=1))
        store.upsert_schedule(exact.id, "0 9 * * *", True, fixed_now)
        due = store.list_due_schedules(fixed_now)
        assert [s.application_id for s in due] == [past.id, exact.id]

    def test_excludes_future_disabled_and_unplanned(self, store, fixed_now):
        future = store.create_application("future")
        disabled = store.create_application("disabled")
        unplanned = store.create_application("unplanned")
        store.upsert_schedule(future.id, "0 9 * * *", True, fixed_now + timedelta(seconds=1))
        store.upsert_schedule(disabled.id, "0 9 * * *", False, fixed_now - timedelta(hours=1))
        store.upsert_schedule(unplanned.id, "0 9 * * *", True, None)
        assert store.list_due_schedules(fixed_now) == []

    def test_naive_now_treated_as_utc(self, store, application, fixed_now):
        store.upsert_schedule(application.id, "0 9 * * *", True, fixed_now)
        assert len(store.list_due_schedules(fixed_now.replace(tzinfo=None))) == 1


class TestSaveRunResult:
    """Test run-result persistence."""

    def test_persists_fields(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "*/15 * * * *", True, fixed_now)
        next_run = fixed_now + timedelta(minutes=15)
        saved = store.save_schedule_run_result(
            schedule.id,
            RunStatus.PARTIAL,
            "Tested 2 connections: 1 successful, 1 failed",
            42.5,
            next_run_at=next_run,
            last_run_at=fixed_now,
        )
        assert saved is True

        reloaded = store.get_schedule(schedule.id)
        assert reloaded.last_run_status == RunStatus.PARTIAL
        assert reloaded.last_run_message == "Tested 2 connections: 1 successful, 1 failed"
        assert reloaded.last_run_duration_ms == 42.5
        assert reloaded.last_run_at == fixed_now
        assert reloaded.next_run_at == next_run

    def test_deleted_schedule_dropped(self, store, application, fixed_now):
        schedule = store.upsert_schedule(application.id, "*/15 * * * *", True, fixed_now)
        store.delete_schedule(schedule.id)
        saved = store.save_schedule_run_result(
            schedule.id, RunStatus.SUCCESS, "ok", 1.0, next_run_at=None, last_run_at=fixed_now
        )
        assert saved is False
        assert store.get_schedule(schedule.id) is None


class TestConnections:
    """Test connection persistence."""

    def test_credentials_encrypted(self, store, application, cipher):
        saved = store.save_connection(
            Connection(application_id=application.id, name="db", kind=ConnectionKind.MYSQL, server="db01"),
            password="pw-123",
            github_token="ghp_abc",
        )
        raw = store.conn.execute(
            "SELECT password_encrypted, github_token_encrypted FROM connections WHERE id = ?", (saved.id,)
        ).fetchone()
        assert raw["password_encrypted"] != "pw-123"
        assert cipher.decrypt(raw["password_encrypted"]) == "pw-123"
        assert cipher.decrypt(raw["github_token_encrypted"]) == "ghp_abc"

    def test_round_trip_fields(self, make_connection):
        saved = make_connection("primary", port=5433, database="app", username="svc")
        assert saved.kind == ConnectionKind.POSTGRESQL
        assert saved.port == 5433
        assert saved.status == ConnectionStatus.UNTESTED
        assert saved.created_at is not None

    def test_requires_cipher_for_credentials(self):
        plain = SQLiteScheduleStore.open(":memory:")
        plain.init_schema()
        app = plain.create_application("x")
        with pytest.raises(MissingConfigError):
            plain.save_connection(Connection(application_id=app.id, name="c"), password="pw")
        plain.close()

    def test_update(self, store, make_connection):
        saved = make_connection("primary")
        saved.server = "db02"
        assert store.save_connection(saved).server == "db02"

    def test_update_missing(self, store, application):
        with pytest.raises(NotFoundError):
            store.save_connection(Connection(id=999, application_id=application.id, name="ghost"))

    def test_connections_for_application(self, store, make_connection):
        first = make_connection("a")
        second = make_connection("b", is_active=False)
        connections = store.get_connections_for_application(first.application_id)
        assert [c.id for c in connections] == [first.id, second.id]
        assert connections[1].is_active is False

    def test_record_connection_test(self, store, make_connection, fixed_now):
        conn = make_connection()
        store.record_connection_test(conn.id, RunOutcome(success=False, message="nope", tested_at=fixed_now))
        reloaded = store.get_connection(conn.id)
        assert reloaded.status == ConnectionStatus.FAILED
        assert reloaded.last_test_result == "nope"
        assert reloaded.last_tested_at == fixed_now

        store.record_connection_test(conn.id, RunOutcome(success=True, message="ok"))
        assert store.get_connection(conn.id).status == ConnectionStatus.CONNECTED

    def test_unassigned_connection(self, store, application):
        saved = store.save_connection(Connection(application_id=None, name="shared-ldap", server="ldap.internal"))
        assert saved.id is not None
        assert saved.application_id is None
        assert store.get_connections_for_application(application.id) == []

    def test_application_delete_unassigns_connections(self, store, make_connection):
        conn = make_connection()
        store.conn.execute("DELETE FROM applications WHERE id = ?", (conn.application_id,))
        assert store.get_connection(conn.id).application_id is None

    def test_concurrent_reads_and_writes(self, store, make_connection, fixed_now):
        conn = make_connection()
        store.upsert_schedule(conn.application_id, "*/15 * * * *", True, fixed_now)

        def work(i):
            store.record_connection_test(conn.id, RunOutcome(success=i % 2 == 0, message=f"run {i}"))
            return len(store.list_due_schedules(fixed_now)), store.get_connection(conn.id).id

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(work, range(200)))

        assert results == [(1, conn.id)] * 200


class TestOpen:
    """Test opening file-backed stores."""

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "connwatch.db"
        store = SQLiteScheduleStore.open(path)
        store.init_schema()
        store.create_application("x")
        store.close()
        assert path.exists()

    def test_timestamps_are_aware(self, store, application):
        schedule = store.upsert_schedule(
            application.id, "0 9 * * *", True, datetime(2024, 6, 1, 9, 0, tzinfo=UTC)
        )
        assert schedule.next_run_at.tzinfo is not None
        assert schedule.created_at.tzinfo is not None
