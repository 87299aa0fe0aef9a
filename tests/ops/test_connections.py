"""
Tests for connection and application operations.
"""

import sqlite3

import pytest

from connwatch.core.models import ConnectionStatus
from connwatch.core.probes import ProbeService
from connwatch.ops import OperationContext
from connwatch.ops import applications as application_ops
from connwatch.ops import connections as connection_ops
from connwatch.ops.requests import CreateConnectionRequest
from tests._support import ScriptedProbeService, failed_outcome


def _request(application_id, **overrides):
    fields = dict(
        application_id=application_id,
        name="orders-db",
        kind="postgresql",
        server="db01",
        database="orders",
        username="svc",
        password="pw-123",
    )
    fields.update(overrides)
    return CreateConnectionRequest(**fields)


class TestCreateConnection:
    """Test create_connection."""

    def test_creates_and_encrypts(self, ctx, application, store, cipher):
        result = connection_ops.create_connection(ctx, _request(application.id))

        assert result.success is True
        conn = result.data
        assert conn.id is not None
        assert conn.status == ConnectionStatus.UNTESTED
        assert cipher.decrypt(store.get_connection(conn.id).password_encrypted) == "pw-123"

    def test_to_dict_hides_credentials(self, ctx, application):
        data = connection_ops.create_connection(ctx, _request(application.id)).data.to_dict()
        assert "password_encrypted" not in data
        assert data["kind"] == "postgresql"

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"name": "  "}, "name"),
            ({"kind": "cassandra"}, "kind"),
            ({"port": 70000}, "port"),
            ({"server": None}, "server"),
            ({"kind": "sqlite", "server": None, "database": None}, "database"),
            ({"kind": "github_api", "server": None}, "github_token"),
            ({"kind": "rest_api", "server": None}, "api_base_url"),
        ],
    )
    def test_validation(self, ctx, application, overrides, field):
        result = connection_ops.create_connection(ctx, _request(application.id, **overrides))
        assert result.success is False
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == field

    def test_connection_string_satisfies_location(self, ctx, application):
        request = _request(application.id, server=None, connection_string="Host=db01;Database=orders")
        assert connection_ops.create_connection(ctx, request).success is True

    def test_unknown_application(self, ctx):
        assert connection_ops.create_connection(ctx, _request(999)).error.code == "NOT_FOUND"

    def test_dry_run(self, dry_ctx, application, store):
        result = connection_ops.create_connection(dry_ctx, _request(application.id))
        assert result.success is True
        assert result.data.id is None
        assert store.get_connections_for_application(application.id) == []


class TestTestConnectionNow:
    """Test on-demand probing."""

    def test_records_outcome(self, store, planner, make_connection):
        conn = make_connection("primary")
        ctx = OperationContext(
            store=store, planner=planner, probe_service=ScriptedProbeService({"primary": failed_outcome()})
        )

        result = connection_ops.test_connection_now(ctx, conn.id)

        assert result.success is True
        assert result.data.success is False
        assert result.data.error_code == "PG_28P01"
        assert store.get_connection(conn.id).status == ConnectionStatus.FAILED

    def test_real_sqlite_probe(self, store, planner, cipher, application, tmp_path):
        path = tmp_path / "app.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE orders (id INTEGER PRIMARY KEY)")
        conn.commit()
        conn.close()
        ctx = OperationContext(store=store, planner=planner, probe_service=ProbeService(cipher))
        created = connection_ops.create_connection(
            ctx, _request(application.id, kind="sqlite", server=None, database=str(path), password=None)
        ).data

        result = connection_ops.test_connection_now(ctx, created.id)

        assert result.data.success is True
        assert store.get_connection(created.id).status == ConnectionStatus.CONNECTED

    def test_requires_probe_service(self, ctx, make_connection):
        result = connection_ops.test_connection_now(ctx, make_connection().id)
        assert result.success is False
        assert result.error.code == "CONFIG"

    def test_missing_connection(self, store, planner, probe_service):
        ctx = OperationContext(store=store, planner=planner, probe_service=probe_service)
        assert connection_ops.test_connection_now(ctx, 404).error.code == "NOT_FOUND"

    def test_dry_run_does_not_record(self, store, planner, make_connection, probe_service):
        conn = make_connection()
        ctx = OperationContext(store=store, planner=planner, probe_service=probe_service, dry_run=True)
        assert connection_ops.test_connection_now(ctx, conn.id).data.success is True
        assert store.get_connection(conn.id).status == ConnectionStatus.UNTESTED


class TestPreviewConnectionString:
    """Test preview_connection_string."""

    def test_password_masked(self, ctx, application):
        created = connection_ops.create_connection(ctx, _request(application.id)).data
        result = connection_ops.preview_connection_string(ctx, created.id)
        assert result.data == "Host=db01;Port=5432;Database=orders;Username=svc;Password=********"

    def test_missing(self, ctx):
        assert connection_ops.preview_connection_string(ctx, 5).error.code == "NOT_FOUND"


class TestApplications:
    """Test application operations."""

    def test_create(self, ctx, store):
        result = application_ops.create_application(ctx, "  billing ")
        assert result.data.name == "billing"
        assert store.get_application(result.data.id) is not None

    def test_name_required(self, ctx):
        assert application_ops.create_application(ctx, "").error.code == "VALIDATION_FAILED"

    def test_list_connections(self, ctx, application, make_connection):
        make_connection("a")
        make_connection("b", is_active=False)
        result = application_ops.list_connections(ctx, application.id)
        assert [c.name for c in result.data] == ["a", "b"]

    def test_list_connections_unknown_app(self, ctx):
        assert application_ops.list_connections(ctx, 99).error.code == "NOT_FOUND"
