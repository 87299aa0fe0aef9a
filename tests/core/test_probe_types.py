"""
Tests for probe inputs: credentials, connection strings and targets.
"""

import pytest

from connwatch.core.errors import ValidationError
from connwatch.core.models import Connection, ConnectionKind
from connwatch.core.probes import Credentials, build_connection_string, parse_connection_string, resolve_target
from connwatch.core.secrets import SecretValue


def _creds(**kwargs):
    values = {k: SecretValue(v) if k != "username" else v for k, v in kwargs.items()}
    return Credentials(**values)


class TestBuildConnectionString:
    """Tests for build_connection_string."""

    def test_sqlserver_custom_port(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER, server="db01", port=1444, database="app", username="sa")
        result = build_connection_string(conn, _creds(password="pw"))
        assert result == "Server=db01,1444;Database=app;User Id=sa;Password=pw"

    def test_sqlserver_integrated(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER, server="db01", port=1433, database="app")
        assert build_connection_string(conn) == "Server=db01;Database=app;Integrated Security=true"

    def test_postgresql_default_port(self):
        conn = Connection(kind=ConnectionKind.POSTGRESQL, server="db01", database="app", username="app")
        assert build_connection_string(conn) == "Host=db01;Port=5432;Database=app;Username=app;Password="

    def test_mysql(self):
        conn = Connection(kind=ConnectionKind.MYSQL, server="db01", database="shop", username="root")
        result = build_connection_string(conn, _creds(password="pw"))
        assert result == "Server=db01;Port=3306;Database=shop;User=root;Password=pw"

    def test_oracle(self):
        conn = Connection(kind=ConnectionKind.ORACLE, server="db01", database="ORCL", username="scott")
        result = build_connection_string(conn, _creds(password="tiger"))
        assert result == "Data Source=db01:1521/ORCL;User Id=scott;Password=tiger"

    def test_sqlite(self):
        conn = Connection(kind=ConnectionKind.SQLITE, database="/var/lib/app.db")
        assert build_connection_string(conn) == "Data Source=/var/lib/app.db"

    def test_additional_settings_appended(self):
        conn = Connection(
            kind=ConnectionKind.SQLSERVER,
            server="db01",
            database="app",
            additional_settings="Encrypt=true;",
        )
        assert build_connection_string(conn).endswith(";Encrypt=true")

    def test_missing_server(self):
        with pytest.raises(ValidationError):
            build_connection_string(Connection(kind=ConnectionKind.POSTGRESQL, database="app"))

    def test_api_kind_rejected(self):
        conn = Connection(kind=ConnectionKind.REST_API, server="api.example.com")
        with pytest.raises(ValidationError):
            build_connection_string(conn)


class TestParseConnectionString:
    """Tests for parse_connection_string."""

    def test_pairs(self):
        assert parse_connection_string("Server=a; Database=b;") == {"server": "a", "database": "b"}

    def test_value_may_contain_equals(self):
        assert parse_connection_string("Password=a=b")["password"] == "a=b"

    def test_malformed(self):
        with pytest.raises(ValidationError):
            parse_connection_string("just-a-hostname")


class TestResolveTarget:
    """Tests for resolve_target."""

    def test_connection_string_wins(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER, server="ignored")
        creds = _creds(connection_string="Server=db01,1444;Database=app;User Id=sa;Password=pw")
        target = resolve_target(conn, creds)
        assert (target.host, target.port, target.database) == ("db01", 1444, "app")
        assert target.username == "sa"
        assert target.password == "pw"

    def test_oracle_descriptor(self):
        conn = Connection(kind=ConnectionKind.ORACLE)
        creds = _creds(connection_string="Data Source=db01:1522/ORCL;User Id=scott;Password=tiger")
        target = resolve_target(conn, creds)
        assert (target.host, target.port, target.database) == ("db01", 1522, "ORCL")

    def test_components_default_port(self):
        conn = Connection(kind=ConnectionKind.POSTGRESQL, server="db01", database="app", username="app")
        target = resolve_target(conn, _creds(password="pw"))
        assert target.port == 5432
        assert target.password == "pw"
        assert target.integrated_auth is False

    def test_components_without_user_use_integrated_auth(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER, server="db01")
        assert resolve_target(conn, Credentials()).integrated_auth is True

    def test_integrated_security_flag(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER)
        creds = _creds(connection_string="Server=db01;Integrated Security=SSPI")
        assert resolve_target(conn, creds).integrated_auth is True

    def test_sqlite_path(self):
        conn = Connection(kind=ConnectionKind.SQLITE)
        target = resolve_target(conn, _creds(connection_string="Data Source=/var/lib/app.db"))
        assert target.database == "/var/lib/app.db"

    def test_unknown_keys_kept_as_options(self):
        conn = Connection(kind=ConnectionKind.POSTGRESQL)
        target = resolve_target(conn, _creds(connection_string="Host=db01;SslMode=require"))
        assert target.options == {"sslmode": "require"}

    def test_missing_host(self):
        with pytest.raises(ValidationError):
            resolve_target(Connection(kind=ConnectionKind.MYSQL), Credentials())

    def test_bad_port(self):
        conn = Connection(kind=ConnectionKind.SQLSERVER)
        with pytest.raises(ValidationError):
            resolve_target(conn, _creds(connection_string="Server=db01,abc"))

    def test_port_out_of_range(self):
        conn = Connection(kind=ConnectionKind.MYSQL)
        with pytest.raises(ValidationError):
            resolve_target(conn, _creds(connection_string="Server=db01;Port=70000"))


class TestCredentials:
    """Tests for Credentials."""

    def test_from_connection_decrypts(self, cipher):
        conn = Connection(
            kind=ConnectionKind.POSTGRESQL,
            username="app",
            password_encrypted=cipher.encrypt("pw"),
            connection_string_encrypted=cipher.encrypt("Host=db01"),
        )
        creds = Credentials.from_connection(conn, cipher)
        assert creds.username == "app"
        assert creds.password.get_secret() == "pw"
        assert creds.connection_string.get_secret() == "Host=db01"
        assert creds.api_key is None

    def test_github_token_preferred_over_api_key(self, cipher):
        conn = Connection(
            kind=ConnectionKind.GITHUB_API,
            api_key_encrypted=cipher.encrypt("old-key"),
            github_token_encrypted=cipher.encrypt("ghp_token"),
        )
        assert Credentials.from_connection(conn, cipher).api_key.get_secret() == "ghp_token"

    def test_legacy_plaintext(self, cipher):
        conn = Connection(kind=ConnectionKind.MYSQL, password_encrypted="plain")
        assert Credentials.from_connection(conn, cipher).password.get_secret() == "plain"

    def test_merged_over(self):
        stored = _creds(username="stored", password="old", api_key="k")
        explicit = _creds(password="new")
        merged = explicit.merged_over(stored)
        assert merged.username == "stored"
        assert merged.password.get_secret() == "new"
        assert merged.api_key.get_secret() == "k"

    def test_repr_redacts(self):
        assert "s3cr3t-value" not in repr(_creds(password="s3cr3t-value"))
