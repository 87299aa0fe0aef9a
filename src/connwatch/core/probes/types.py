"""Probe inputs: decrypted credentials and resolved connection targets.

A probe needs two things besides the ``Connection`` row: the plaintext
credentials (decrypted just before use) and a normalized target with host,
port, database and auth mode. The target comes either from a stored full
connection string or from the row's component fields, with per-flavor
default ports.

Connection strings use the keyword form the admin backend has always
stored::

    SQL Server  Server=db01,1444;Database=app;User Id=sa;Password=...
    MySQL       Server=db01;Port=3306;Database=app;User=root;Password=...
    PostgreSQL  Host=db01;Port=5432;Database=app;Username=app;Password=...
    Oracle      Data Source=db01:1521/ORCL;User Id=scott;Password=...
    SQLite      Data Source=/var/lib/app.db
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from connwatch.core.errors import ValidationError
from connwatch.core.models import Connection, ConnectionKind
from connwatch.core.secrets import SecretValue

if TYPE_CHECKING:
    from connwatch.core.secrets import CredentialCipher


@dataclass(frozen=True)
class Credentials:
    """Plaintext credentials for one probe call. Redacted in ``repr``."""

    username: str | None = None
    password: SecretValue | None = None
    connection_string: SecretValue | None = None
    api_key: SecretValue | None = None

    @classmethod
    def from_connection(cls, connection: Connection, cipher: CredentialCipher) -> Credentials:
        """Decrypt the row's credential blobs.

        Values that fail to decrypt are treated as legacy plaintext.
        """
        password = cipher.decrypt_or_plaintext(connection.password_encrypted)
        conn_str = cipher.decrypt_or_plaintext(connection.connection_string_encrypted)
        token = cipher.decrypt_or_plaintext(connection.github_token_encrypted)
        if not token:
            token = cipher.decrypt_or_plaintext(connection.api_key_encrypted)
        return cls(
            username=connection.username or None,
            password=SecretValue(password) if password else None,
            connection_string=SecretValue(conn_str) if conn_str else None,
            api_key=SecretValue(token) if token else None,
        )

    def merged_over(self, stored: Credentials) -> Credentials:
        """Explicitly supplied values win over stored ones."""
        return Credentials(
            username=self.username or stored.username,
            password=self.password or stored.password,
            connection_string=self.connection_string or stored.connection_string,
            api_key=self.api_key or stored.api_key,
        )


@dataclass
class ConnectionTarget:
    """Normalized driver parameters for a database probe."""

    kind: ConnectionKind
    host: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    integrated_auth: bool = False
    options: dict[str, str] = field(default_factory=dict)


_HOST_KEYS = {"server", "host", "address", "addr", "data source", "datasource"}
_PORT_KEYS = {"port"}
_DATABASE_KEYS = {"database", "initial catalog", "dbname"}
_USER_KEYS = {"user id", "userid", "uid", "user", "username"}
_PASSWORD_KEYS = {"password", "pwd"}
_INTEGRATED_KEYS = {"integrated security", "trusted_connection"}
_TRUTHY = {"true", "yes", "sspi", "1"}


def build_connection_string(connection: Connection, credentials: Credentials | None = None) -> str:
    """Build the keyword connection string for a relational connection.

    Raises:
        ValidationError: Required location fields are missing or the kind
            is not a relational database.
    """
    credentials = credentials or Credentials()
    kind = connection.kind
    username = credentials.username or connection.username
    password = credentials.password.get_secret() if credentials.password else ""

    if kind == ConnectionKind.SQLITE:
        if not connection.database:
            raise ValidationError("Database file path is required for SQLite", field="database")
        result = f"Data Source={connection.database}"
    else:
        if not connection.server:
            raise ValidationError("Server is required", field="server")
        port = connection.port or kind.default_port

        if kind == ConnectionKind.SQLSERVER:
            server = connection.server
            if connection.port and connection.port != kind.default_port:
                server = f"{server},{connection.port}"
            result = f"Server={server};Database={connection.database or ''}"
            if username:
                result += f";User Id={username};Password={password}"
            else:
                result += ";Integrated Security=true"
        elif kind == ConnectionKind.MYSQL:
            result = (
                f"Server={connection.server};Port={port};Database={connection.database or ''};"
                f"User={username or ''};Password={password}"
            )
        elif kind == ConnectionKind.POSTGRESQL:
            result = (
                f"Host={connection.server};Port={port};Database={connection.database or ''};"
                f"Username={username or ''};Password={password}"
            )
        elif kind == ConnectionKind.ORACLE:
            result = (
                f"Data Source={connection.server}:{port}/{connection.database or ''};"
                f"User Id={username or ''};Password={password}"
            )
        else:
            raise ValidationError(
                f"Connection string not supported for {kind.display_name}",
                field="kind",
                value=kind.value,
            )

    if connection.additional_settings:
        result += f";{connection.additional_settings.strip(';')}"
    return result


def parse_connection_string(value: str) -> dict[str, str]:
    """Split ``Key=Value;Key=Value`` into a dict with lower-cased keys."""
    pairs: dict[str, str] = {}
    for part in value.split(";"):
        if not part.strip():
            continue
        key, sep, val = part.partition("=")
        if not sep:
            raise ValidationError(
                "Invalid connection string format: expected Key=Value pairs",
                field="connection_string",
            )
        pairs[key.strip().lower()] = val.strip()
    return pairs


def _target_from_pairs(kind: ConnectionKind, pairs: dict[str, str]) -> ConnectionTarget:
    target = ConnectionTarget(kind=kind)
    for key, val in pairs.items():
        if key in _HOST_KEYS:
            if kind == ConnectionKind.SQLITE:
                target.database = val
            elif kind == ConnectionKind.ORACLE and key in ("data source", "datasource"):
                _apply_oracle_descriptor(target, val)
            else:
                host, _, port = val.partition(",")
                target.host = host.strip()
                if port.strip():
                    target.port = _parse_port(port)
        elif key in _PORT_KEYS:
            target.port = _parse_port(val)
        elif key in _DATABASE_KEYS:
            target.database = val
        elif key in _USER_KEYS:
            target.username = val
        elif key in _PASSWORD_KEYS:
            target.password = val
        elif key in _INTEGRATED_KEYS:
            target.integrated_auth = val.lower() in _TRUTHY
        else:
            target.options[key] = val
    return target


def _apply_oracle_descriptor(target: ConnectionTarget, descriptor: str) -> None:
    # host[:port][/service]
    address, _, service = descriptor.partition("/")
    host, _, port = address.partition(":")
    target.host = host.strip() or None
    if port.strip():
        target.port = _parse_port(port)
    if service.strip():
        target.database = service.strip()


def _parse_port(value: str) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid port: {value!r}", field="port", value=value) from None
    if not 1 <= port <= 65535:
        raise ValidationError("Port must be between 1 and 65535", field="port", value=port)
    return port


def resolve_target(connection: Connection, credentials: Credentials) -> ConnectionTarget:
    """Resolve driver parameters, preferring a stored full connection string.

    Raises:
        ValidationError: Missing server/path or a malformed connection string.
    """
    kind = connection.kind
    if credentials.connection_string:
        target = _target_from_pairs(kind, parse_connection_string(credentials.connection_string.get_secret()))
    else:
        target = ConnectionTarget(
            kind=kind,
            host=connection.server,
            port=connection.port,
            database=connection.database,
            username=credentials.username or connection.username,
            password=credentials.password.get_secret() if credentials.password else None,
            integrated_auth=not (credentials.username or connection.username),
        )
        if connection.additional_settings:
            extra = _target_from_pairs(kind, parse_connection_string(connection.additional_settings))
            target.options.update(extra.options)

    if kind == ConnectionKind.SQLITE:
        if not target.database:
            raise ValidationError("Database file path is required for SQLite", field="database")
        return target

    if not target.host:
        raise ValidationError("Server is required", field="server")
    if target.port is None:
        target.port = kind.default_port
    return target


__all__ = [
    "Credentials",
    "ConnectionTarget",
    "build_connection_string",
    "parse_connection_string",
    "resolve_target",
]
