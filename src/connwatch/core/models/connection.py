"""Connection models (``connections`` table) and probe outcomes.

Connections are typed definitions of external resources. Credential
columns hold ``CredentialCipher`` blobs and are excluded from ``repr`` so
a stray log line or traceback never prints them.

Tags:
    connwatch, models, connections, dataclasses, probes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ConnectionKind(str, Enum):
    """Connection technology.

    ``code`` is the stable integer used by stored data and by the
    administrative API.
    """

    SQLSERVER = "sqlserver"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    ORACLE = "oracle"
    SQLITE = "sqlite"

    MONGODB = "mongodb"
    REDIS = "redis"

    REST_API = "rest_api"
    GRAPHQL = "graphql"
    WEBSOCKET = "websocket"

    AWS_RDS = "aws_rds"
    AWS_DYNAMODB = "aws_dynamodb"
    AWS_S3 = "aws_s3"
    AZURE_SQL = "azure_sql"
    AZURE_COSMOSDB = "azure_cosmosdb"
    AZURE_STORAGE = "azure_storage"
    GOOGLE_CLOUDSQL = "google_cloudsql"
    GOOGLE_FIRESTORE = "google_firestore"
    GOOGLE_BIGQUERY = "google_bigquery"
    SNOWFLAKE = "snowflake"
    DATABRICKS = "databricks"

    SALESFORCE_API = "salesforce_api"
    SERVICENOW_API = "servicenow_api"
    GITHUB_API = "github_api"

    CUSTOM = "custom"

    @property
    def code(self) -> int:
        return _KIND_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> ConnectionKind:
        for kind, value in _KIND_CODES.items():
            if value == code:
                return kind
        raise ValueError(f"Unknown connection kind code: {code}")

    @classmethod
    def parse(cls, value: str | int | ConnectionKind) -> ConnectionKind:
        """Accept an enum, its value, its name, or its integer code."""
        if isinstance(value, ConnectionKind):
            return value
        if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
            return cls.from_code(int(value))
        normalized = value.strip().lower()
        for kind in cls:
            if normalized in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown connection kind: {value!r}")

    @property
    def is_relational(self) -> bool:
        return self in _RELATIONAL

    @property
    def is_api(self) -> bool:
        return self in _API

    @property
    def category(self) -> str:
        if self in _RELATIONAL:
            return "Relational Database"
        if self in (ConnectionKind.MONGODB, ConnectionKind.REDIS):
            return "NoSQL Database"
        if self in _API:
            return "API"
        if self.name.startswith(("AWS_", "AZURE_", "GOOGLE_")):
            return "Cloud Service"
        if self in (ConnectionKind.SNOWFLAKE, ConnectionKind.DATABRICKS):
            return "Data Warehouse"
        return "Other"

    @property
    def default_port(self) -> int | None:
        return _DEFAULT_PORTS.get(self)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.name.replace("_", " ").title())


_KIND_CODES: dict[ConnectionKind, int] = {
    ConnectionKind.SQLSERVER: 1,
    ConnectionKind.MYSQL: 2,
    ConnectionKind.POSTGRESQL: 3,
    ConnectionKind.ORACLE: 4,
    ConnectionKind.SQLITE: 5,
    ConnectionKind.MONGODB: 11,
    ConnectionKind.REDIS: 12,
    ConnectionKind.REST_API: 21,
    ConnectionKind.GRAPHQL: 22,
    ConnectionKind.WEBSOCKET: 23,
    ConnectionKind.AWS_RDS: 31,
    ConnectionKind.AWS_DYNAMODB: 32,
    ConnectionKind.AWS_S3: 33,
    ConnectionKind.AZURE_SQL: 41,
    ConnectionKind.AZURE_COSMOSDB: 42,
    ConnectionKind.AZURE_STORAGE: 43,
    ConnectionKind.GOOGLE_CLOUDSQL: 51,
    ConnectionKind.GOOGLE_FIRESTORE: 52,
    ConnectionKind.GOOGLE_BIGQUERY: 53,
    ConnectionKind.SNOWFLAKE: 61,
    ConnectionKind.DATABRICKS: 62,
    ConnectionKind.SALESFORCE_API: 71,
    ConnectionKind.SERVICENOW_API: 72,
    ConnectionKind.GITHUB_API: 73,
    ConnectionKind.CUSTOM: 99,
}

_RELATIONAL = frozenset({
    ConnectionKind.SQLSERVER,
    ConnectionKind.MYSQL,
    ConnectionKind.POSTGRESQL,
    ConnectionKind.ORACLE,
    ConnectionKind.SQLITE,
})

_API = frozenset({
    ConnectionKind.REST_API,
    ConnectionKind.GRAPHQL,
    ConnectionKind.WEBSOCKET,
    ConnectionKind.SALESFORCE_API,
    ConnectionKind.SERVICENOW_API,
    ConnectionKind.GITHUB_API,
})

_DEFAULT_PORTS: dict[ConnectionKind, int] = {
    ConnectionKind.SQLSERVER: 1433,
    ConnectionKind.MYSQL: 3306,
    ConnectionKind.POSTGRESQL: 5432,
    ConnectionKind.ORACLE: 1521,
    ConnectionKind.MONGODB: 27017,
    ConnectionKind.REDIS: 6379,
}

_DISPLAY_NAMES: dict[ConnectionKind, str] = {
    ConnectionKind.SQLSERVER: "SQL Server",
    ConnectionKind.MYSQL: "MySQL",
    ConnectionKind.POSTGRESQL: "PostgreSQL",
    ConnectionKind.SQLITE: "SQLite",
    ConnectionKind.MONGODB: "MongoDB",
    ConnectionKind.REST_API: "REST API",
    ConnectionKind.GRAPHQL: "GraphQL",
    ConnectionKind.WEBSOCKET: "WebSocket",
    ConnectionKind.GITHUB_API: "GitHub API",
}


class ConnectionStatus(str, Enum):
    """Last known reachability of a connection."""

    UNTESTED = "untested"
    CONNECTED = "connected"
    FAILED = "failed"
    TESTING = "testing"


class ProbeErrorKind(str, Enum):
    """Normalized failure taxonomy shared by every probe."""

    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    INVALID_CONFIG = "invalid_config"
    NOT_FOUND = "not_found"
    NETWORK_UNREACHABLE = "network_unreachable"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


@dataclass
class Connection:
    """Connection definition row (``connections``)."""

    id: int | None = None
    application_id: int | None = None
    name: str = ""
    kind: ConnectionKind = ConnectionKind.SQLSERVER
    description: str | None = None

    # Location
    server: str | None = None
    port: int | None = None
    database: str | None = None
    api_base_url: str | None = None
    additional_settings: str | None = None
    github_organization: str | None = None
    github_repository: str | None = None

    # Credentials (CredentialCipher blobs)
    username: str | None = None
    password_encrypted: str | None = field(default=None, repr=False)
    connection_string_encrypted: str | None = field(default=None, repr=False)
    api_key_encrypted: str | None = field(default=None, repr=False)
    github_token_encrypted: str | None = field(default=None, repr=False)

    # State
    is_active: bool = True
    status: ConnectionStatus = ConnectionStatus.UNTESTED
    last_tested_at: datetime | None = None
    last_test_result: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serializable view. Credential blobs are never included."""
        return {
            "id": self.id,
            "application_id": self.application_id,
            "name": self.name,
            "kind": self.kind.value,
            "category": self.kind.category,
            "server": self.server,
            "port": self.port,
            "database": self.database,
            "api_base_url": self.api_base_url,
            "username": self.username,
            "is_active": self.is_active,
            "status": self.status.value,
            "last_tested_at": self.last_tested_at.isoformat() if self.last_tested_at else None,
            "last_test_result": self.last_test_result,
        }


@dataclass
class RunOutcome:
    """Result of probing one connection. Never persisted as-is."""

    success: bool
    message: str
    duration_ms: float = 0.0
    error_code: str | None = None
    error_kind: ProbeErrorKind | None = None
    error_details: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    tested_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "error_code": self.error_code,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_details": self.error_details,
            "metadata": self.metadata,
            "tested_at": self.tested_at.isoformat(),
        }
