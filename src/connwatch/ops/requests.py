"""
Typed request objects for write operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from connwatch.core.models import ConnectionKind


@dataclass
class UpsertScheduleRequest:
    """Create or replace the schedule of one application."""

    application_id: int
    cron_expression: str
    enabled: bool = True


@dataclass
class UpdateScheduleRequest:
    """Partial update of an existing schedule."""

    schedule_id: int
    cron_expression: str | None = None
    enabled: bool | None = None


@dataclass
class CreateConnectionRequest:
    """New connection. Credential fields are plaintext and encrypted on save."""

    application_id: int
    name: str
    kind: ConnectionKind | str
    description: str | None = None
    server: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    connection_string: str | None = field(default=None, repr=False)
    api_base_url: str | None = None
    api_key: str | None = field(default=None, repr=False)
    github_token: str | None = field(default=None, repr=False)
    github_organization: str | None = None
    github_repository: str | None = None
    additional_settings: str | None = None
    is_active: bool = True
