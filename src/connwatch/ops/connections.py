"""
Connection operations.

Creating a connection validates the fields its kind needs and hands the
plaintext credentials to the store, which encrypts them before writing.
Testing on demand runs the same probe the scheduler would and records the
connection's status.
"""

from __future__ import annotations

from connwatch.core.errors import ConnwatchError, MissingConfigError, NotFoundError, ValidationError
from connwatch.core.logging import get_logger
from connwatch.core.models import Connection, ConnectionKind, RunOutcome
from connwatch.core.probes import Credentials, build_connection_string
from connwatch.core.secrets import SecretValue
from connwatch.ops.context import OperationContext
from connwatch.ops.requests import CreateConnectionRequest
from connwatch.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

MASKED_PASSWORD = "********"


def _validate_request(request: CreateConnectionRequest) -> ConnectionKind:
    if not request.name or not request.name.strip():
        raise ValidationError("Connection name is required", field="name")
    try:
        kind = ConnectionKind.parse(request.kind)
    except ValueError as e:
        raise ValidationError(str(e), field="kind", value=request.kind) from e

    if request.port is not None and not 1 <= request.port <= 65535:
        raise ValidationError("Port must be between 1 and 65535", field="port", value=request.port)

    if kind == ConnectionKind.SQLITE:
        if not (request.database or request.connection_string):
            raise ValidationError("Database file path is required for SQLite", field="database")
    elif kind.is_relational:
        if not (request.server or request.connection_string):
            raise ValidationError("Server or connection string is required", field="server")
    elif kind == ConnectionKind.GITHUB_API:
        if not (request.github_token or request.api_key):
            raise ValidationError("GitHub token is required", field="github_token")
    elif kind.is_api and not request.api_base_url:
        raise ValidationError("API base URL is required", field="api_base_url")
    return kind


def create_connection(ctx: OperationContext, request: CreateConnectionRequest) -> OperationResult[Connection]:
    """Validate and persist a new connection with encrypted credentials."""
    timer = start_timer()
    try:
        kind = _validate_request(request)
        if ctx.store.get_application(request.application_id) is None:
            raise NotFoundError("Application", request.application_id)

        connection = Connection(
            application_id=request.application_id,
            name=request.name.strip(),
            kind=kind,
            description=request.description,
            server=request.server,
            port=request.port,
            database=request.database,
            username=request.username,
            api_base_url=request.api_base_url,
            github_organization=request.github_organization,
            github_repository=request.github_repository,
            additional_settings=request.additional_settings,
            is_active=request.is_active,
        )
        if ctx.dry_run:
            return OperationResult.ok(connection, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})

        saved = ctx.store.save_connection(
            connection,
            password=request.password,
            connection_string=request.connection_string,
            api_key=request.api_key,
            github_token=request.github_token,
        )
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info(
        "connection_created",
        connection_id=saved.id,
        application_id=saved.application_id,
        kind=saved.kind.value,
        caller=ctx.caller,
    )
    return OperationResult.ok(saved, elapsed_ms=timer.elapsed_ms)


def get_connection(ctx: OperationContext, connection_id: int) -> OperationResult[Connection]:
    timer = start_timer()
    connection = ctx.store.get_connection(connection_id)
    if connection is None:
        return OperationResult.from_error(NotFoundError("Connection", connection_id), elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(connection, elapsed_ms=timer.elapsed_ms)


def test_connection_now(
    ctx: OperationContext,
    connection_id: int,
    credentials: Credentials | None = None,
) -> OperationResult[RunOutcome]:
    """Probe a stored connection immediately and record its status.

    A probe that fails is still a successful operation; the outcome
    describes the failure.
    """
    timer = start_timer()
    try:
        if ctx.probe_service is None:
            raise MissingConfigError("probe_service", "A probe service is required to test connections")
        connection = ctx.store.get_connection(connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    outcome = ctx.probe_service.test_connection(connection, credentials)
    if not ctx.dry_run:
        ctx.store.record_connection_test(connection_id, outcome)
    return OperationResult.ok(outcome, elapsed_ms=timer.elapsed_ms)


def preview_connection_string(ctx: OperationContext, connection_id: int) -> OperationResult[str]:
    """Render the connection string with the password masked."""
    timer = start_timer()
    try:
        connection = ctx.store.get_connection(connection_id)
        if connection is None:
            raise NotFoundError("Connection", connection_id)
        masked = Credentials(password=SecretValue(MASKED_PASSWORD)) if connection.password_encrypted else None
        return OperationResult.ok(build_connection_string(connection, masked), elapsed_ms=timer.elapsed_ms)
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
