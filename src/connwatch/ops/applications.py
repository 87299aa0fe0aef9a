"""
Application operations.

Applications own connections and at most one health-check schedule.
"""

from __future__ import annotations

from connwatch.core.errors import NotFoundError, ValidationError
from connwatch.core.models import Application
from connwatch.ops.context import OperationContext
from connwatch.ops.result import OperationResult, start_timer


def create_application(ctx: OperationContext, name: str) -> OperationResult[Application]:
    timer = start_timer()
    if not name or not name.strip():
        return OperationResult.from_error(
            ValidationError("Application name is required", field="name"),
            elapsed_ms=timer.elapsed_ms,
        )
    if ctx.dry_run:
        return OperationResult.ok(Application(name=name.strip()), elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(ctx.store.create_application(name.strip()), elapsed_ms=timer.elapsed_ms)


def list_connections(ctx: OperationContext, application_id: int) -> OperationResult[list]:
    """Connections of one application, active or not."""
    timer = start_timer()
    if ctx.store.get_application(application_id) is None:
        return OperationResult.from_error(NotFoundError("Application", application_id), elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(ctx.store.get_connections_for_application(application_id), elapsed_ms=timer.elapsed_ms)
