"""
Schedule operations.

One health-check schedule per application. Every write validates the cron
expression through the planner and recomputes ``next_run_at`` from the
current time, so a schedule that is re-enabled after a long pause fires at
its next regular slot instead of immediately.
"""

from __future__ import annotations

from datetime import UTC, datetime

from connwatch.core.errors import ConnwatchError, NotFoundError
from connwatch.core.logging import get_logger
from connwatch.core.models import Schedule
from connwatch.core.scheduling import CronValidation
from connwatch.ops.context import OperationContext
from connwatch.ops.requests import UpdateScheduleRequest, UpsertScheduleRequest
from connwatch.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)


def _schedule_warnings(ctx: OperationContext, application_id: int, enabled: bool) -> list[str]:
    warnings = []
    if not enabled:
        warnings.append("Schedule is disabled; it will not run until enabled")
    if not any(c.is_active for c in ctx.store.get_connections_for_application(application_id)):
        warnings.append("Application has no active connections; runs will be skipped")
    return warnings


def _require_schedule(ctx: OperationContext, schedule_id: int) -> Schedule:
    schedule = ctx.store.get_schedule(schedule_id)
    if schedule is None:
        raise NotFoundError("Schedule", schedule_id)
    return schedule


def list_schedules(ctx: OperationContext, *, enabled_only: bool = False) -> PagedResult[Schedule]:
    """List schedules, ordered by application."""
    timer = start_timer()
    schedules = ctx.store.list_schedules(enabled_only=enabled_only)
    return PagedResult.from_items(schedules, elapsed_ms=timer.elapsed_ms)


def get_schedule(ctx: OperationContext, schedule_id: int) -> OperationResult[Schedule]:
    timer = start_timer()
    try:
        return OperationResult.ok(_require_schedule(ctx, schedule_id), elapsed_ms=timer.elapsed_ms)
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)


def upsert_schedule(ctx: OperationContext, request: UpsertScheduleRequest) -> OperationResult[Schedule]:
    """Create the application's schedule, or replace it if one exists."""
    timer = start_timer()
    try:
        # Rejects expressions that parse but never fire, e.g. "0 0 31 2 *"
        next_run_at = ctx.planner.require_next_run(request.cron_expression, datetime.now(UTC))
        if ctx.store.get_application(request.application_id) is None:
            raise NotFoundError("Application", request.application_id)

        warnings = _schedule_warnings(ctx, request.application_id, request.enabled)
        if ctx.dry_run:
            preview = Schedule(
                application_id=request.application_id,
                cron_expression=request.cron_expression,
                enabled=request.enabled,
                next_run_at=next_run_at,
            )
            return OperationResult.ok(
                preview, warnings=warnings, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True}
            )

        schedule = ctx.store.upsert_schedule(
            request.application_id,
            request.cron_expression,
            request.enabled,
            next_run_at,
        )
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info(
        "schedule_saved",
        schedule_id=schedule.id,
        application_id=schedule.application_id,
        cron_expression=schedule.cron_expression,
        enabled=schedule.enabled,
        caller=ctx.caller,
    )
    return OperationResult.ok(schedule, warnings=warnings, elapsed_ms=timer.elapsed_ms)


def update_schedule(ctx: OperationContext, request: UpdateScheduleRequest) -> OperationResult[Schedule]:
    """Change the cron expression and/or enabled flag of an existing schedule."""
    timer = start_timer()
    try:
        current = _require_schedule(ctx, request.schedule_id)
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    result = upsert_schedule(
        ctx,
        UpsertScheduleRequest(
            application_id=current.application_id,
            cron_expression=request.cron_expression or current.cron_expression,
            enabled=current.enabled if request.enabled is None else request.enabled,
        ),
    )
    result.elapsed_ms = timer.elapsed_ms
    return result


def toggle_schedule(ctx: OperationContext, schedule_id: int, enabled: bool) -> OperationResult[Schedule]:
    """Enable or disable a schedule. ``next_run_at`` is recomputed from now."""
    timer = start_timer()
    try:
        current = _require_schedule(ctx, schedule_id)
        next_run_at = ctx.planner.next_run(current.cron_expression, datetime.now(UTC))
        if ctx.dry_run:
            current.enabled = enabled
            current.next_run_at = next_run_at
            return OperationResult.ok(current, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})
        schedule = ctx.store.set_enabled(schedule_id, enabled, next_run_at)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
    except ConnwatchError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info("schedule_toggled", schedule_id=schedule_id, enabled=enabled, caller=ctx.caller)
    return OperationResult.ok(schedule, elapsed_ms=timer.elapsed_ms)


def delete_schedule(ctx: OperationContext, schedule_id: int) -> OperationResult[None]:
    timer = start_timer()
    if ctx.dry_run:
        return OperationResult.ok(None, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})
    if not ctx.store.delete_schedule(schedule_id):
        return OperationResult.from_error(NotFoundError("Schedule", schedule_id), elapsed_ms=timer.elapsed_ms)
    logger.info("schedule_deleted", schedule_id=schedule_id, caller=ctx.caller)
    return OperationResult.ok(None, elapsed_ms=timer.elapsed_ms)


def validate_cron(ctx: OperationContext, expression: str) -> OperationResult[CronValidation]:
    """Validate an expression. Invalid input is a successful call with ``valid=False``."""
    timer = start_timer()
    return OperationResult.ok(ctx.planner.validate(expression), elapsed_ms=timer.elapsed_ms)
