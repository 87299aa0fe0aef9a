"""
Operations layer: business logic behind the CLI.

- All functions accept ``OperationContext`` as first argument
- All functions return ``OperationResult[T]``; domain errors become
  ``VALIDATION_FAILED`` / ``NOT_FOUND`` failures instead of exceptions
- All write functions honour ``ctx.dry_run``

Usage::

    from connwatch.ops import OperationContext
    from connwatch.ops.schedules import upsert_schedule
    from connwatch.ops.requests import UpsertScheduleRequest

    ctx = OperationContext(store=store)
    result = upsert_schedule(ctx, UpsertScheduleRequest(application_id=1, cron_expression="0 9 * * *"))
    assert result.success
"""

from connwatch.ops.context import OperationContext
from connwatch.ops.result import OperationError, OperationResult, PagedResult

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "PagedResult",
]
