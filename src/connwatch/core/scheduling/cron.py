"""Cron parsing, validation and next-run computation.

``CronPlanner`` is the single place where cron expressions are interpreted.
The dispatcher, the admin operations and the CLI all go through it, so a
schedule's ``next_run_at`` always comes from the same function.

Only standard five-field expressions (minute, hour, day-of-month, month,
day-of-week) are accepted. croniter also understands a seconds field and a
year field; those forms are rejected here so stored schedules stay portable.

All instants are timezone-aware UTC. Naive inputs are assumed to be UTC.

Tags:
    connwatch, scheduling, cron, croniter
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from croniter import CroniterError, croniter

from connwatch.core.errors import ValidationError
from connwatch.core.logging import get_logger

logger = get_logger(__name__)

MAX_EXPRESSION_LENGTH = 100


@dataclass(frozen=True)
class CronValidation:
    """Outcome of :meth:`CronPlanner.validate`."""

    valid: bool
    description: str | None = None
    next_run: datetime | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "description": self.description,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "error": self.error,
        }


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


class CronPlanner:
    """Validate cron expressions and compute their next occurrence."""

    def parse_error(self, expression: str | None) -> str | None:
        """Return why ``expression`` is invalid, or None if it parses."""
        if expression is None or not expression.strip():
            return "Cron expression is required"
        if len(expression) > MAX_EXPRESSION_LENGTH:
            return f"Cron expression must be at most {MAX_EXPRESSION_LENGTH} characters"

        fields = expression.split()
        if len(fields) != 5:
            return f"Expected 5 fields (minute hour day month weekday), got {len(fields)}"

        try:
            croniter(expression, datetime(2000, 1, 1, tzinfo=UTC))
        except (CroniterError, ValueError, KeyError) as e:
            return str(e) or e.__class__.__name__
        return None

    def next_run(self, expression: str | None, from_instant: datetime) -> datetime | None:
        """First occurrence strictly after ``from_instant``, or None if invalid.

        Invalid expressions log a warning instead of raising so a single bad
        row cannot break a dispatcher cycle.
        """
        error = self.parse_error(expression)
        if error is not None:
            logger.warning("cron_next_run_failed", expression=expression, error=error)
            return None

        start = _as_utc(from_instant)
        try:
            result = croniter(expression, start).get_next(datetime)
        except (CroniterError, ValueError, KeyError) as e:
            # Valid syntax with no reachable date, e.g. "0 0 31 2 *"
            logger.warning("cron_next_run_failed", expression=expression, error=str(e))
            return None
        return _as_utc(result)

    def require_next_run(self, expression: str | None, from_instant: datetime) -> datetime:
        """Like :meth:`next_run` but rejects invalid input.

        Raises:
            ValidationError: ``Invalid cron expression: <reason>``
        """
        error = self.parse_error(expression)
        if error is None:
            result = self.next_run(expression, from_instant)
            if result is not None:
                return result
            error = "Expression never matches a calendar date"
        raise ValidationError(
            f"Invalid cron expression: {error}",
            field="cron_expression",
            value=expression,
        )

    def validate(self, expression: str | None, now: datetime | None = None) -> CronValidation:
        error = self.parse_error(expression)
        if error is not None:
            return CronValidation(valid=False, error=error)

        next_run = self.next_run(expression, now or datetime.now(UTC))
        if next_run is None:
            return CronValidation(valid=False, error="Expression never matches a calendar date")

        return CronValidation(
            valid=True,
            description=self.describe(expression),
            next_run=next_run,
        )

    def describe(self, expression: str | None) -> str:
        """Human-readable summary of common shapes.

        Cosmetic only; anything unusual becomes "Custom schedule".
        """
        if not expression:
            return "Custom schedule"
        parts = expression.split()
        if len(parts) != 5:
            return "Custom schedule"

        minute, hour, day, month, weekday = parts
        if month != "*":
            return "Custom schedule"

        if (minute, hour, day, weekday) == ("*", "*", "*", "*"):
            return "Every minute"

        if hour == "*" and day == "*" and weekday == "*":
            if minute.startswith("*/") and minute[2:].isdigit():
                return f"Every {int(minute[2:])} minutes"
            return f"Every hour at minute {minute}"

        if minute == "*" or hour == "*":
            return "Custom schedule"

        at = f"{hour}:{minute.rjust(2, '0')}"
        if day == "*" and weekday == "*":
            return f"Daily at {at}"
        if day == "*":
            return f"Weekly on day {weekday} at {at}"
        if weekday == "*":
            return f"Monthly on day {day} at {at}"
        return "Custom schedule"


__all__ = ["CronPlanner", "CronValidation", "MAX_EXPRESSION_LENGTH"]
