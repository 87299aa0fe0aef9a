"""
Tests for CronPlanner.

Tests cover:
- Next-run computation from a fixed instant
- Rejection of malformed and non-five-field expressions
- Human-readable descriptions
"""

from datetime import UTC, datetime, timedelta

import pytest

from connwatch.core.errors import ValidationError
from connwatch.core.scheduling import MAX_EXPRESSION_LENGTH, CronPlanner


@pytest.fixture
def start():
    return datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


class TestNextRun:
    """Tests for CronPlanner.next_run."""

    def test_daily(self, planner, start):
        """A daily 09:00 schedule checked at 10:00 fires the next day."""
        assert planner.next_run("0 9 * * *", start) == datetime(2024, 1, 2, 9, 0, tzinfo=UTC)

    def test_every_fifteen_minutes(self, planner, start):
        assert planner.next_run("*/15 * * * *", start) == datetime(2024, 1, 1, 10, 15, tzinfo=UTC)

    def test_strictly_after(self, planner, start):
        """An instant that matches the expression is not returned for itself."""
        assert planner.next_run("0 10 * * *", start) == datetime(2024, 1, 2, 10, 0, tzinfo=UTC)

    def test_monotonic(self, planner, start):
        """Chaining next_run yields strictly increasing instants."""
        instant = start
        for _ in range(10):
            following = planner.next_run("*/7 * * * *", instant)
            assert following > instant
            instant = following

    def test_naive_treated_as_utc(self, planner):
        result = planner.next_run("0 9 * * *", datetime(2024, 1, 1, 10, 0))
        assert result == datetime(2024, 1, 2, 9, 0, tzinfo=UTC)
        assert result.tzinfo is not None

    def test_other_timezone_normalized(self, planner, start):
        from datetime import timezone

        local = start.astimezone(timezone(timedelta(hours=2)))
        assert planner.next_run("0 9 * * *", local) == datetime(2024, 1, 2, 9, 0, tzinfo=UTC)

    @pytest.mark.parametrize("expression", ["bogus", "", "   ", None, "61 * * * *", "* * * *", "0 0 * * * *"])
    def test_invalid_returns_none(self, planner, start, expression):
        assert planner.next_run(expression, start) is None


class TestParseError:
    """Tests for CronPlanner.parse_error."""

    def test_valid(self, planner):
        assert planner.parse_error("30 2 * * 1-5") is None

    def test_required(self, planner):
        assert planner.parse_error("") == "Cron expression is required"

    def test_field_count(self, planner):
        assert planner.parse_error("0 0 * * * 2024") == (
            "Expected 5 fields (minute hour day month weekday), got 6"
        )

    def test_too_long(self, planner):
        expression = "0 " + ",".join(["1"] * 60) + " * * *"
        assert len(expression) > MAX_EXPRESSION_LENGTH
        assert "at most" in planner.parse_error(expression)

    def test_out_of_range(self, planner):
        assert planner.parse_error("0 25 * * *") is not None


class TestRequireNextRun:
    """Tests for CronPlanner.require_next_run."""

    def test_returns_instant(self, planner, start):
        assert planner.require_next_run("0 * * * *", start) == datetime(2024, 1, 1, 11, 0, tzinfo=UTC)

    def test_raises_validation_error(self, planner, start):
        with pytest.raises(ValidationError) as exc_info:
            planner.require_next_run("bogus", start)
        assert exc_info.value.message.startswith("Invalid cron expression: ")
        assert exc_info.value.field == "cron_expression"


class TestValidate:
    """Tests for CronPlanner.validate."""

    def test_valid(self, planner, start):
        result = planner.validate("0 9 * * *", now=start)
        assert result.valid is True
        assert result.description == "Daily at 9:00"
        assert result.next_run == datetime(2024, 1, 2, 9, 0, tzinfo=UTC)
        assert result.error is None

    def test_invalid(self, planner):
        result = planner.validate("bogus")
        assert result.valid is False
        assert result.next_run is None
        assert result.error

    def test_to_dict(self, planner, start):
        data = planner.validate("0 9 * * *", now=start).to_dict()
        assert data["next_run"] == "2024-01-02T09:00:00+00:00"


class TestDescribe:
    """Tests for CronPlanner.describe."""

    @pytest.mark.parametrize(
        ("expression", "expected"),
        [
            ("* * * * *", "Every minute"),
            ("*/15 * * * *", "Every 15 minutes"),
            ("5 * * * *", "Every hour at minute 5"),
            ("30 9 * * *", "Daily at 9:30"),
            ("0 9 * * 1", "Weekly on day 1 at 9:00"),
            ("0 6 1 * *", "Monthly on day 1 at 6:00"),
            ("0 0 1 1 *", "Custom schedule"),
            ("0 9 1 * 1", "Custom schedule"),
        ],
    )
    def test_shapes(self, planner, expression, expected):
        assert planner.describe(expression) == expected

    def test_garbage(self, planner):
        assert planner.describe("nope") == "Custom schedule"
        assert planner.describe(None) == "Custom schedule"
