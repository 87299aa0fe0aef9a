"""Tests for connwatch.core.errors."""

from connwatch.core.errors import (
    AuthorizationError,
    ConnwatchError,
    CredentialDecryptError,
    ErrorCategory,
    MissingConfigError,
    NotFoundError,
    ProbeError,
    ScheduleError,
    SchedulerCycleError,
    ValidationError,
)
from connwatch.core.models import ProbeErrorKind


class TestConnwatchError:
    """Test the base error."""

    def test_defaults(self):
        error = ConnwatchError("boom")
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert str(error) == "boom"

    def test_with_context(self):
        error = ScheduleError("run failed").with_context(schedule_id=3, region="eu")
        assert error.context.schedule_id == 3
        assert error.context.metadata["region"] == "eu"
        assert error.to_dict()["context"] == {"schedule_id": 3, "region": "eu"}

    def test_cause_chained(self):
        cause = RuntimeError("disk gone")
        error = SchedulerCycleError("scan failed", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "disk gone"
        assert error.retryable is True


class TestSubclasses:
    """Test category and payload of specific errors."""

    def test_validation(self):
        error = ValidationError("Invalid cron expression: x", field="cron_expression", value="x")
        data = error.to_dict()
        assert data["category"] == "VALIDATION"
        assert data["field"] == "cron_expression"
        assert data["value"] == "'x'"

    def test_not_found(self):
        error = NotFoundError("Schedule", 42)
        assert error.message == "Schedule not found: 42"
        assert error.category == ErrorCategory.STORAGE

    def test_missing_config(self):
        error = MissingConfigError("secret_key")
        assert error.key == "secret_key"
        assert error.category == ErrorCategory.CONFIG

    def test_decrypt_is_config(self):
        assert CredentialDecryptError("bad").category == ErrorCategory.CONFIG

    def test_probe_error(self):
        error = ProbeError("denied", kind=ProbeErrorKind.UNAUTHORIZED, code="PG_28P01")
        data = error.to_dict()
        assert data["kind"] == "unauthorized"
        assert data["code"] == "PG_28P01"
        assert error.retryable is True

    def test_authorization(self):
        error = AuthorizationError("Schedule 3 belongs to another application")
        assert error.category == ErrorCategory.AUTH
        assert error.retryable is False

    def test_context_to_dict_skips_unset(self):
        error = ScheduleError("run failed").with_context(connection_kind="postgresql")
        assert error.context.to_dict() == {"connection_kind": "postgresql"}
        assert "context" not in ScheduleError("bare").to_dict()
