"""
Structured error types for connwatch.

Every failure the health-check subsystem can produce has a typed home here.
Errors carry a category for routing, a retryable flag, an optional cause
for chaining, and an ``ErrorContext`` with structured metadata for logging.

Propagation rules:
    - ``ProbeError`` is raised inside the probe layer and always recovered
      into a failed ``RunOutcome``. It never crosses ``ConnectionProbe.test``.
    - ``ScheduleError`` describes an unexpected runner failure. The runner
      logs it and returns an ``error`` run summary instead of raising.
    - ``SchedulerCycleError`` wraps a failed due-schedule scan. The dispatcher
      logs it and keeps ticking.
    - ``ValidationError``, ``NotFoundError`` and ``AuthorizationError`` are
      the only kinds that reach administrative callers, as failed
      operation results.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      ConnwatchError                              │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError   ConfigError          AuthorizationError      │
        │  (VALIDATION)      (CONFIG)             (AUTH)                  │
        │                        │                                         │
        │                    MissingConfigError                           │
        │                    CredentialDecryptError                       │
        │                                                                  │
        │  ProbeError        OrchestrationError   StorageError            │
        │  (PROBE)           (ORCHESTRATION)      (STORAGE)               │
        │                        │                    │                    │
        │                    ScheduleError        NotFoundError           │
        │                    SchedulerCycleError                          │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ValidationError("Invalid cron expression: bad field", field="cron_expression")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> error.with_context(application_id=7).context.metadata["application_id"]
    7

Tags:
    error-handling, exception-hierarchy, error-context, connwatch
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure
    STORAGE = "STORAGE"

    # Input
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    AUTH = "AUTH"

    # Subsystem
    PROBE = "PROBE"
    ORCHESTRATION = "ORCHESTRATION"

    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover the identifiers the scheduler deals with; anything
    else goes into ``metadata``. Never put credential values in here.

    Attributes:
        schedule_id: Schedule being processed
        application_id: Owning application
        connection_id: Connection being probed
        connection_kind: Connection kind value (``postgresql``, ``github_api``...)
        url: URL being accessed, for API probes
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    schedule_id: int | None = None
    application_id: int | None = None
    connection_id: int | None = None
    connection_kind: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["schedule_id", "application_id", "connection_id",
                    "connection_kind", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ConnwatchError(Exception):
    """
    Base exception for all connwatch errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites only pass what differs from the defaults.

    Examples:
        >>> error = ConnwatchError("Something went wrong")
        >>> error.retryable
        False
        >>> error.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ConnwatchError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ScheduleError("Run failed").with_context(schedule_id=3)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ConnwatchError):
    """
    Rejected input: bad cron expression, missing connection fields.

    Never retryable - the request must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(ConnwatchError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class CredentialDecryptError(ConfigError):
    """Ciphertext could not be decoded or decrypted with the configured key."""


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


class AuthorizationError(ConnwatchError):
    """Caller does not own the schedule or connection."""

    default_category = ErrorCategory.AUTH


# =============================================================================
# PROBE ERRORS
# =============================================================================


class ProbeError(ConnwatchError):
    """
    Normalized connectivity failure.

    Carries the taxonomy kind and technology-prefixed code so the probe
    layer can turn it into a ``RunOutcome`` without re-classifying.
    """

    default_category = ErrorCategory.PROBE
    default_retryable = True

    def __init__(
        self,
        message: str,
        *,
        kind: Any,
        code: str,
        details: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["kind"] = getattr(self.kind, "value", self.kind)
        result["code"] = self.code
        return result


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(ConnwatchError):
    """Scheduler or runner error."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class ScheduleError(OrchestrationError):
    """Unexpected failure escaping a whole schedule run."""


class SchedulerCycleError(OrchestrationError):
    """The due-schedule scan for one tick failed."""

    default_retryable = True


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(ConnwatchError):
    """Schedule/connection store error."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class NotFoundError(StorageError):
    """Requested record does not exist."""

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ConnwatchError",
    # Validation
    "ValidationError",
    # Config
    "ConfigError",
    "MissingConfigError",
    "CredentialDecryptError",
    # Auth
    "AuthorizationError",
    # Probe
    "ProbeError",
    # Orchestration
    "OrchestrationError",
    "ScheduleError",
    "SchedulerCycleError",
    # Storage
    "StorageError",
    "NotFoundError",
]
