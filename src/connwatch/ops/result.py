"""
Operation result envelope.

Operations never raise domain errors at their callers. They return an
:class:`OperationResult` holding either the payload or an
:class:`OperationError`, plus non-fatal *warnings* (for example "this
application has no active connections, runs will be skipped") and timing.

Error codes seen by administrative callers:

    VALIDATION_FAILED   bad input (cron expression, connection fields)
    NOT_FOUND           unknown application, schedule or connection
    FORBIDDEN           record not owned by the caller
    <CATEGORY>          any other ConnwatchError, by its category value
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from connwatch.core.errors import AuthorizationError, ConnwatchError, ErrorCategory, NotFoundError, ValidationError

T = TypeVar("T")

VALIDATION_FAILED = "VALIDATION_FAILED"
NOT_FOUND = "NOT_FOUND"
FORBIDDEN = "FORBIDDEN"


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    ``details`` carries the offending field and value for validation
    errors, or the entity and id for lookups.
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


@dataclass
class OperationResult(Generic[T]):
    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
            metadata=metadata or {},
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        error = OperationError(code, message, category, details or {}, retryable)
        return cls(success=False, error=error, elapsed_ms=elapsed_ms)

    @classmethod
    def from_error(cls, exc: ConnwatchError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        """Convert a domain error into a failed result, keeping its message."""
        if isinstance(exc, ValidationError):
            code = VALIDATION_FAILED
            details = {k: v for k, v in (("field", exc.field), ("value", exc.value)) if v is not None}
        elif isinstance(exc, NotFoundError):
            code = NOT_FOUND
            details = {"entity": exc.entity, "id": exc.identifier}
        elif isinstance(exc, AuthorizationError):
            code = FORBIDDEN
            details = {}
        else:
            code = exc.category.value
            details = {}
        return cls.fail(
            code,
            exc.message,
            category=exc.category,
            details=details,
            retryable=exc.retryable,
            elapsed_ms=elapsed_ms,
        )

    @property
    def dry_run(self) -> bool:
        return bool(self.metadata.get("dry_run"))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = _plain(self.data)
        if self.error is not None:
            d["error"] = {"code": self.error.code, "message": self.error.message}
            if self.error.details:
                d["error"]["details"] = self.error.details
            if self.error.retryable:
                d["error"]["retryable"] = True
        if self.warnings:
            d["warnings"] = list(self.warnings)
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        d["elapsed_ms"] = round(self.elapsed_ms, 2)
        return d


@dataclass
class PagedResult(OperationResult[list[T]]):
    """Result of a list operation. ``total`` counts every matching row."""

    total: int = 0

    @classmethod
    def from_items(cls, items: list[T], total: int | None = None, *, elapsed_ms: float = 0.0) -> PagedResult[T]:
        return cls(
            success=True,
            data=items,
            total=len(items) if total is None else total,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["total"] = self.total
        return d


def _plain(value: Any) -> Any:
    if isinstance(value, list | tuple):
        return [_plain(v) for v in value]
    return value.to_dict() if hasattr(value, "to_dict") else value


class _Timer:
    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Start a stopwatch; read ``timer.elapsed_ms`` when the operation ends."""
    return _Timer()


__all__ = [
    "FORBIDDEN",
    "NOT_FOUND",
    "VALIDATION_FAILED",
    "OperationError",
    "OperationResult",
    "PagedResult",
    "start_timer",
]
