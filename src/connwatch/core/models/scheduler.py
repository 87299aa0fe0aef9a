"""Schedule models (``connection_test_schedules`` table) and run summaries.

Tags:
    connwatch, models, scheduling, dataclasses, cron
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .connection import RunOutcome


class RunStatus(str, Enum):
    """Aggregate status of one schedule run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class Application:
    """Owning application row (``applications``)."""

    id: int | None = None
    name: str = ""
    is_active: bool = True


@dataclass
class Schedule:
    """Health-check schedule row. At most one per application."""

    id: int | None = None
    application_id: int = 0
    cron_expression: str = ""
    enabled: bool = True
    last_run_at: datetime | None = None
    last_run_status: RunStatus | None = None
    last_run_message: str | None = None
    last_run_duration_ms: float | None = None
    next_run_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "cron_expression": self.cron_expression,
            "enabled": self.enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status.value if self.last_run_status else None,
            "last_run_message": self.last_run_message,
            "last_run_duration_ms": self.last_run_duration_ms,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
        }


@dataclass
class RunSummary:
    """What the runner hands back to the dispatcher."""

    status: RunStatus
    message: str
    duration_ms: float = 0.0
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: dict[int, RunOutcome] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }
