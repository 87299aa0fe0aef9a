"""Polling dispatcher: runs due health-check schedules.

Manifesto:
    The dispatcher combines a backend (timing), a store (data), a planner
    (next run) and a runner (work). It follows the beat-as-poller pattern:
    the backend calls ``_tick`` on a fixed interval and the dispatcher
    decides what is due. A failing cycle never stops the loop.

Tags:
    connwatch, scheduling, dispatcher, beat-as-poller, service


┌──────────────────────────────────────────────────────────────────────────────┐
│  POLLING DISPATCHER                                                           │
│                                                                               │
│   ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────┐              │
│   │  Backend        │  │  ScheduleStore  │  │  ScheduleRunner │              │
│   │  (timing)       │  │  (data)         │  │  (probes)       │              │
│   └────────┬────────┘  └────────┬────────┘  └────────┬────────┘              │
│            ▼                    ▼                    ▼                        │
│   ┌────────────────────────────────────────────────────────────┐             │
│   │                       _tick()                              │             │
│   │                                                            │             │
│   │   1. list_due_schedules(now)                               │             │
│   │   2. for each due schedule (until stop is requested):      │             │
│   │      ├── runner.run(schedule)        (worker thread)       │             │
│   │      └── save_schedule_run_result(..., next_run_at)        │             │
│   │   3. any failure → log scheduler_cycle_failed, continue    │             │
│   └────────────────────────────────────────────────────────────┘             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from connwatch.core.errors import SchedulerCycleError
from connwatch.core.logging import LogContext, get_logger
from connwatch.core.models import RunStatus, RunSummary, Schedule

from .cron import CronPlanner
from .protocol import BackendHealth, PollingBackend
from .repository import ScheduleStore
from .runner import ScheduleRunner
from .thread_backend import ThreadPollingBackend

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 60.0


@dataclass
class SchedulerStats:
    """Counters for the dispatcher loop."""

    tick_count: int = 0
    schedules_processed: int = 0
    schedules_skipped: int = 0
    schedules_failed: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "schedules_processed": self.schedules_processed,
            "schedules_skipped": self.schedules_skipped,
            "schedules_failed": self.schedules_failed,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_error": self.last_error,
        }


@dataclass
class SchedulerHealth:
    """Health status for the dispatcher."""

    healthy: bool
    backend: BackendHealth | dict
    schedules_enabled: int = 0
    last_tick: datetime | None = None
    stats: SchedulerStats = field(default_factory=SchedulerStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend.to_dict() if isinstance(self.backend, BackendHealth) else self.backend,
            "schedules_enabled": self.schedules_enabled,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "stats": self.stats.to_dict(),
        }


@dataclass
class ScheduleRunRecord:
    """One processed schedule from a cycle."""

    schedule: Schedule
    summary: RunSummary
    next_run_at: datetime | None


class PollingDispatcher:
    """Beat-as-poller dispatcher for health-check schedules.

    Example:
        >>> dispatcher = PollingDispatcher(store, runner, CronPlanner())
        >>> dispatcher.start()
        >>> # ... later ...
        >>> dispatcher.stop()
    """

    def __init__(
        self,
        store: ScheduleStore,
        runner: ScheduleRunner,
        planner: CronPlanner | None = None,
        backend: PollingBackend | None = None,
        interval_seconds: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.store = store
        self.runner = runner
        self.planner = planner or CronPlanner()
        self.backend = backend or ThreadPollingBackend()
        self.interval = interval_seconds

        self._stats = SchedulerStats()
        self._stop_requested = threading.Event()
        self._running = False

    # === Lifecycle ===

    def start(self) -> None:
        if self._running:
            logger.warning("dispatcher_already_running")
            return

        logger.info("dispatcher_starting", backend=self.backend.name, interval_seconds=self.interval)
        self._stop_requested.clear()
        self.backend.start(self._tick, self.interval)
        self._running = True

    def stop(self) -> None:
        """Stop polling. A schedule already running finishes; no new one starts."""
        if not self._running:
            return

        logger.info("dispatcher_stopping")
        self._stop_requested.set()
        self.backend.stop()
        self._running = False
        logger.info("dispatcher_stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # === Tick Processing ===

    async def _tick(self) -> None:
        """Backend callback. Never raises."""
        try:
            await self.run_once()
        except Exception as e:
            self._stats.last_error = str(e)
            logger.exception("scheduler_cycle_failed", error=str(e))

    async def run_once(self, now: datetime | None = None) -> list[ScheduleRunRecord]:
        """Run one polling cycle and return what was processed.

        Raises:
            SchedulerCycleError: the due schedules could not be loaded.
        """
        now = now or datetime.now(UTC)
        self._stats.tick_count += 1
        self._stats.last_tick = now

        try:
            due = self.store.list_due_schedules(now)
        except Exception as e:
            raise SchedulerCycleError(f"Could not load due schedules: {e}", cause=e) from e

        if not due:
            logger.debug("no_schedules_due")
            return []

        logger.info("schedules_due", count=len(due))
        records: list[ScheduleRunRecord] = []
        for schedule in due:
            if self._stop_requested.is_set():
                logger.info("dispatcher_cycle_interrupted", remaining=len(due) - len(records))
                break
            with LogContext(schedule_id=schedule.id, application_id=schedule.application_id):
                record = await self._process_schedule(schedule, now)
            if record is not None:
                records.append(record)
        return records

    async def _process_schedule(self, schedule: Schedule, now: datetime) -> ScheduleRunRecord | None:
        try:
            summary = await asyncio.to_thread(self.runner.run, schedule)
            next_run_at = self.planner.next_run(schedule.cron_expression, now)
            self.store.save_schedule_run_result(
                schedule.id,  # type: ignore[arg-type]
                summary.status,
                summary.message,
                summary.duration_ms,
                next_run_at=next_run_at,
                last_run_at=now,
            )
        except Exception as e:
            self._stats.schedules_failed += 1
            self._stats.last_error = str(e)
            logger.exception("schedule_processing_failed", schedule_id=schedule.id, error=str(e))
            return None

        if summary.status == RunStatus.SKIPPED:
            self._stats.schedules_skipped += 1
        else:
            self._stats.schedules_processed += 1
        logger.info(
            "schedule_processed",
            schedule_id=schedule.id,
            application_id=schedule.application_id,
            status=summary.status.value,
            next_run_at=next_run_at.isoformat() if next_run_at else None,
        )
        return ScheduleRunRecord(schedule=schedule, summary=summary, next_run_at=next_run_at)

    # === Health & Stats ===

    def health(self) -> SchedulerHealth:
        backend_health = self.backend.health()
        return SchedulerHealth(
            healthy=self._running and backend_health.get("healthy", False),
            backend=backend_health,
            schedules_enabled=len(self.store.list_schedules(enabled_only=True)),
            last_tick=self._stats.last_tick,
            stats=self._stats,
        )

    def get_stats(self) -> SchedulerStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = SchedulerStats()


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "PollingDispatcher",
    "ScheduleRunRecord",
    "SchedulerHealth",
    "SchedulerStats",
]
