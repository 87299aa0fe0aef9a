"""Schedule runner: probe every active connection of one application.

The runner is the WHAT of a scheduled health check. It loads the
application's connections, probes the active ones, writes each
connection's status back and folds the outcomes into a ``RunSummary``.
It never raises; anything unexpected becomes an ``error`` summary.

Aggregation:
    failed == 0     -> success
    succeeded == 0  -> failed
    otherwise       -> partial
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from connwatch.core.errors import ScheduleError
from connwatch.core.logging import get_logger
from connwatch.core.models import Connection, ProbeErrorKind, RunOutcome, RunStatus, RunSummary, Schedule
from connwatch.core.probes.service import ProbeService
from connwatch.core.probes.taxonomy import sanitize_error_text

from .repository import ScheduleStore

logger = get_logger(__name__)

NO_CONNECTIONS_MESSAGE = "No active database connections found"

ErrorHook = Callable[[Schedule, RunSummary], None]


def aggregate_status(succeeded: int, failed: int) -> RunStatus:
    if failed == 0:
        return RunStatus.SUCCESS
    if succeeded == 0:
        return RunStatus.FAILED
    return RunStatus.PARTIAL


class ScheduleRunner:
    """Runs one schedule's health check.

    Args:
        store: Source of connections and sink for per-connection status.
        probe_service: Probes a single connection.
        max_workers: Probe fan-out. ``1`` probes sequentially.
        on_error: Optional hook called with an ``error`` summary, for callers
            that persist results themselves. Exceptions from it are logged.
    """

    def __init__(
        self,
        store: ScheduleStore,
        probe_service: ProbeService,
        max_workers: int = 1,
        on_error: ErrorHook | None = None,
    ) -> None:
        self.store = store
        self.probe_service = probe_service
        self.max_workers = max(1, max_workers)
        self.on_error = on_error

    def run(self, schedule: Schedule) -> RunSummary:
        started = time.perf_counter()
        log = logger.bind(schedule_id=schedule.id, application_id=schedule.application_id)
        try:
            connections = [
                c for c in self.store.get_connections_for_application(schedule.application_id) if c.is_active
            ]
            if not connections:
                log.info("schedule_run_skipped", reason="no_active_connections")
                return RunSummary(
                    status=RunStatus.SKIPPED,
                    message=NO_CONNECTIONS_MESSAGE,
                    duration_ms=_elapsed_ms(started),
                )

            outcomes = self._probe_all(connections)
            for connection_id, outcome in outcomes.items():
                self._record(connection_id, outcome)

            succeeded = sum(1 for o in outcomes.values() if o.success)
            failed = len(outcomes) - succeeded
            summary = RunSummary(
                status=aggregate_status(succeeded, failed),
                message=f"Tested {len(outcomes)} connections: {succeeded} successful, {failed} failed",
                duration_ms=_elapsed_ms(started),
                total=len(outcomes),
                succeeded=succeeded,
                failed=failed,
                outcomes=outcomes,
            )
            log.info(
                "schedule_run_completed",
                status=summary.status.value,
                total=summary.total,
                succeeded=succeeded,
                failed=failed,
                duration_ms=round(summary.duration_ms, 2),
            )
            return summary
        except Exception as e:
            error = ScheduleError(f"Test execution failed: {sanitize_error_text(str(e))}").with_context(
                schedule_id=schedule.id,
                application_id=schedule.application_id,
                error_type=type(e).__name__,
            )
            summary = RunSummary(
                status=RunStatus.ERROR,
                message=error.message,
                duration_ms=_elapsed_ms(started),
            )
            logger.error("schedule_run_error", **error.to_dict())
            self._notify_error(schedule, summary)
            return summary

    def _probe_all(self, connections: list[Connection]) -> dict[int, RunOutcome]:
        if self.max_workers == 1 or len(connections) == 1:
            return {c.id: self._probe_one(c) for c in connections}  # type: ignore[misc]

        workers = min(self.max_workers, len(connections))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="connwatch-probe") as pool:
            futures = [(c.id, pool.submit(self._probe_one, c)) for c in connections]
            return {connection_id: future.result() for connection_id, future in futures}  # type: ignore[misc]

    def _probe_one(self, connection: Connection) -> RunOutcome:
        try:
            return self.probe_service.test_connection(connection)
        except Exception as e:
            logger.exception("probe_crashed", connection_id=connection.id)
            return RunOutcome(
                success=False,
                message=f"Connection test failed: {sanitize_error_text(str(e))}",
                error_code="INTERNAL_ERROR",
                error_kind=ProbeErrorKind.UNKNOWN,
            )

    def _record(self, connection_id: int, outcome: RunOutcome) -> None:
        try:
            self.store.record_connection_test(connection_id, outcome)
        except Exception:
            logger.exception("connection_status_write_failed", connection_id=connection_id)

    def _notify_error(self, schedule: Schedule, summary: RunSummary) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(schedule, summary)
        except Exception:
            logger.exception("schedule_error_hook_failed", schedule_id=schedule.id)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


__all__ = ["ScheduleRunner", "aggregate_status", "NO_CONNECTIONS_MESSAGE"]
