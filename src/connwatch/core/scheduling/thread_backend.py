"""Threading-based polling backend (the default).

A single daemon thread owns the timer. It ticks once on start, then sleeps
on ``stop_event.wait(interval)`` so ``stop()`` wakes it at once instead of
after a full interval. Each tick gets its own event loop via
``asyncio.run``.

Health checks are slow by nature: one unreachable database can hold a tick
for the full probe timeout. The backend therefore measures every tick and
logs ``tick_overran`` when a tick outlasts the poll interval. The next tick
then starts immediately and ticks are never stacked.

    start() ──► [tick] ─ wait(interval) ─► [tick] ─ wait(interval) ─► ...
    stop()  ──► stop_event.set(); join until the in-flight tick ends
             (or at most stop_timeout, when one is given)
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import UTC, datetime
from typing import Any

from connwatch.core.logging import get_logger

from .protocol import BackendHealth, TickCallback

logger = get_logger(__name__)

DEFAULT_STOP_TIMEOUT = 5.0
WAIT_LOG_SECONDS = 10.0


class ThreadPollingBackend:
    """Daemon-thread backend for single-instance deployments.

    Args:
        tick_immediately: Run the first tick on start instead of after one
            interval.
        stop_timeout: Seconds ``stop()`` waits for an in-flight tick. ``None``
            waits until the tick finishes, so a running schedule always
            records its result before shared resources are released.

    Example:
        >>> backend = ThreadPollingBackend()
        >>> backend.start(dispatcher_tick, interval_seconds=60.0)
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self, *, tick_immediately: bool = True, stop_timeout: float | None = DEFAULT_STOP_TIMEOUT) -> None:
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._tick_immediately = tick_immediately
        self._stop_timeout = stop_timeout
        self._interval = 60.0
        self._started = False

        self._tick_count = 0
        self._overruns = 0
        self._last_tick: datetime | None = None
        self._last_tick_ms: float | None = None

    def start(self, tick_callback: TickCallback, interval_seconds: float = 60.0) -> None:
        if self.is_running:
            logger.warning("backend_already_started", backend=self.name)
            return

        self._interval = interval_seconds
        self._stop_event.clear()

        def _loop() -> None:
            logger.info("backend_started", backend=self.name, interval_seconds=interval_seconds)
            if self._tick_immediately:
                self._tick(tick_callback)
            while not self._stop_event.wait(self._remaining_wait()):
                self._tick(tick_callback)
            logger.info("backend_stopped", backend=self.name)

        self._thread = threading.Thread(target=_loop, daemon=True, name="connwatch-poller")
        self._thread.start()
        self._started = True

    def _remaining_wait(self) -> float:
        if self._last_tick_ms is None:
            return self._interval
        return max(self._interval - self._last_tick_ms / 1000, 0.0)

    def _tick(self, tick_callback: TickCallback) -> None:
        with self._lock:
            self._tick_count += 1
            self._last_tick = datetime.now(UTC)
        started = time.perf_counter()
        try:
            asyncio.run(tick_callback())
        except Exception as e:
            logger.exception("tick_failed", backend=self.name, error=str(e))
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            with self._lock:
                self._last_tick_ms = elapsed_ms
                overran = elapsed_ms > self._interval * 1000
                if overran:
                    self._overruns += 1
            if overran:
                logger.warning(
                    "tick_overran",
                    backend=self.name,
                    duration_ms=round(elapsed_ms, 2),
                    interval_seconds=self._interval,
                )

    def stop(self) -> None:
        """Stop the loop and wait for the current tick.

        With a ``stop_timeout`` the wait is bounded; a tick still running
        afterwards keeps ``is_running`` true until it returns.
        """
        if not self._started:
            return

        self._stop_event.set()
        thread = self._thread
        deadline = None if self._stop_timeout is None else time.monotonic() + self._stop_timeout
        while thread is not None and thread.is_alive():
            wait = WAIT_LOG_SECONDS if deadline is None else min(WAIT_LOG_SECONDS, deadline - time.monotonic())
            if wait <= 0:
                logger.warning("backend_thread_still_running", backend=self.name, timeout=self._stop_timeout)
                return
            thread.join(timeout=wait)
            if thread.is_alive() and deadline is None:
                logger.info("backend_waiting_for_tick", backend=self.name)

        self._started = False
        logger.info("backend_shutdown_complete", backend=self.name)

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        with self._lock:
            return BackendHealth(
                healthy=self.is_running,
                backend=self.name,
                tick_count=self._tick_count,
                last_tick=self._last_tick,
                extra={
                    "interval_seconds": self._interval,
                    "last_tick_ms": round(self._last_tick_ms, 2) if self._last_tick_ms is not None else None,
                    "overruns": self._overruns,
                },
            )

    @property
    def is_running(self) -> bool:
        return self._started and self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def overruns(self) -> int:
        return self._overruns

    @property
    def last_tick(self) -> datetime | None:
        return self._last_tick
