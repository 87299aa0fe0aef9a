"""Polling backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  POLLING BACKEND PROTOCOL                                                     │
│                                                                               │
│  The dispatcher runs "beat-as-poller": a backend decides WHEN a tick         │
│  happens, the PollingDispatcher decides WHAT a tick does.                    │
│                                                                               │
│   ┌─────────────────┐       tick()       ┌──────────────────────┐            │
│   │  Thread Backend │ ─────────────────► │  PollingDispatcher   │            │
│   │  (default)      │                    │                      │            │
│   └─────────────────┘                    │  - Load due schedules│            │
│                                          │  - Run each schedule │            │
│   ┌─────────────────┐       tick()       │  - Persist result    │            │
│   │  Custom backend │ ─────────────────► │  - Advance next_run  │            │
│   └─────────────────┘                    └──────────────────────┘            │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TickCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class PollingBackend(Protocol):
    """Protocol for pluggable timing backends.

    A backend is responsible ONLY for timing: calling the tick callback
    once on start and then every ``interval_seconds`` until stopped.

    Example (custom backend):
        >>> class MyBackend:
        ...     name = "custom"
        ...
        ...     def start(self, tick_callback, interval_seconds=60.0):
        ...         my_loop.every(interval_seconds, lambda: asyncio.run(tick_callback()))
        ...
        ...     def stop(self):
        ...         my_loop.cancel()
        ...
        ...     def health(self) -> dict:
        ...         return {"healthy": True, "backend": "custom"}
    """

    name: str

    def start(
        self,
        tick_callback: TickCallback,
        interval_seconds: float = 60.0,
    ) -> None:
        """Start the polling loop."""
        ...

    def stop(self) -> None:
        """Stop the loop, waiting briefly for an in-flight tick."""
        ...

    def health(self) -> dict[str, Any]:
        """Return at least ``healthy``, ``backend``, ``tick_count``, ``last_tick``."""
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    tick_count: int = 0
    last_tick: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            **self.extra,
        }
