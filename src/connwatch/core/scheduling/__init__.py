"""Scheduled connection health checks.

Manifesto:
    An operator attaches one cron schedule to an application; connwatch
    probes every active connection of that application whenever the
    schedule comes due and records the aggregate result. A single
    dispatcher polls the store on a fixed interval, so there is nothing to
    keep in sync between a timer wheel and the database.

┌──────────────────────────────────────────────────────────────────────────────┐
│  CONNWATCH SCHEDULER                                                          │
│                                                                               │
│  Quick Start:                                                                 │
│  ┌──────────────────────────────────────────────────────────────────────┐   │
│  │   from connwatch.core.scheduling import (                            │   │
│  │       CronPlanner, PollingDispatcher, ScheduleRunner,                │   │
│  │       SQLiteScheduleStore,                                           │   │
│  │   )                                                                  │   │
│  │                                                                      │   │
│  │   store = SQLiteScheduleStore.open("connwatch.db", cipher=cipher)    │   │
│  │   runner = ScheduleRunner(store, ProbeService(cipher))               │   │
│  │   dispatcher = PollingDispatcher(store, runner, CronPlanner())       │   │
│  │   dispatcher.start()                                                 │   │
│  └──────────────────────────────────────────────────────────────────────┘   │
│                                                                               │
│   ┌──────────────┐    tick()    ┌──────────────────────────────┐             │
│   │  Backend     │ ───────────► │   PollingDispatcher          │             │
│   │ (timing)     │              │   ├── ScheduleStore (data)   │             │
│   └──────────────┘              │   ├── CronPlanner (next run) │             │
│                                 │   └── ScheduleRunner (probes)│             │
│                                 └──────────────────────────────┘             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from .cron import MAX_EXPRESSION_LENGTH, CronPlanner, CronValidation
from .protocol import BackendHealth, PollingBackend, TickCallback
from .repository import SCHEMA, ScheduleStore, SQLiteScheduleStore
from .runner import NO_CONNECTIONS_MESSAGE, ScheduleRunner, aggregate_status
from .service import (
    DEFAULT_POLL_INTERVAL,
    PollingDispatcher,
    ScheduleRunRecord,
    SchedulerHealth,
    SchedulerStats,
)
from .thread_backend import ThreadPollingBackend

__all__ = [
    # Cron
    "CronPlanner",
    "CronValidation",
    "MAX_EXPRESSION_LENGTH",
    # Backends
    "BackendHealth",
    "PollingBackend",
    "ThreadPollingBackend",
    "TickCallback",
    # Store
    "SCHEMA",
    "ScheduleStore",
    "SQLiteScheduleStore",
    # Runner
    "NO_CONNECTIONS_MESSAGE",
    "ScheduleRunner",
    "aggregate_status",
    # Dispatcher
    "DEFAULT_POLL_INTERVAL",
    "PollingDispatcher",
    "ScheduleRunRecord",
    "SchedulerHealth",
    "SchedulerStats",
]
