"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the schedule store, the cron planner, the
probe service (when the caller can probe) and caller metadata.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from connwatch.core.probes import ProbeService
from connwatch.core.scheduling import CronPlanner, ScheduleStore


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        store: Persistence satisfying :class:`ScheduleStore`.
        planner: Cron planner used for validation and next-run computation.
        probe_service: Needed only by operations that probe on demand.
        request_id: Unique ID for this invocation (auto-generated).
        caller: Origin of the request, ``"cli"`` or ``"sdk"``.
        dry_run: When ``True``, write operations return a preview only.
    """

    store: ScheduleStore
    planner: CronPlanner = field(default_factory=CronPlanner)
    probe_service: ProbeService | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
