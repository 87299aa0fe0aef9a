"""Typed dataclass models for connwatch tables and results."""

from .connection import (
    Connection,
    ConnectionKind,
    ConnectionStatus,
    ProbeErrorKind,
    RunOutcome,
)
from .scheduler import Application, RunStatus, RunSummary, Schedule

__all__ = [
    "Application",
    "Connection",
    "ConnectionKind",
    "ConnectionStatus",
    "ProbeErrorKind",
    "RunOutcome",
    "RunStatus",
    "RunSummary",
    "Schedule",
]
