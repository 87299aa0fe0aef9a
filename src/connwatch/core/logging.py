"""
Structured logging for connwatch.

Every module logs through structlog with event-style messages and
key-value fields::

    logger = get_logger(__name__)
    logger.info("schedule_run_completed", schedule_id=3, status="partial")

The scheduler renders JSON with ECS field names (``@timestamp``,
``log.level``, ``service.name``) when stdout is not a terminal, and the
colored console renderer otherwise.

Credentials must never reach a log line. Probe error text is sanitized
before it is logged, and as a backstop any field whose name looks like a
credential is masked by ``_mask_credential_fields``.

Tags:
    logging, structlog, observability, ecs, json-logging, connwatch
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from connwatch.core.settings import ConnwatchSettings

_SERVICE_NAME = "connwatch"

MASK = "[REDACTED]"

_CREDENTIAL_FIELDS = frozenset({
    "password",
    "pwd",
    "secret",
    "secret_key",
    "api_key",
    "apikey",
    "token",
    "github_token",
    "connection_string",
})

# Chatty at INFO: httpx logs every request line, drivers log handshakes.
_NOISY_LOGGERS = ("httpx", "httpcore", "mysql.connector", "oracledb")


def _add_service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _mask_credential_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in event_dict.keys() & _CREDENTIAL_FIELDS:
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "connwatch",
) -> None:
    """Configure structlog and the stdlib root logger for the process.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        json_format: True for JSON, False for console, None to pick JSON
            when stdout is not a terminal.
        service: Value of ``service.name`` on every event.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_name,
        _mask_credential_fields,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_field_names,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Database drivers and httpx log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def configure_from_settings(settings: ConnwatchSettings) -> None:
    configure_logging(level=settings.log_level, json_format=settings.log_json, service=settings.service_name)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields to every event logged inside the block on this thread.

    Example:
        with LogContext(schedule_id=3, application_id=7):
            logger.info("schedule_run_started")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = [
    "MASK",
    "LogContext",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
