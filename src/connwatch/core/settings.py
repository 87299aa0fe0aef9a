"""Process-wide settings for connwatch.

Everything operators tune lives here: the credential secret, probe
timeouts, the poll interval and the store location. Values come from
``CONNWATCH_``-prefixed environment variables or a ``.env`` file.

Examples:
    >>> import os
    >>> os.environ["CONNWATCH_SECRET_KEY"] = "a-long-enough-secret"
    >>> ConnwatchSettings().poll_interval_seconds
    60.0

Tags:
    settings, configuration, pydantic, environment, connwatch
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnwatchSettings(BaseSettings):
    """Settings for the scheduler, probes and cipher.

    Fields
    ──────
    secret_key               : Cipher secret (padded/truncated to 32 bytes)
    database_path            : SQLite file backing the schedule store
    poll_interval_seconds    : Dispatcher tick interval
    db_probe_timeout_seconds : Default timeout for database probes
    api_probe_timeout_seconds: Default timeout for HTTP probes
    probe_max_workers        : Per-schedule probe fan-out (1 = sequential)
    github_api_url           : Base URL for GitHub probes
    log_level / log_json     : Structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="CONNWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Secrets ──────────────────────────────────────────────────
    secret_key: SecretStr = SecretStr("")

    # ── Storage ──────────────────────────────────────────────────
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".connwatch" / "connwatch.db",
        description="SQLite file backing the schedule store",
    )

    # ── Scheduling ───────────────────────────────────────────────
    poll_interval_seconds: float = Field(default=60.0, gt=0)
    db_probe_timeout_seconds: float = Field(default=10.0, gt=0)
    api_probe_timeout_seconds: float = Field(default=30.0, gt=0)
    probe_max_workers: int = Field(default=1, ge=1)
    github_api_url: str = "https://api.github.com"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    service_name: str = "connwatch"


@lru_cache(maxsize=1)
def get_settings() -> ConnwatchSettings:
    """Return the cached process settings."""
    return ConnwatchSettings()


__all__ = ["ConnwatchSettings", "get_settings"]
