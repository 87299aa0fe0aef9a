"""
CLI: ``connwatch run`` / ``connwatch tick`` / ``connwatch status``.

``run`` starts the polling dispatcher in the foreground until interrupted.
``tick`` runs exactly one polling cycle and prints what it did, which is
handy from an external cron or for debugging a schedule.
"""

from __future__ import annotations

import asyncio
import json
import threading

import typer
from rich.table import Table

from connwatch.cli.utils import console, err_console, load_cipher, open_store
from connwatch.core.errors import ConnwatchError
from connwatch.core.logging import configure_from_settings
from connwatch.core.probes import ProbeService
from connwatch.core.scheduling import (
    CronPlanner,
    PollingDispatcher,
    ScheduleRunner,
    SQLiteScheduleStore,
    ThreadPollingBackend,
)
from connwatch.core.settings import ConnwatchSettings, get_settings


def build_dispatcher(
    settings: ConnwatchSettings,
    store: SQLiteScheduleStore,
    interval_seconds: float | None = None,
) -> PollingDispatcher:
    """Wire store, probes, runner and planner from settings."""
    probe_service = ProbeService.from_settings(settings, cipher=store.cipher)
    runner = ScheduleRunner(store, probe_service, max_workers=settings.probe_max_workers)
    return PollingDispatcher(
        store,
        runner,
        CronPlanner(),
        backend=ThreadPollingBackend(stop_timeout=None),
        interval_seconds=interval_seconds or settings.poll_interval_seconds,
    )


def _open(database: str | None) -> tuple[ConnwatchSettings, SQLiteScheduleStore]:
    settings = get_settings()
    configure_from_settings(settings)
    cipher = load_cipher(settings, required=True)
    return settings, open_store(database, cipher=cipher, settings=settings)


def run(
    interval: float | None = typer.Option(None, "--interval", help="Seconds between polls (default: settings)"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Run the scheduler in the foreground until Ctrl+C."""
    settings, store = _open(database)
    dispatcher = build_dispatcher(settings, store, interval)

    console.print(
        f"[bold green]Starting connwatch scheduler[/bold green] "
        f"(interval={dispatcher.interval}s, workers={settings.probe_max_workers})"
    )
    dispatcher.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped by user[/yellow]")
    finally:
        # Waits for the schedule in flight; its writes need the open store
        dispatcher.stop()
        store.close()


def tick(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run one polling cycle now."""
    settings, store = _open(database)
    dispatcher = build_dispatcher(settings, store)
    try:
        records = asyncio.run(dispatcher.run_once())
    except ConnwatchError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    finally:
        store.close()

    if json_out:
        payload = [
            {
                "schedule_id": r.schedule.id,
                "application_id": r.schedule.application_id,
                **r.summary.to_dict(),
                "next_run_at": r.next_run_at.isoformat() if r.next_run_at else None,
            }
            for r in records
        ]
        console.print_json(json.dumps(payload))
        return

    if not records:
        console.print("[dim]No schedules due.[/dim]")
        return

    table = Table(title="Tick", pad_edge=False)
    for col in ("schedule", "application", "status", "message", "next_run_at"):
        table.add_column(col, overflow="fold")
    for r in records:
        table.add_row(
            str(r.schedule.id),
            str(r.schedule.application_id),
            r.summary.status.value,
            r.summary.message,
            r.next_run_at.isoformat() if r.next_run_at else "",
        )
    console.print(table)
