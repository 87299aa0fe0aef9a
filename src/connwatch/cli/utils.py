"""
CLI utility helpers: output formatting and context construction.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from connwatch.core.errors import ConfigError
from connwatch.core.probes import ProbeService
from connwatch.core.scheduling import CronPlanner, SQLiteScheduleStore
from connwatch.core.secrets import CredentialCipher
from connwatch.core.settings import ConnwatchSettings, get_settings
from connwatch.ops.context import OperationContext
from connwatch.ops.result import OperationResult, PagedResult

console = Console()
err_console = Console(stderr=True)


# ── Store / context helpers ──────────────────────────────────────────────


def load_cipher(settings: ConnwatchSettings, *, required: bool) -> CredentialCipher | None:
    """Build the cipher; exit with a message when it is required but unset."""
    if not settings.secret_key.get_secret_value():
        if required:
            err_console.print("[bold red]Error[/bold red] (CONFIG): CONNWATCH_SECRET_KEY is not set")
            raise typer.Exit(code=1)
        return None
    return CredentialCipher.from_settings(settings)


def open_store(
    database: str | None = None,
    *,
    cipher: CredentialCipher | None = None,
    settings: ConnwatchSettings | None = None,
) -> SQLiteScheduleStore:
    """Open and initialise the store. Defaults to ``settings.database_path``."""
    settings = settings or get_settings()
    store = SQLiteScheduleStore.open(database or settings.database_path, cipher=cipher)
    store.init_schema()
    return store


def make_context(
    database: str | None = None,
    *,
    dry_run: bool = False,
    with_probes: bool = False,
) -> tuple[OperationContext, SQLiteScheduleStore]:
    """Create an ``OperationContext`` + store pair for CLI commands."""
    settings = get_settings()
    try:
        cipher = load_cipher(settings, required=with_probes)
    except ConfigError as e:
        err_console.print(f"[bold red]Error[/bold red] (CONFIG): {e.message}")
        raise typer.Exit(code=1) from e
    store = open_store(database, cipher=cipher, settings=settings)
    probe_service = ProbeService.from_settings(settings, cipher=cipher) if cipher and with_probes else None
    ctx = OperationContext(
        store=store,
        planner=CronPlanner(),
        probe_service=probe_service,
        caller="cli",
        dry_run=dry_run,
    )
    return ctx, store


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert model / dataclass / dict to a plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def _fail(result: OperationResult) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    raise typer.Exit(code=1)


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        _fail(result)

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning}")

    data = result.data

    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list | tuple) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if data is None:
        console.print(f"[green]{title or 'Done'}[/green]")
    elif isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    elif isinstance(data, str):
        if title:
            console.print(f"[bold]{title}[/bold]")
        console.print(data, markup=False)
    else:
        _print_dict(_to_dict(data), title=title)


def output_paged(
    result: PagedResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render a ``PagedResult`` with a total line."""
    if not result.success:
        _fail(result)

    items = result.data or []

    if as_json:
        payload = {
            "items": [_to_dict(d) for d in items],
            "total": result.total,
        }
        console.print_json(json.dumps(payload, default=str))
        return

    if not items:
        console.print("[dim]No items.[/dim]")
        return

    _print_table(items, title=title)
    console.print(f"\n[dim]Showing {len(items)} of {result.total}[/dim]")


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*("" if v is None else str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
