"""
CLI: ``connwatch cron`` -- inspect cron expressions without touching the store.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import typer

from connwatch.cli.utils import console, err_console
from connwatch.core.scheduling import CronPlanner

app = typer.Typer(no_args_is_help=True)


def _parse_instant(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    try:
        instant = datetime.fromisoformat(value)
    except ValueError:
        err_console.print(f"[bold red]Error[/bold red] (VALIDATION_FAILED): not an ISO-8601 instant: {value}")
        raise typer.Exit(code=1) from None
    return instant if instant.tzinfo else instant.replace(tzinfo=UTC)


@app.command("validate")
def validate(
    expression: str = typer.Argument(..., help="Cron expression, quoted"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check an expression and show its description and next run."""
    result = CronPlanner().validate(expression)
    if json_out:
        console.print_json(json.dumps(result.to_dict()))
    elif result.valid:
        console.print(f"[green]Valid[/green]: {result.description}")
        console.print(f"  [cyan]next_run[/cyan]: {result.next_run.isoformat() if result.next_run else '-'}")
    else:
        err_console.print(f"[bold red]Invalid[/bold red]: {result.error}")
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("next")
def next_runs(
    expression: str = typer.Argument(..., help="Cron expression, quoted"),
    count: int = typer.Option(5, "--count", "-n", min=1, max=100),
    from_instant: str | None = typer.Option(None, "--from", help="ISO-8601 start (default: now, UTC)"),
) -> None:
    """List the next COUNT occurrences."""
    planner = CronPlanner()
    error = planner.parse_error(expression)
    if error is not None:
        err_console.print(f"[bold red]Error[/bold red] (VALIDATION_FAILED): Invalid cron expression: {error}")
        raise typer.Exit(code=1)

    instant = _parse_instant(from_instant)
    for _ in range(count):
        following = planner.next_run(expression, instant)
        if following is None:
            break
        console.print(following.isoformat())
        instant = following
