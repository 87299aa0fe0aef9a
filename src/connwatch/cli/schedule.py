"""
CLI: ``connwatch schedule`` -- health-check schedule commands.
"""

from __future__ import annotations

import typer

from connwatch.cli.utils import make_context, output_paged, output_result

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_schedules(
    enabled_only: bool = typer.Option(False, "--enabled-only", help="Hide disabled schedules"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List health-check schedules."""
    from connwatch.ops.schedules import list_schedules as _list

    ctx, _ = make_context(database)
    output_paged(_list(ctx, enabled_only=enabled_only), as_json=json_out, title="Schedules")


@app.command("show")
def show_schedule(
    schedule_id: int = typer.Argument(..., help="Schedule ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show schedule details."""
    from connwatch.ops.schedules import get_schedule as _get

    ctx, _ = make_context(database)
    output_result(_get(ctx, schedule_id), as_json=json_out, title=f"Schedule: {schedule_id}")


@app.command("set")
def set_schedule(
    application_id: int = typer.Argument(..., help="Application ID"),
    cron: str = typer.Option(..., "--cron", help="Five-field cron expression (UTC)"),
    enabled: bool = typer.Option(True, "--enabled/--disabled"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Create or replace an application's schedule."""
    from connwatch.ops.requests import UpsertScheduleRequest
    from connwatch.ops.schedules import upsert_schedule as _upsert

    ctx, _ = make_context(database, dry_run=dry_run)
    request = UpsertScheduleRequest(application_id=application_id, cron_expression=cron, enabled=enabled)
    output_result(_upsert(ctx, request), as_json=json_out, title="Schedule Saved")


@app.command("update")
def update_schedule(
    schedule_id: int = typer.Argument(..., help="Schedule ID"),
    cron: str | None = typer.Option(None, "--cron"),
    enabled: bool | None = typer.Option(None, "--enabled/--disabled"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Update an existing schedule."""
    from connwatch.ops.requests import UpdateScheduleRequest
    from connwatch.ops.schedules import update_schedule as _update

    ctx, _ = make_context(database)
    request = UpdateScheduleRequest(schedule_id=schedule_id, cron_expression=cron, enabled=enabled)
    output_result(_update(ctx, request), as_json=json_out, title="Schedule Updated")


@app.command("toggle")
def toggle_schedule(
    schedule_id: int = typer.Argument(..., help="Schedule ID"),
    enabled: bool = typer.Option(True, "--on/--off", help="Enable (default) or disable"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Enable or disable a schedule."""
    from connwatch.ops.schedules import toggle_schedule as _toggle

    ctx, _ = make_context(database)
    title = "Schedule Enabled" if enabled else "Schedule Disabled"
    output_result(_toggle(ctx, schedule_id, enabled), as_json=json_out, title=title)


@app.command("delete")
def delete_schedule(
    schedule_id: int = typer.Argument(..., help="Schedule ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete a schedule."""
    from connwatch.ops.schedules import delete_schedule as _delete

    ctx, _ = make_context(database)
    output_result(_delete(ctx, schedule_id), as_json=json_out, title="Schedule Deleted")
