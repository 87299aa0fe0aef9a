"""
CLI: ``connwatch application`` -- manage applications.
"""

from __future__ import annotations

import typer

from connwatch.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main() -> None:
    """Manage applications."""


@app.command("add")
def add_application(
    name: str = typer.Argument(..., help="Application name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Create an application to attach connections and a schedule to."""
    from connwatch.ops.applications import create_application

    ctx, _ = make_context(database)
    output_result(create_application(ctx, name), as_json=json_out, title="Application Created")
