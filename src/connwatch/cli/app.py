"""
Root Typer application for the connwatch CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from connwatch import __version__

app = Typer(
    name="connwatch",
    help="connwatch: scheduled connectivity health checks for databases and APIs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("connwatch")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"connwatch {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """connwatch CLI: manage schedules and connections, run the scheduler."""


# ── Sub-command registration ─────────────────────────────────────────────

from connwatch.cli.application import app as application_app  # noqa: E402
from connwatch.cli.connection import app as connection_app  # noqa: E402
from connwatch.cli.cron import app as cron_app  # noqa: E402
from connwatch.cli.schedule import app as schedule_app  # noqa: E402
from connwatch.cli.scheduler import run, tick  # noqa: E402
from connwatch.cli.secret import app as secret_app  # noqa: E402

app.command("run")(run)
app.command("tick")(tick)
app.add_typer(application_app, name="application", help="Application management.")
app.add_typer(connection_app, name="connection", help="Connection management and on-demand tests.")
app.add_typer(schedule_app, name="schedule", help="Health-check schedule management.")
app.add_typer(cron_app, name="cron", help="Cron expression helpers.")
app.add_typer(secret_app, name="secret", help="Credential encryption helpers.")
