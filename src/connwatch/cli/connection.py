"""
CLI: ``connwatch connection`` -- register and test connections.
"""

from __future__ import annotations

import typer

from connwatch.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command("add")
def add_connection(
    application_id: int = typer.Argument(..., help="Owning application ID"),
    name: str = typer.Argument(..., help="Connection name"),
    kind: str = typer.Option(..., "--kind", "-k", help="sqlserver, postgresql, mysql, oracle, sqlite, rest_api, github_api..."),
    server: str | None = typer.Option(None, "--server"),
    port: int | None = typer.Option(None, "--port"),
    database_name: str | None = typer.Option(None, "--db-name", help="Database name (file path for SQLite)"),
    username: str | None = typer.Option(None, "--username", "-u"),
    password: str | None = typer.Option(None, "--password", envvar="CONNWATCH_CONNECTION_PASSWORD"),
    connection_string: str | None = typer.Option(None, "--connection-string"),
    api_base_url: str | None = typer.Option(None, "--api-url"),
    api_key: str | None = typer.Option(None, "--api-key", envvar="CONNWATCH_CONNECTION_API_KEY"),
    github_token: str | None = typer.Option(None, "--github-token", envvar="CONNWATCH_GITHUB_TOKEN"),
    inactive: bool = typer.Option(False, "--inactive", help="Exclude from scheduled runs"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Register a connection. Credentials are encrypted before storage."""
    from connwatch.ops.connections import create_connection
    from connwatch.ops.requests import CreateConnectionRequest

    ctx, _ = make_context(database, dry_run=dry_run, with_probes=True)
    request = CreateConnectionRequest(
        application_id=application_id,
        name=name,
        kind=kind,
        server=server,
        port=port,
        database=database_name,
        username=username,
        password=password,
        connection_string=connection_string,
        api_base_url=api_base_url,
        api_key=api_key,
        github_token=github_token,
        is_active=not inactive,
    )
    output_result(create_connection(ctx, request), as_json=json_out, title="Connection Created")


@app.command("list")
def list_connections(
    application_id: int = typer.Argument(..., help="Application ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List an application's connections and their last status."""
    from connwatch.ops.applications import list_connections as _list

    ctx, _ = make_context(database)
    output_result(_list(ctx, application_id), as_json=json_out, title="Connections")


@app.command("test")
def test_connection(
    connection_id: int = typer.Argument(..., help="Connection ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Probe a connection now and record its status."""
    from connwatch.ops.connections import test_connection_now

    ctx, _ = make_context(database, with_probes=True)
    result = test_connection_now(ctx, connection_id)
    output_result(result, as_json=json_out, title=f"Connection Test: {connection_id}")
    if result.data is not None and not result.data.success:
        raise typer.Exit(code=2)


@app.command("preview")
def preview_connection_string(
    connection_id: int = typer.Argument(..., help="Connection ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Show the connection string with the password masked."""
    from connwatch.ops.connections import preview_connection_string as _preview

    ctx, _ = make_context(database)
    output_result(_preview(ctx, connection_id), title="Connection String")
