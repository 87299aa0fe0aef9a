"""
CLI: ``connwatch secret`` -- credential cipher helpers.
"""

from __future__ import annotations

import typer

from connwatch.cli.utils import console, err_console, load_cipher
from connwatch.core.errors import CredentialDecryptError
from connwatch.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("encrypt")
def encrypt(
    value: str = typer.Option(..., "--value", prompt=True, hide_input=True, help="Plaintext to encrypt"),
) -> None:
    """Encrypt a credential with CONNWATCH_SECRET_KEY."""
    cipher = load_cipher(get_settings(), required=True)
    console.print(cipher.encrypt(value), markup=False)


@app.command("check")
def check(
    blob: str = typer.Argument(..., help="Stored credential blob"),
) -> None:
    """Verify that a stored blob decrypts with the current key."""
    cipher = load_cipher(get_settings(), required=True)
    try:
        cipher.decrypt(blob)
    except CredentialDecryptError as e:
        err_console.print(f"[bold red]Error[/bold red] (CONFIG): {e.message}")
        raise typer.Exit(code=1) from e
    console.print("[green]OK[/green]: blob decrypts with the configured key")
