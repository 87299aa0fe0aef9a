"""connwatch command-line interface (Typer + Rich)."""
