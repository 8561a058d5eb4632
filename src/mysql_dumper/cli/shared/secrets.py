"""Password prompts for interactive commands."""

import getpass

import typer

from mysql_dumper.cli.shared.console import console


def get_password(prompt: str, *, required: bool = True) -> str | None:
    """Read a password without echo.

    A blank answer returns None when ``required`` is False and exits with
    status 1 otherwise. Store ``${VAR}`` placeholders with ``--password``
    instead when the secret should not live in servers.yaml.
    """
    try:
        password = getpass.getpass(prompt)
    except (EOFError, KeyboardInterrupt):
        console.print("\n[dim]Cancelled.[/dim]")
        raise typer.Exit(130) from None

    if password:
        return password
    if required:
        console.error("A password is required.")
        raise typer.Exit(1)
    return None
