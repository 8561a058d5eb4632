"""Main CLI application module.

This module provides the main entry point for the mysql-dumper CLI.

Command Groups:
- server: Server profile management (list, add, edit, remove, test, ...)
- dump: Dump a database to a .sql or .sql.gz file
- import: Import a .sql or .sql.gz file into a database
"""

import sys
from typing import Annotated

import typer
from loguru import logger

from .commands import dump, import_db, server_app

LOG_FORMAT = "<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>"

app = typer.Typer(
    help="🐬 mysql-dumper - MySQL dump and import tool with SSH tunnel support",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(server_app, name="server")
app.command("dump")(dump)
app.command("import")(import_db)


def configure_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink.

    Only warnings reach the terminal unless ``verbose`` is set.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING", format=LOG_FORMAT)


@app.callback()
def root(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
) -> None:
    configure_logging(verbose)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
