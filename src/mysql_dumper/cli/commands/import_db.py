"""``mysql-dumper import``: load a .sql or .sql.gz file into a database."""

from pathlib import Path
from typing import Annotated

import typer

from mysql_dumper.cli.commands.shared import (
    choose_database,
    ensure_connection,
    ensure_database_exists,
    find_server,
    select_server,
    server_label,
)
from mysql_dumper.cli.context import CLIContext, get_cli_context
from mysql_dumper.cli.shared.console import with_error_handling
from mysql_dumper.cli.shared.validation import large_file_warning
from mysql_dumper.core.errors import ValidationError
from mysql_dumper.core.models import ImportOptions, ServerProfile, check_import_file

EXAMPLE = "Example: mysql-dumper import --server myserver --database mydb --file dump.sql"

IMPORT_TIPS = (
    "Verify mysql is installed: which mysql",
    "Check MySQL server logs for errors",
    "Ensure sufficient permissions to write to database",
    "Verify the SQL file is valid and not corrupted",
)


@with_error_handling
def import_db(
    ctx: typer.Context,
    server: Annotated[
        str | None, typer.Option("--server", "-s", help="Server name to import to")
    ] = None,
    database: Annotated[
        str | None, typer.Option("--database", "-d", help="Database name to import to")
    ] = None,
    file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Path to SQL file (.sql or .sql.gz)"),
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Skip confirmation prompts")
    ] = False,
) -> None:
    """Import a SQL file into a MySQL database.

    Runs in direct mode when any of --server, --database or --file is
    given, otherwise prompts for every choice.
    """
    cli = get_cli_context(ctx)

    if server or database or file:
        profile, options = _direct_mode(
            cli, server=server, database=database, file=file, force=force
        )
    else:
        profile, options = _interactive_mode(cli)

    _execute(cli, profile, options)


def _check_file(cli: CLIContext, file: str) -> Path:
    try:
        return check_import_file(file)
    except ValidationError as e:
        cli.console.error(e.message)
        raise typer.Exit(1) from None


def _require(cli: CLIContext, value: str | None, flag: str, label: str) -> str:
    if not value:
        cli.console.error(f"{label} is required. Use {flag} option.")
        cli.console.print(EXAMPLE)
        raise typer.Exit(1)
    return value


def _direct_mode(
    cli: CLIContext,
    *,
    server: str | None,
    database: str | None,
    file: str | None,
    force: bool,
) -> tuple[ServerProfile, ImportOptions]:
    console = cli.console

    server = _require(cli, server, "--server", "Server name")
    database = _require(cli, database, "--database", "Database name")
    file = _require(cli, file, "--file", "File path")

    # Reject bad files before opening any connection
    file_path = _check_file(cli, file)

    profile = find_server(cli, server)
    ensure_connection(cli, profile)
    ensure_database_exists(cli, profile, database)

    if not force:
        console.warn(
            "This will import data into the database. Existing data may be affected."
        )
        console.print("Use --force to skip this warning.")
        if not console.confirm("Continue with import?"):
            console.info("Import cancelled.")
            raise typer.Exit(0)

    return profile, _build_options(cli, database, file_path, force)


def _interactive_mode(cli: CLIContext) -> tuple[ServerProfile, ImportOptions]:
    console = cli.console

    profile = select_server(cli)
    ensure_connection(cli, profile)
    database = choose_database(cli, profile, "Select database to import to")

    file = console.prompt_text(
        "SQL file path (.sql or .sql.gz)", validate=_file_problem
    )
    file_path = _check_file(cli, file)

    console.print("\nImport Summary:")
    console.print(f"  Server: {server_label(profile)}")
    console.print(f"  Database: {database}")
    console.print(f"  File: {file_path}\n")

    if not console.confirm("Proceed with import?"):
        console.info("Import cancelled.")
        raise typer.Exit(0)

    return profile, _build_options(cli, database, file_path, False)


def _file_problem(value: str) -> str | None:
    try:
        check_import_file(value)
    except ValidationError as e:
        return e.message
    return None


def _build_options(
    cli: CLIContext, database: str, file_path: Path, force: bool
) -> ImportOptions:
    try:
        return ImportOptions(database=database, file_path=file_path, force=force)
    except ValidationError as e:
        cli.console.error(f"Invalid import options: {e.message}")
        raise typer.Exit(1) from None


def _execute(cli: CLIContext, profile: ServerProfile, options: ImportOptions) -> None:
    console = cli.console

    warning = large_file_warning(
        options.file_path, cli.config.import_.large_file_warning_mb
    )
    if warning:
        console.warn(warning)

    console.info("Starting database import...")
    with console.status(f"Importing into {options.database}..."):
        result = cli.importer.import_database(profile, options)

    if not result.success:
        console.error(f"Import failed: {result.error}")
        console.bullets("\nTroubleshooting tips:", IMPORT_TIPS)
        raise typer.Exit(1)

    console.ok("Import completed successfully!")
    console.print(f"  Database: {result.database}")
    console.print(f"  File: {result.file_path}")
    console.print(f"  Duration: {round(result.duration, 2)}s")
