"""``mysql-dumper dump``: export a database to a SQL file."""

from pathlib import Path
from typing import Annotated

import typer

from mysql_dumper.cli.commands.shared import (
    choose_database,
    ensure_connection,
    ensure_database_exists,
    find_server,
    select_server,
)
from mysql_dumper.cli.context import CLIContext, get_cli_context
from mysql_dumper.cli.shared.console import with_error_handling
from mysql_dumper.cli.shared.validation import (
    check_disk_space,
    parse_tables,
    resolve_output_path,
    validate_output_path,
    validate_table_names,
)
from mysql_dumper.core.errors import ValidationError
from mysql_dumper.core.models import DumpOptions, ServerProfile

EXAMPLE = "Example: mysql-dumper dump --server myserver --database mydb"

DUMP_TIPS = (
    "Verify mysqldump is installed: which mysqldump",
    "Check MySQL server logs for errors",
    "Ensure sufficient permissions to read database",
    "Verify there is enough disk space available",
)

EXPORT_TYPES = ("Schema and data", "Schema only", "Data only")


@with_error_handling
def dump(
    ctx: typer.Context,
    server: Annotated[
        str | None, typer.Option("--server", "-s", help="Server name to dump from")
    ] = None,
    database: Annotated[
        str | None, typer.Option("--database", "-d", help="Database name to dump")
    ] = None,
    tables: Annotated[
        str | None,
        typer.Option(
            "--tables", "-t", help="Comma-separated list of tables (empty = all tables)"
        ),
    ] = None,
    schema_only: Annotated[
        bool, typer.Option("--schema-only", help="Export only schema without data")
    ] = False,
    data_only: Annotated[
        bool, typer.Option("--data-only", help="Export only data without schema")
    ] = False,
    drop_tables: Annotated[
        bool, typer.Option("--drop-tables", help="Include DROP TABLE statements")
    ] = False,
    gzip: Annotated[
        bool, typer.Option("--gzip", help="Compress output with gzip")
    ] = False,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Output file path or directory"),
    ] = None,
) -> None:
    """Dump a MySQL database to a SQL file.

    Runs in direct mode when --server or --database is given, otherwise
    prompts for every choice.
    """
    cli = get_cli_context(ctx)

    if server or database:
        profile, options = _direct_mode(
            cli,
            server=server,
            database=database,
            tables=tables,
            schema_only=schema_only,
            data_only=data_only,
            drop_tables=drop_tables,
            gzip=gzip,
            output=output,
        )
    else:
        profile, options = _interactive_mode(cli)

    _execute(cli, profile, options)


def _direct_mode(
    cli: CLIContext,
    *,
    server: str | None,
    database: str | None,
    tables: str | None,
    schema_only: bool,
    data_only: bool,
    drop_tables: bool,
    gzip: bool,
    output: str | None,
) -> tuple[ServerProfile, DumpOptions]:
    console = cli.console

    if not server:
        console.error("Server name is required. Use --server option.")
        console.print(EXAMPLE)
        raise typer.Exit(1)
    if not database:
        console.error("Database name is required. Use --database option.")
        console.print(EXAMPLE)
        raise typer.Exit(1)
    if schema_only and data_only:
        console.error("Cannot use both --schema-only and --data-only flags.")
        raise typer.Exit(1)

    table_list = parse_tables(tables)
    if not validate_table_names(table_list):
        console.error(
            "Invalid table names detected. Table names can only contain "
            "alphanumeric characters, underscores, and hyphens, and cannot "
            "start with a hyphen."
        )
        raise typer.Exit(1)

    if output:
        problem = validate_output_path(output)
        if problem:
            console.error(problem)
            raise typer.Exit(1)

    profile = find_server(cli, server)
    ensure_connection(cli, profile)
    ensure_database_exists(cli, profile, database)

    if table_list:
        listing = cli.prober.fetch_tables(profile, database)
        if not listing.ok:
            console.error(f"Could not list tables: {listing.error}")
            raise typer.Exit(1)
        missing = [t for t in table_list if t not in listing.items]
        if missing:
            console.bullets(
                f"The following tables do not exist in database '{database}':", missing
            )
            console.bullets("\nAvailable tables:", listing.items)
            raise typer.Exit(1)

    output_path = resolve_output_path(output, database, gzip)
    if output_path and Path(output_path).is_file():
        console.warn(f"Output file already exists: {output_path}")
        console.warn("The file will be overwritten.")

    return profile, _build_options(
        cli,
        database=database,
        tables=table_list,
        schema_only=schema_only,
        data_only=data_only,
        drop_tables=drop_tables,
        gzip=gzip,
        output_path=output_path,
    )


def _interactive_mode(cli: CLIContext) -> tuple[ServerProfile, DumpOptions]:
    console = cli.console

    profile = select_server(cli)
    ensure_connection(cli, profile)
    database = choose_database(cli, profile)

    listing = cli.prober.fetch_tables(profile, database)
    if not listing.ok:
        console.error(f"Could not list tables: {listing.error}")
        raise typer.Exit(1)
    if not listing.items:
        console.error(f"No tables found in database '{database}'.")
        console.bullets(
            "Verify that:",
            [
                "The database contains tables",
                "The MySQL user has proper SELECT permissions",
            ],
        )
        raise typer.Exit(1)

    mode = console.prompt_choice(
        "Table selection",
        [("All tables", ""), ("Select specific tables", "")],
    )
    if mode == 0:
        raise typer.Exit(0)
    selected: list[str] = []
    if mode == 2:
        selected = console.select_many("Select tables", listing.items)
        if not selected:
            console.info("No tables selected. Dump cancelled.")
            raise typer.Exit(0)

    export_type = console.prompt_choice(
        "Export type", [(label, "") for label in EXPORT_TYPES]
    )
    if export_type == 0:
        raise typer.Exit(0)

    drop_tables = console.confirm("Include DROP TABLE statements?")
    gzip = console.confirm("Compress with gzip?")

    output = console.prompt_text(
        "Output path", default=str(Path.cwd()), validate=validate_output_path
    )
    output_path = resolve_output_path(output, database, gzip)

    if output_path and Path(output_path).is_file():
        console.warn(f"File already exists at: {output_path}")
        if not console.confirm("Overwrite existing file?"):
            console.info("Dump cancelled.")
            raise typer.Exit(0)

    return profile, _build_options(
        cli,
        database=database,
        tables=selected,
        schema_only=export_type == 2,
        data_only=export_type == 3,
        drop_tables=drop_tables,
        gzip=gzip,
        output_path=output_path,
    )


def _build_options(cli: CLIContext, **kwargs: object) -> DumpOptions:
    try:
        return DumpOptions(**kwargs)  # type: ignore[arg-type]
    except ValidationError as e:
        cli.console.error(f"Invalid dump options: {e.message}")
        raise typer.Exit(1) from None


def _execute(cli: CLIContext, profile: ServerProfile, options: DumpOptions) -> None:
    console = cli.console

    problem = check_disk_space(options.output_path, cli.config.dump.min_free_disk_mb)
    if problem:
        console.error(problem)
        raise typer.Exit(1)

    console.info("Starting database dump...")
    with console.status(f"Dumping {options.database}..."):
        result = cli.dumper.dump(profile, options)

    if not result.success:
        console.error(f"Dump failed: {result.error}")
        console.bullets("\nTroubleshooting tips:", DUMP_TIPS)
        raise typer.Exit(1)

    console.ok("Dump completed successfully!")
    console.print(f"  File: {result.file_path}")
    console.print(f"  Size: {result.format_file_size()}")
    console.print(f"  Duration: {round(result.duration, 2)}s")
