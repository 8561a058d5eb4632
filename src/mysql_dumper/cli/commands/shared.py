"""Server and database selection shared by the dump and import commands."""

import typer

from mysql_dumper.cli.context import CLIContext
from mysql_dumper.core.models import ServerProfile

CONNECTION_TIPS = (
    "Check if MySQL server is running",
    "Verify network connectivity and firewall rules",
    "Ensure SSH tunnel is configured correctly (if used)",
)


def server_label(profile: ServerProfile) -> str:
    return f"{profile.name} ({profile.address})"


def select_server(ctx: CLIContext) -> ServerProfile:
    """Prompt for one of the configured servers, default server preselected."""
    servers = ctx.registry.all()
    if not servers:
        ctx.console.error(
            "No servers configured. Please add a server first using: mysql-dumper server add"
        )
        raise typer.Exit(1)

    default = next((i for i, s in enumerate(servers, 1) if s.is_default), 1)
    labels = [server_label(s) for s in servers]
    label = ctx.console.select("Select server", labels, default=default)
    if label is None:
        raise typer.Exit(0)
    return servers[labels.index(label)]


def find_server(ctx: CLIContext, name: str) -> ServerProfile:
    """Look up ``name``, listing the available servers when it is missing."""
    profile = ctx.registry.find_by_name(name)
    if profile is not None:
        return profile

    ctx.console.error(f"Server '{name}' not found.")
    names = ctx.registry.names()
    if names:
        ctx.console.print(f"Available servers: {', '.join(names)}")
    else:
        ctx.console.print("No servers configured. Use: mysql-dumper server add")
    raise typer.Exit(1)


def ensure_connection(ctx: CLIContext, profile: ServerProfile) -> None:
    """Test the connection, printing troubleshooting tips and exiting on failure."""
    ctx.console.info(f"Testing connection to '{profile.name}'...")
    result = ctx.prober.test(profile)
    if result.success:
        return

    ctx.console.error(result.message)
    ctx.console.bullets(
        "\nTroubleshooting tips:",
        [
            f"Verify server credentials with: mysql-dumper server test {profile.name}",
            *CONNECTION_TIPS,
        ],
    )
    raise typer.Exit(1)


def fetch_databases(ctx: CLIContext, profile: ServerProfile) -> list[str]:
    """Database names, exiting when listing fails or finds nothing."""
    listing = ctx.prober.fetch_databases(profile)
    if not listing.ok:
        ctx.console.error(f"Could not list databases: {listing.error}")
        raise typer.Exit(1)
    if not listing.items:
        ctx.console.error("No databases found on this server.")
        ctx.console.bullets(
            "Verify that:",
            [
                "The MySQL user has proper permissions",
                "At least one database exists on the server",
            ],
        )
        raise typer.Exit(1)
    return listing.items


def preferred_first(databases: list[str], preferred: str | None) -> list[str]:
    """Move ``preferred`` (matched case-insensitively) to the front."""
    if not preferred:
        return databases
    for name in databases:
        if name.lower() == preferred.lower():
            return [name, *(db for db in databases if db != name)]
    return databases


def choose_database(
    ctx: CLIContext, profile: ServerProfile, title: str = "Select database"
) -> str:
    databases = preferred_first(fetch_databases(ctx, profile), profile.database)
    database = ctx.console.select(title, databases)
    if database is None:
        raise typer.Exit(0)
    return database


def ensure_database_exists(
    ctx: CLIContext, profile: ServerProfile, database: str
) -> None:
    """Exit with the list of available databases when ``database`` is missing."""
    listing = ctx.prober.fetch_databases(profile)
    if not listing.ok:
        ctx.console.error(f"Could not list databases: {listing.error}")
        raise typer.Exit(1)
    if database in listing.items:
        return

    ctx.console.error(f"Database '{database}' not found on server '{profile.name}'.")
    ctx.console.bullets("\nAvailable databases:", listing.items)
    raise typer.Exit(1)
