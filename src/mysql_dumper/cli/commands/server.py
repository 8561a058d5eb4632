"""``mysql-dumper server``: manage saved MySQL server profiles."""

from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.table import Table

from mysql_dumper.cli.context import CLIContext, get_cli_context
from mysql_dumper.cli.shared.console import with_error_handling
from mysql_dumper.cli.shared.secrets import get_password
from mysql_dumper.core.models import (
    DEFAULT_CHARSET,
    DEFAULT_COLLATION,
    DEFAULT_MYSQL_PORT,
    DEFAULT_SSH_PORT,
)

# ---------------------------------------------------------------------------
# Typer App
# ---------------------------------------------------------------------------

server_app = typer.Typer(
    name="server",
    help="Manage MySQL server configurations.",
    invoke_without_command=True,
)

MENU = (
    ("List servers", "list"),
    ("Add server", "add"),
    ("Edit server", "edit"),
    ("Delete server", "remove"),
    ("Test connection", "test"),
    ("Set default server", "default"),
)


def _port_problem(value: str, label: str = "Port") -> str | None:
    if not value.isdigit():
        return f"{label} must be a number"
    if not 1 <= int(value) <= 65535:
        return f"{label} must be between 1 and 65535"
    return None


def _pick_name(cli: CLIContext, name: str | None, title: str) -> str:
    """Return ``name`` or prompt for one of the configured servers."""
    if name:
        return name

    names = cli.registry.names()
    if not names:
        cli.console.error("No servers configured.")
        raise typer.Exit(1)

    picked = cli.console.select(title, names)
    if picked is None:
        raise typer.Exit(0)
    return picked


def _report_errors(cli: CLIContext, errors: dict[str, str]) -> None:
    if errors:
        cli.console.bullets("[red]Invalid server configuration:[/red]", list(errors.values()))
        raise typer.Exit(1)


@server_app.callback()
def server_menu(ctx: typer.Context) -> None:
    """Manage MySQL server configurations.

    Without a subcommand, shows an interactive menu.
    """
    if ctx.invoked_subcommand is not None:
        return

    cli = get_cli_context(ctx)
    choice = cli.console.prompt_choice(
        "Server Management", [(label, "") for label, _ in MENU]
    )
    if choice == 0:
        return

    action = MENU[choice - 1][1]
    command = {
        "list": list_servers,
        "add": add,
        "edit": edit,
        "remove": remove,
        "test": test_connection,
        "default": set_default,
    }[action]
    command(ctx)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@server_app.command("list")
@with_error_handling
def list_servers(ctx: typer.Context) -> None:
    """List configured servers."""
    cli = get_cli_context(ctx)
    servers = cli.registry.all()

    if not servers:
        cli.console.info("No servers configured.")
        return

    table = Table(title="MySQL Servers")
    for column in ("Name", "Host", "Port", "Username", "Database", "SSH", "Default"):
        table.add_column(column)

    for profile in servers:
        table.add_row(
            profile.name,
            profile.host,
            str(profile.port),
            profile.username,
            profile.database or "-",
            f"{profile.ssh.username}@{profile.ssh.host}" if profile.ssh else "-",
            "✓" if profile.is_default else "",
        )
    cli.console.print(table)


@server_app.command()
@with_error_handling
def show(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
) -> None:
    """Show one server's settings (passwords hidden)."""
    cli = get_cli_context(ctx)
    name = _pick_name(cli, name, "Select server to show")
    data = cli.registry.export(name)

    table = Table(show_header=False, title=f"Server: {name}")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        if key == "ssh" and isinstance(value, dict):
            for ssh_key, ssh_value in value.items():
                table.add_row(f"ssh.{ssh_key}", str(ssh_value))
            continue
        table.add_row(key, str(value))
    cli.console.print(table)


@server_app.command()
@with_error_handling
def add(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Option("--name", "-n", help="Server name")] = None,
    host: Annotated[str, typer.Option("--host", "-H", help="MySQL host")] = "localhost",
    port: Annotated[int, typer.Option("--port", "-P", help="MySQL port")] = DEFAULT_MYSQL_PORT,
    username: Annotated[str, typer.Option("--username", "-u", help="MySQL user")] = "root",
    password: Annotated[
        str | None,
        typer.Option(
            "--password",
            "-p",
            help="MySQL password; ${ENV_VAR} placeholders are resolved on use",
        ),
    ] = None,
    database: Annotated[
        str | None, typer.Option("--database", "-d", help="Default database")
    ] = None,
    charset: Annotated[str, typer.Option("--charset")] = DEFAULT_CHARSET,
    collation: Annotated[str, typer.Option("--collation")] = DEFAULT_COLLATION,
    ssh_host: Annotated[
        str | None, typer.Option("--ssh-host", help="SSH jump host")
    ] = None,
    ssh_port: Annotated[int, typer.Option("--ssh-port")] = DEFAULT_SSH_PORT,
    ssh_username: Annotated[str | None, typer.Option("--ssh-username")] = None,
    ssh_password: Annotated[str | None, typer.Option("--ssh-password")] = None,
    ssh_key: Annotated[
        str | None, typer.Option("--ssh-key", help="Private key path for SSH")
    ] = None,
    default: Annotated[
        bool, typer.Option("--default", help="Make this the default server")
    ] = False,
) -> None:
    """Add a server.

    With --name every value comes from flags; otherwise each is prompted.
    """
    cli = get_cli_context(ctx)

    if name:
        data: dict[str, Any] = {
            "name": name,
            "host": host,
            "port": port,
            "username": username,
            "password": password,
            "database": database,
            "charset": charset,
            "collation": collation,
        }
        if ssh_host:
            data["ssh"] = {
                "host": ssh_host,
                "port": ssh_port,
                "username": ssh_username,
                "password": ssh_password,
                "key_path": ssh_key,
            }
        if cli.registry.exists(name):
            cli.console.error("A server with this name already exists")
            raise typer.Exit(1)
    else:
        data = _prompt_new_server(cli)

    _report_errors(cli, cli.registry.validate(data))
    profile = cli.registry.create(data)
    cli.console.ok(f"Server '{profile.name}' created successfully!")

    if (
        default
        or cli.registry.count() == 1
        or (not name and cli.console.confirm("Set as default server?"))
    ):
        cli.registry.set_default(profile.name)
        cli.console.info("Set as default server.")


def _prompt_new_server(cli: CLIContext) -> dict[str, Any]:
    console = cli.console
    console.print_header("Add New Server")

    data: dict[str, Any] = {
        "name": console.prompt_text(
            "Server name",
            validate=lambda v: "A server with this name already exists"
            if cli.registry.exists(v)
            else None,
        ),
        "host": console.prompt_text("Host", default="localhost"),
        "port": int(
            console.prompt_text("Port", default=str(DEFAULT_MYSQL_PORT), validate=_port_problem)
        ),
        "username": console.prompt_text("Username", default="root"),
        "password": get_password("Password (optional): ", required=False),
        "database": console.prompt_text("Database (optional)", required=False) or None,
        "charset": console.prompt_text("Charset", default=DEFAULT_CHARSET),
        "collation": console.prompt_text("Collation", default=DEFAULT_COLLATION),
    }

    if console.confirm("Use SSH tunnel?"):
        data["ssh"] = _prompt_ssh(cli)
    return data


def _prompt_ssh(cli: CLIContext, current: dict[str, Any] | None = None) -> dict[str, Any]:
    console = cli.console
    current = current or {}

    ssh: dict[str, Any] = {
        "host": console.prompt_text("SSH Host", default=current.get("host")),
        "port": int(
            console.prompt_text(
                "SSH Port",
                default=str(current.get("port", DEFAULT_SSH_PORT)),
                validate=lambda v: _port_problem(v, "SSH port"),
            )
        ),
        "username": console.prompt_text("SSH Username", default=current.get("username")),
    }

    method = console.prompt_choice(
        "SSH Authentication",
        [("Password", "Requires sshpass"), ("Key", "Private key file")],
        default=2 if current.get("key_path") else 1,
        cancel_option=False,
    )
    if method == 1:
        ssh["password"] = get_password("SSH Password: ")
    else:
        ssh["key_path"] = console.prompt_text(
            "SSH Key Path", default=current.get("key_path") or "~/.ssh/id_rsa"
        )
    return ssh


@server_app.command()
@with_error_handling
def edit(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
    new_name: Annotated[str | None, typer.Option("--name", "-n", help="Rename the server")] = None,
    host: Annotated[str | None, typer.Option("--host", "-H")] = None,
    port: Annotated[int | None, typer.Option("--port", "-P")] = None,
    username: Annotated[str | None, typer.Option("--username", "-u")] = None,
    password: Annotated[str | None, typer.Option("--password", "-p")] = None,
    database: Annotated[str | None, typer.Option("--database", "-d")] = None,
    charset: Annotated[str | None, typer.Option("--charset")] = None,
    collation: Annotated[str | None, typer.Option("--collation")] = None,
    no_ssh: Annotated[
        bool, typer.Option("--no-ssh", help="Remove the SSH tunnel configuration")
    ] = False,
) -> None:
    """Edit a server.

    Any field flag switches to direct mode and changes only those fields;
    otherwise every field is prompted with its current value.
    """
    cli = get_cli_context(ctx)
    name = _pick_name(cli, name, "Select server to edit")
    current = cli.registry.export(name, include_sensitive=True)

    changes: dict[str, Any] = {
        key: value
        for key, value in {
            "name": new_name,
            "host": host,
            "port": port,
            "username": username,
            "password": password,
            "database": database,
            "charset": charset,
            "collation": collation,
        }.items()
        if value is not None
    }
    if no_ssh:
        changes["ssh"] = None

    if not changes:
        changes = _prompt_changes(cli, name, current)

    profile = cli.registry.update(name, changes)
    cli.console.ok(f"Server '{profile.name}' updated successfully!")


def _prompt_changes(cli: CLIContext, name: str, current: dict[str, Any]) -> dict[str, Any]:
    console = cli.console
    console.print_header(f"Edit Server: {name}")

    changes: dict[str, Any] = {
        "name": console.prompt_text(
            "Server name",
            default=name,
            validate=lambda v: "A server with this name already exists"
            if v != name and cli.registry.exists(v)
            else None,
        ),
        "host": console.prompt_text("Host", default=current.get("host")),
        "port": int(
            console.prompt_text(
                "Port", default=str(current.get("port", DEFAULT_MYSQL_PORT)), validate=_port_problem
            )
        ),
        "username": console.prompt_text("Username", default=current.get("username")),
        "database": console.prompt_text(
            "Database (optional)", default=current.get("database") or "", required=False
        )
        or None,
        "charset": console.prompt_text(
            "Charset", default=current.get("charset", DEFAULT_CHARSET)
        ),
        "collation": console.prompt_text(
            "Collation", default=current.get("collation", DEFAULT_COLLATION)
        ),
    }

    if console.confirm("Update password?"):
        changes["password"] = get_password("Password (optional): ", required=False)

    has_ssh = bool(current.get("ssh"))
    if console.confirm("Use SSH tunnel?", default=has_ssh):
        if not has_ssh or console.confirm("Update SSH settings?"):
            changes["ssh"] = _prompt_ssh(cli, current.get("ssh"))
    elif has_ssh:
        changes["ssh"] = None
    return changes


@server_app.command()
@with_error_handling
def remove(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation")] = False,
) -> None:
    """Delete a server."""
    cli = get_cli_context(ctx)
    name = _pick_name(cli, name, "Select server to delete")
    profile = cli.registry.get(name)

    if not force and not cli.console.confirm(
        f"Are you sure you want to delete '{profile.name}'?"
    ):
        cli.console.info("Deletion cancelled.")
        return

    cli.registry.delete(profile.name)
    cli.console.ok(f"Server '{profile.name}' deleted successfully!")


@server_app.command("default")
@with_error_handling
def set_default(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
) -> None:
    """Set the default server."""
    cli = get_cli_context(ctx)
    name = _pick_name(cli, name, "Select default server")
    profile = cli.registry.set_default(name)
    cli.console.ok(f"'{profile.name}' is now the default server.")


@server_app.command("test")
@with_error_handling
def test_connection(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
) -> None:
    """Test the connection to a server."""
    cli = get_cli_context(ctx)
    name = _pick_name(cli, name, "Select server to test")
    profile = cli.registry.get(name)

    cli.console.info(f"Testing connection to '{profile.name}'...")
    result = cli.prober.test(profile)

    if not result.success:
        cli.console.error(result.message)
        raise typer.Exit(1)

    cli.console.ok(result.message)
    if "duration_ms" in result.details:
        cli.console.print(f"  Duration: {result.details['duration_ms']}ms")
    if result.details.get("server_version"):
        cli.console.print(f"  Server Version: {result.details['server_version']}")


@server_app.command()
@with_error_handling
def duplicate(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server to copy")],
    new_name: Annotated[str, typer.Argument(help="Name of the copy")],
) -> None:
    """Copy a server, credentials included, under a new name."""
    cli = get_cli_context(ctx)
    profile = cli.registry.duplicate(name, new_name)
    cli.console.ok(f"Server '{name}' duplicated as '{profile.name}'.")


@server_app.command()
@with_error_handling
def databases(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Argument(help="Server name")] = None,
) -> None:
    """List the databases on a server."""
    cli = get_cli_context(ctx)
    profile = cli.registry.get(_pick_name(cli, name, "Select server"))

    listing = cli.prober.fetch_databases(profile)
    if not listing.ok:
        cli.console.error(f"Could not list databases: {listing.error}")
        raise typer.Exit(1)
    if not listing.items:
        cli.console.info("No databases found.")
        return
    cli.console.bullets(f"Databases on '{profile.name}':", listing.items)


@server_app.command()
@with_error_handling
def tables(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server name")],
    database: Annotated[str, typer.Argument(help="Database name")],
) -> None:
    """List the tables in a database."""
    cli = get_cli_context(ctx)
    profile = cli.registry.get(name)

    listing = cli.prober.fetch_tables(profile, database)
    if not listing.ok:
        cli.console.error(f"Could not list tables: {listing.error}")
        raise typer.Exit(1)
    if not listing.items:
        cli.console.info(f"No tables found in database '{database}'.")
        return
    cli.console.bullets(f"Tables in '{database}':", listing.items)


@server_app.command("export")
@with_error_handling
def export_server(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Server name")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write YAML here instead of stdout")
    ] = None,
    include_sensitive: Annotated[
        bool,
        typer.Option("--include-sensitive", help="Include passwords and the SSH key path"),
    ] = False,
) -> None:
    """Export a server as YAML."""
    cli = get_cli_context(ctx)
    data = cli.registry.export(name, include_sensitive=include_sensitive)
    text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)

    if output is None:
        typer.echo(text, nl=False)
        return

    output.write_text(text)
    if include_sensitive:
        output.chmod(0o600)
    cli.console.ok(f"Exported '{name}' to {output}")


@server_app.command("import")
@with_error_handling
def import_server(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="YAML file written by 'server export'")],
) -> None:
    """Add a server from an exported YAML file."""
    cli = get_cli_context(ctx)
    try:
        data = yaml.safe_load(file.read_text())
    except (OSError, yaml.YAMLError) as e:
        cli.console.error(f"Could not read {file}: {e}")
        raise typer.Exit(1) from None

    if not isinstance(data, dict):
        cli.console.error(f"{file} does not contain a server mapping.")
        raise typer.Exit(1)

    data.pop("is_default", None)
    profile = cli.registry.import_profile(data)
    cli.console.ok(f"Server '{profile.name}' imported successfully!")
