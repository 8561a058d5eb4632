"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass

import click
import typer

from mysql_dumper.cli.shared.console import CLIConsole, console
from mysql_dumper.core.errors import ConfigError
from mysql_dumper.core.registry import ServerRegistry
from mysql_dumper.infra.mysql import ConnectionProber, MysqlDumper, MysqlImporter
from mysql_dumper.infra.shell import CommandRunner
from mysql_dumper.infra.ssh import SshTunnelManager
from mysql_dumper.runtime.config import ConfigData, load_config


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    config: ConfigData
    registry: ServerRegistry
    tunnels: SshTunnelManager
    runner: CommandRunner
    dumper: MysqlDumper
    importer: MysqlImporter
    prober: ConnectionProber


def build_cli_context(config: ConfigData | None = None) -> CLIContext:
    """Build a fresh CLIContext from config.yaml (or ``config``)."""
    if config is None:
        try:
            config = load_config()
        except ValueError as e:
            raise ConfigError(f"Could not load configuration: {e}") from e

    tunnels = SshTunnelManager(config.tunnel, console=console)
    runner = CommandRunner()

    return CLIContext(
        console=console,
        config=config,
        registry=ServerRegistry(config.registry_path),
        tunnels=tunnels,
        runner=runner,
        dumper=MysqlDumper(tunnels, runner, config.execution),
        importer=MysqlImporter(tunnels, runner, config.execution),
        prober=ConnectionProber(tunnels, config.execution),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext stored on the root Typer context, building it once."""
    context = ctx or click.get_current_context(silent=True)
    if context is None:
        return build_cli_context()

    root = context.find_root()
    if not isinstance(root.obj, CLIContext):
        root.obj = build_cli_context()
    return root.obj
