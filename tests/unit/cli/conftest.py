from unittest.mock import Mock

import pytest
from loguru import logger
from typer.testing import CliRunner

from mysql_dumper.cli.context import CLIContext
from mysql_dumper.cli.shared.console import console
from mysql_dumper.infra.mysql import ConnectionProber, MysqlDumper, MysqlImporter
from mysql_dumper.infra.shell import CommandRunner
from mysql_dumper.infra.ssh import SshTunnelManager
from mysql_dumper.runtime.config import ConfigData, DumpConfig


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the stderr sink the root callback binds to the runner's stream."""
    yield
    logger.remove()


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def cli_context(registry):
    return CLIContext(
        console=console,
        config=ConfigData(registry_path=registry.path, dump=DumpConfig(min_free_disk_mb=0)),
        registry=registry,
        tunnels=Mock(spec=SshTunnelManager),
        runner=Mock(spec=CommandRunner),
        dumper=Mock(spec=MysqlDumper),
        importer=Mock(spec=MysqlImporter),
        prober=Mock(spec=ConnectionProber),
    )
