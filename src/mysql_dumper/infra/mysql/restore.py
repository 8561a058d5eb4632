"""MySQL import functionality.

Streams a ``.sql`` or ``.sql.gz`` file into the mysql client, directly or
through an SSH tunnel.
"""

import time

from loguru import logger

from mysql_dumper.core.errors import CommandFailed, MysqlDumperError
from mysql_dumper.core.models import ImportOptions, ImportResult, ServerProfile
from mysql_dumper.infra.mysql.commands import (
    GUNZIP_BINARY,
    MYSQL_BINARY,
    build_import_command,
    is_gzipped,
    mask_command,
    with_import_redirection,
)
from mysql_dumper.infra.shell import SHELL, CommandRunner
from mysql_dumper.infra.ssh import SshTunnelManager
from mysql_dumper.runtime.config import ExecutionConfig

CLIENT_HINT = "Please ensure MySQL client is installed."


class MysqlImporter:
    """Imports SQL files with the mysql client."""

    def __init__(
        self,
        tunnels: SshTunnelManager,
        runner: CommandRunner | None = None,
        execution: ExecutionConfig | None = None,
    ) -> None:
        self._tunnels = tunnels
        self._runner = runner or CommandRunner()
        self._execution = execution or ExecutionConfig()

    def import_database(
        self, profile: ServerProfile, options: ImportOptions
    ) -> ImportResult:
        """Import ``options.file_path`` into ``options.database`` on ``profile``.

        Returns:
            ImportResult with duration, or the error and captured client output
        """
        start = time.perf_counter()
        file_path = str(options.file_path)

        try:
            self._runner.require(MYSQL_BINARY, hint=CLIENT_HINT)
            self._runner.require(SHELL)
            if is_gzipped(file_path):
                self._runner.require(GUNZIP_BINARY)

            with self._tunnels.tunnel_for(profile) as endpoint:
                command = build_import_command(profile, options, endpoint)
                logger.debug(f"Running {mask_command(command, profile)}")
                command = with_import_redirection(command, file_path)

                logger.info(f"Importing {file_path} into {options.database} on {profile.name}")
                result = self._runner.run_shell(
                    command, timeout=self._execution.command_timeout
                )

            if not result.success:
                raise CommandFailed(
                    f"{MYSQL_BINARY} import", result.returncode, result.output
                )

            duration = time.perf_counter() - start
            logger.info(f"Import finished in {duration:.2f}s")
            return ImportResult.succeeded(options.database, file_path, duration)

        except MysqlDumperError as e:
            logger.debug(f"Import into {options.database} failed: {e.message}")
            return ImportResult.failed(e.message, options.database, file_path)
        except OSError as e:
            return ImportResult.failed(str(e), options.database, file_path)
