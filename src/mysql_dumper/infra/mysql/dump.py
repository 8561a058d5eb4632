"""MySQL dump functionality.

Runs mysqldump against a server profile, directly or through an SSH
tunnel, and reports the outcome as a ``DumpResult``.
"""

import time
from pathlib import Path

from loguru import logger

from mysql_dumper.core.errors import CommandFailed, MysqlDumperError
from mysql_dumper.core.models import DumpOptions, DumpResult, ServerProfile
from mysql_dumper.infra.mysql.commands import (
    GZIP_BINARY,
    MYSQLDUMP_BINARY,
    build_dump_command,
    generate_output_path,
    mask_command,
    with_dump_redirection,
)
from mysql_dumper.infra.shell import SHELL, CommandRunner
from mysql_dumper.infra.ssh import SshTunnelManager
from mysql_dumper.runtime.config import ExecutionConfig

CLIENT_HINT = "Please ensure MySQL client is installed."


class MysqlDumper:
    """Creates SQL dumps with mysqldump.

    Failures never escape as exceptions: they come back as
    ``DumpResult.failed`` with the client's output embedded.
    """

    def __init__(
        self,
        tunnels: SshTunnelManager,
        runner: CommandRunner | None = None,
        execution: ExecutionConfig | None = None,
    ) -> None:
        self._tunnels = tunnels
        self._runner = runner or CommandRunner()
        self._execution = execution or ExecutionConfig()

    def dump(self, profile: ServerProfile, options: DumpOptions) -> DumpResult:
        """Dump ``options.database`` from ``profile``.

        Args:
            profile: Server to dump from
            options: What to dump and where to write it

        Returns:
            DumpResult with file path, size and duration, or the error
        """
        start = time.perf_counter()

        try:
            self._runner.require(MYSQLDUMP_BINARY, hint=CLIENT_HINT)
            self._runner.require(SHELL)
            if options.gzip:
                self._runner.require(GZIP_BINARY)

            output_path = options.output_path or generate_output_path(
                options.database, options.gzip
            )

            with self._tunnels.tunnel_for(profile) as endpoint:
                command = build_dump_command(profile, options, endpoint)
                logger.debug(f"Running {mask_command(command, profile)}")
                command = with_dump_redirection(command, output_path, options.gzip)

                logger.info(f"Dumping {options.database} from {profile.name} to {output_path}")
                result = self._runner.run_shell(
                    command, timeout=self._execution.command_timeout
                )

            if not result.success:
                raise CommandFailed(MYSQLDUMP_BINARY, result.returncode, result.output)

            path = Path(output_path)
            if not path.exists():
                return DumpResult.failed(f"Dump file was not created at: {output_path}")

            file_size = path.stat().st_size
            duration = time.perf_counter() - start
            logger.info(f"Dump finished: {path} ({file_size} bytes, {duration:.2f}s)")
            return DumpResult.succeeded(str(path), file_size, duration)

        except MysqlDumperError as e:
            logger.debug(f"Dump of {options.database} failed: {e.message}")
            return DumpResult.failed(e.message)
        except OSError as e:
            return DumpResult.failed(str(e))
