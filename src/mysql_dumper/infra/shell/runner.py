"""Command runner for executing external client binaries.

Provides the single place where mysql-dumper shells out, so binary
resolution, output capture and deadlines behave the same for every
operation.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path

from loguru import logger

from mysql_dumper.core.errors import DependencyMissing

from .types import CommandResult

SHELL = "bash"

Which = Callable[[str], str | None]


class CommandRunner:
    """Low-level command executor with consistent result handling.

    Shell pipelines run under ``bash -o pipefail`` so a failing
    ``mysqldump`` is not hidden behind a succeeding ``gzip``.
    """

    def __init__(self, cwd: Path | None = None, which: Which = shutil.which) -> None:
        """Initialize the command runner.

        Args:
            cwd: Working directory for commands (defaults to the process cwd)
            which: Binary resolver, ``shutil.which`` unless overridden
        """
        self.cwd = cwd
        self._which = which

    def which(self, binary: str) -> str | None:
        """Resolve a binary on PATH."""
        return self._which(binary)

    def require(self, *binaries: str, hint: str | None = None) -> None:
        """Ensure every binary is resolvable.

        Raises:
            DependencyMissing: For the first binary that is not on PATH
        """
        for binary in binaries:
            if not self._which(binary):
                raise DependencyMissing(binary, hint)

    def run_shell(
        self,
        command: str,
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a shell pipeline with stdout and stderr merged.

        The shell runs in its own session so that, on timeout, the whole
        pipeline (not only bash) is killed.

        Args:
            command: Fully escaped shell command line
            env: Full environment for the child (inherits when None)
            timeout: Seconds before the shell is killed

        Returns:
            CommandResult whose ``stdout`` holds the merged output
        """
        process = subprocess.Popen(
            [SHELL, "-o", "pipefail", "-c", command],
            cwd=self.cwd,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            start_new_session=True,
        )
        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            _kill_process_group(process)
            output, _ = process.communicate()
            exc.output = output
            return _timed_out(exc, timeout)

        logger.debug(f"Shell command exited with status {process.returncode}")
        return CommandResult(
            success=process.returncode == 0,
            stdout=output or "",
            stderr="",
            returncode=process.returncode,
        )


def _kill_process_group(process: subprocess.Popen[str]) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError) as exc:
        logger.debug(f"Could not kill process group {process.pid}: {exc}")
        process.kill()


def _timed_out(exc: subprocess.TimeoutExpired, timeout: float | None) -> CommandResult:
    partial = exc.output
    if isinstance(partial, bytes):
        partial = partial.decode(errors="replace")
    message = f"Command timed out after {timeout:g}s" if timeout else "Command timed out"
    return CommandResult(
        success=False,
        stdout=partial or "",
        stderr=message,
        returncode=-1,
        timed_out=True,
    )
