"""Result types for shell command execution."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CommandResult:
    """Outcome of an external command.

    Attributes:
        success: Whether the command exited with status 0
        stdout: Captured standard output (stderr merged in when requested)
        stderr: Captured standard error, empty when merged
        returncode: Process exit status
        timed_out: Whether the command was killed at its deadline
    """

    success: bool
    stdout: str
    stderr: str
    returncode: int
    timed_out: bool = False

    @property
    def output(self) -> str:
        """Combined output, stripped of surrounding whitespace."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part).strip()
