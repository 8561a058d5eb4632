"""External command execution."""

from .runner import SHELL, CommandRunner
from .types import CommandResult

__all__ = ["CommandRunner", "CommandResult", "SHELL"]
