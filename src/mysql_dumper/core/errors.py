"""Error taxonomy for mysql-dumper operations.

Every error carries a human-readable ``message`` and optional ``details``
(usually captured subprocess output) so callers can show both without
inspecting the exception type.
"""

from __future__ import annotations


class MysqlDumperError(Exception):
    """Base class for all mysql-dumper failures."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigError(MysqlDumperError):
    """Raised when an operation needs configuration the profile does not have."""


class DependencyMissing(MysqlDumperError):
    """Raised when a required external binary cannot be found on PATH."""

    def __init__(self, binary: str, hint: str | None = None):
        self.binary = binary
        message = f"{binary} binary not found."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class ResourceError(MysqlDumperError):
    """Raised when a local resource (port, subprocess) cannot be obtained."""


class TunnelEstablishFailed(MysqlDumperError):
    """Raised when the SSH forward exits or never becomes ready."""

    def __init__(self, stderr: str, reason: str | None = None):
        self.stderr = stderr
        message = reason or f"SSH tunnel failed to establish: {stderr.strip()}"
        super().__init__(message, details=stderr or None)


class CommandFailed(MysqlDumperError):
    """Raised when an external client exits with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str):
        self.returncode = returncode
        self.output = output
        super().__init__(f"{command} command failed: {output}", details=output)


class ValidationError(MysqlDumperError, ValueError):
    """Raised when operation options are malformed at construction time."""


class ProfileNotFound(MysqlDumperError):
    """Raised when a named server profile does not exist in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Server '{name}' not found.")


__all__ = [
    "MysqlDumperError",
    "ConfigError",
    "DependencyMissing",
    "ResourceError",
    "TunnelEstablishFailed",
    "CommandFailed",
    "ValidationError",
    "ProfileNotFound",
]
