"""Domain models, errors and the server registry."""

from .errors import (
    CommandFailed,
    ConfigError,
    DependencyMissing,
    MysqlDumperError,
    ProfileNotFound,
    ResourceError,
    TunnelEstablishFailed,
    ValidationError,
)
from .models import (
    DumpOptions,
    DumpResult,
    Endpoint,
    ImportOptions,
    ImportResult,
    ListingResult,
    ProbeResult,
    ServerProfile,
    SshTunnelConfig,
    check_import_file,
)

__all__ = [
    "MysqlDumperError",
    "ConfigError",
    "DependencyMissing",
    "ResourceError",
    "TunnelEstablishFailed",
    "CommandFailed",
    "ValidationError",
    "ProfileNotFound",
    "ServerProfile",
    "SshTunnelConfig",
    "Endpoint",
    "DumpOptions",
    "ImportOptions",
    "DumpResult",
    "ImportResult",
    "ProbeResult",
    "ListingResult",
    "check_import_file",
]
