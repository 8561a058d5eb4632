"""Typed configuration models for mysql-dumper."""

from pathlib import Path

from pydantic import BaseModel, Field

from mysql_dumper.utils.paths import get_config_dir


class TunnelConfig(BaseModel):
    """SSH tunnel behaviour.

    ``strict_host_key_checking`` defaults to False so tunnels work against
    hosts that were never added to known_hosts. This trades host-key pinning
    for unattended operation; set it to True (optionally with
    ``known_hosts_file``) to have ssh verify the jump host.
    """

    settle_timeout: float = Field(default=10.0, gt=0)
    poll_interval: float = Field(default=0.1, gt=0)
    grace_interval: float = Field(default=0.1, ge=0)
    strict_host_key_checking: bool = False
    known_hosts_file: Path | None = None
    server_alive_interval: int = Field(default=60, ge=0)
    server_alive_count_max: int = Field(default=3, ge=0)


class ExecutionConfig(BaseModel):
    """External client execution limits."""

    # Seconds; None waits for the client to finish.
    command_timeout: float | None = Field(default=None, gt=0)
    connect_timeout: int = Field(default=5, gt=0)


class DumpConfig(BaseModel):
    min_free_disk_mb: int = Field(default=100, ge=0)


class ImportConfig(BaseModel):
    large_file_warning_mb: int = Field(default=100, ge=0)


class ConfigData(BaseModel):
    """Root of the ``config:`` section in config.yaml."""

    registry_path: Path = Field(default_factory=lambda: get_config_dir() / "servers.yaml")
    tunnel: TunnelConfig = Field(default_factory=TunnelConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    dump: DumpConfig = Field(default_factory=DumpConfig)
    import_: ImportConfig = Field(default_factory=ImportConfig)
