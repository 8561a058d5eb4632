"""Configuration loading for mysql-dumper."""

from .config_data import (
    ConfigData,
    DumpConfig,
    ExecutionConfig,
    ImportConfig,
    TunnelConfig,
)
from .config_loader import load_config, save_config, write_yaml

__all__ = [
    "ConfigData",
    "TunnelConfig",
    "ExecutionConfig",
    "DumpConfig",
    "ImportConfig",
    "load_config",
    "save_config",
    "write_yaml",
]
