"""MySQL client integration: command building, dump, import and probing."""

from .commands import (
    build_dump_command,
    build_import_command,
    generate_output_path,
    is_gzipped,
    mask_command,
    with_dump_redirection,
    with_import_redirection,
)
from .connection import ConnectionSettings, MysqlConnection
from .dump import MysqlDumper
from .prober import ConnectionProber
from .restore import MysqlImporter

__all__ = [
    "build_dump_command",
    "build_import_command",
    "generate_output_path",
    "is_gzipped",
    "mask_command",
    "with_dump_redirection",
    "with_import_redirection",
    "ConnectionSettings",
    "MysqlConnection",
    "MysqlDumper",
    "MysqlImporter",
    "ConnectionProber",
]
