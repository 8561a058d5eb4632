"""Shell command construction for mysqldump and mysql.

Every value that comes from a profile or from the user (host, credentials,
database and table names, file paths) is quoted with ``shlex.quote`` as a
single argument, so the produced strings are safe to hand to a shell.
"""

from __future__ import annotations

import shlex
from datetime import datetime
from pathlib import Path

from mysql_dumper.core.models import DumpOptions, Endpoint, ImportOptions, ServerProfile

MYSQLDUMP_BINARY = "mysqldump"
MYSQL_BINARY = "mysql"
GZIP_BINARY = "gzip"
GUNZIP_BINARY = "gunzip"

GZIP_MAGIC = b"\x1f\x8b"

# Consistent, replayable output regardless of the requested mode
DUMP_STANDARD_FLAGS = (
    "--single-transaction",
    "--routines",
    "--triggers",
    "--set-gtid-purged=OFF",
)

MASK = "****"


def _connection_args(profile: ServerProfile, endpoint: Endpoint | None) -> list[str]:
    host = endpoint.host if endpoint else profile.host
    port = endpoint.port if endpoint else profile.port

    args = [
        f"--host={shlex.quote(host)}",
        f"--port={int(port)}",
        f"--user={shlex.quote(profile.username)}",
    ]
    if profile.password:
        args.append(f"--password={shlex.quote(profile.password)}")
    return args


def build_dump_command(
    profile: ServerProfile,
    options: DumpOptions,
    endpoint: Endpoint | None = None,
) -> str:
    """Build the mysqldump command line, without output redirection.

    Args:
        profile: Server to dump from
        options: Dump options
        endpoint: Tunnel endpoint replacing the profile's host/port

    Returns:
        Shell-safe command string
    """
    parts = [MYSQLDUMP_BINARY, *_connection_args(profile, endpoint)]

    if options.schema_only:
        parts.append("--no-data")
    if options.data_only:
        parts.append("--no-create-info")
    if options.drop_tables:
        parts.append("--add-drop-table")

    parts.extend(DUMP_STANDARD_FLAGS)
    parts.append(shlex.quote(options.database))
    parts.extend(shlex.quote(table) for table in options.tables)

    return " ".join(parts)


def with_dump_redirection(command: str, output_path: str | Path, gzip: bool) -> str:
    """Send the dump to ``output_path``, through gzip when requested."""
    target = shlex.quote(str(output_path))
    if gzip:
        return f"{command} | {GZIP_BINARY} > {target}"
    return f"{command} > {target}"


def build_import_command(
    profile: ServerProfile,
    options: ImportOptions,
    endpoint: Endpoint | None = None,
) -> str:
    """Build the mysql client command line, without input redirection.

    The connection character set is forced to the profile's charset.
    """
    parts = [
        MYSQL_BINARY,
        *_connection_args(profile, endpoint),
        f"--default-character-set={shlex.quote(profile.charset)}",
        shlex.quote(options.database),
    ]
    return " ".join(parts)


def with_import_redirection(command: str, file_path: str | Path) -> str:
    """Feed ``file_path`` to the client, decompressing gzip content first."""
    source = shlex.quote(str(file_path))
    if is_gzipped(file_path):
        return f"{GUNZIP_BINARY} < {source} | {command}"
    return f"{command} < {source}"


def is_gzipped(file_path: str | Path) -> bool:
    """Detect gzip content by suffix or by magic number.

    A ``.gz`` name is trusted without reading the file; otherwise the first
    two bytes must be ``1f 8b``. Missing or unreadable files are not gzipped.
    """
    path = Path(file_path)
    if not path.exists():
        return False

    if path.name.lower().endswith(".gz"):
        return True

    try:
        with open(path, "rb") as f:
            return f.read(2) == GZIP_MAGIC
    except OSError:
        return False


def generate_output_path(database: str, gzip: bool, now: datetime | None = None) -> str:
    """Default dump file name.

    Pattern: ``{database}_{YYYY-MM-DD_HHMMSS}.sql`` (``.sql.gz`` with gzip).
    """
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d_%H%M%S")
    extension = ".sql.gz" if gzip else ".sql"
    return f"{database}_{timestamp}{extension}"


def mask_command(command: str, profile: ServerProfile) -> str:
    """Hide the profile password in a command line before logging it."""
    if not profile.password:
        return command
    return command.replace(
        f"--password={shlex.quote(profile.password)}", f"--password={MASK}"
    )
