"""Pre-flight checks run by the CLI before handing work to the core.

Each check returns an error message, or None when the check passes.
"""

import os
import re
import shutil
from collections.abc import Iterable
from pathlib import Path

from mysql_dumper.infra.mysql.commands import generate_output_path

TABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9_-]*$")

MB = 1024 * 1024


def parse_tables(value: str | None) -> list[str]:
    """Split a comma separated ``--tables`` value, dropping blanks."""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def validate_table_names(tables: Iterable[str]) -> bool:
    """Table names may only contain letters, digits, ``_`` and ``-``, never leading ``-``."""
    return all(TABLE_NAME_PATTERN.match(table) for table in tables)


def validate_output_path(output_path: str) -> str | None:
    """Check that a dump can be written to ``output_path``.

    A path ending in ``/`` or naming an existing directory is treated as a
    directory; anything else as a file inside its parent directory.
    """
    path = Path(output_path).expanduser()
    is_directory = output_path.endswith("/") or path.is_dir()
    directory = path if is_directory else path.parent

    if not directory.is_dir():
        return f"Output directory does not exist: {directory}"
    if not os.access(directory, os.W_OK):
        return f"Output directory is not writable: {directory}"
    if not is_directory and path.exists() and not os.access(path, os.W_OK):
        return f"Output file is not writable: {path}"
    return None


def resolve_output_path(output_path: str | None, database: str, gzip: bool) -> str | None:
    """Place a generated file name inside ``output_path`` when it is a directory."""
    if not output_path:
        return None
    path = Path(output_path).expanduser()
    if output_path.endswith("/") or path.is_dir():
        return str(path / generate_output_path(database, gzip))
    return str(path)


def check_disk_space(output_path: str | None, min_free_mb: int) -> str | None:
    """Require at least ``min_free_mb`` free in the directory the dump goes to."""
    if output_path:
        path = Path(output_path).expanduser()
        directory = path if path.is_dir() else path.parent
    else:
        directory = Path.cwd()

    try:
        free = shutil.disk_usage(directory).free
    except OSError:
        return f"Unable to determine free disk space for: {directory}"

    if free < min_free_mb * MB:
        return (
            f"Low disk space warning: Only {round(free / MB, 2)}MB available in "
            f"{directory}. Consider freeing up space before proceeding."
        )
    return None


def large_file_warning(file_path: Path, threshold_mb: int) -> str | None:
    """Warn about imports larger than ``threshold_mb``."""
    size = file_path.stat().st_size
    if size > threshold_mb * MB:
        return (
            f"Large file warning: File size is {round(size / MB, 2)}MB. "
            "Import may take a while."
        )
    return None
