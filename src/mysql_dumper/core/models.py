"""Domain models for server profiles, operation options and results."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from mysql_dumper.core.errors import ValidationError

DEFAULT_MYSQL_PORT = 3306
DEFAULT_SSH_PORT = 22
DEFAULT_CHARSET = "utf8mb4"
DEFAULT_COLLATION = "utf8mb4_unicode_ci"

_IMPORT_SUFFIX = re.compile(r"\.(sql|sql\.gz)$", re.IGNORECASE)


class SshTunnelConfig(BaseModel):
    """SSH jump host used to forward a local port to the MySQL server."""

    host: str
    port: int = Field(default=DEFAULT_SSH_PORT, ge=1, le=65535)
    username: str
    password: str | None = None
    key_path: str | None = None

    @field_validator("host", "username")
    @classmethod
    def _no_option_prefix(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        if value.startswith("-"):
            raise ValueError("must not start with '-'")
        return value

    @model_validator(mode="after")
    def _check_auth(self) -> Self:
        if bool(self.password) == bool(self.key_path):
            raise ValueError(
                "Exactly one of SSH password or SSH key path is required "
                "when SSH host is provided"
            )
        return self

    @property
    def expanded_key_path(self) -> str | None:
        """Key path with ``~`` expanded, or None for password auth."""
        return os.path.expanduser(self.key_path) if self.key_path else None


class ServerProfile(BaseModel):
    """A named set of MySQL connection parameters.

    Profiles are persisted by the server registry. ``ssh`` is only set when
    the server must be reached through an SSH tunnel.
    """

    name: str = Field(min_length=1, max_length=255)
    host: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_MYSQL_PORT, ge=1, le=65535)
    username: str = Field(min_length=1)
    password: str | None = None
    database: str | None = None
    charset: str = DEFAULT_CHARSET
    collation: str = DEFAULT_COLLATION
    is_default: bool = False
    ssh: SshTunnelConfig | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "host", "username")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def has_ssh_tunnel(self) -> bool:
        return self.ssh is not None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Endpoint:
    """Host/port pair a client should connect to."""

    host: str
    port: int


@dataclass(frozen=True)
class DumpOptions:
    """Options for a single dump. Validated on construction.

    An empty ``tables`` tuple means every table in ``database``.
    """

    database: str
    tables: tuple[str, ...] = ()
    schema_only: bool = False
    data_only: bool = False
    drop_tables: bool = False
    gzip: bool = False
    output_path: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        if self.schema_only and self.data_only:
            raise ValidationError(
                "Cannot set both schema_only and data_only. Choose one or neither."
            )
        if not self.database or not self.database.strip():
            raise ValidationError("Database name cannot be empty.")
        _reject_option_like(self.database, "Database name")
        for table in self.tables:
            _reject_option_like(table, "Table name")


def _reject_option_like(value: str, label: str) -> None:
    # mysqldump/mysql would parse a leading '-' as a flag
    if value.strip().startswith("-"):
        raise ValidationError(f"{label} must not start with '-': {value}")


def check_import_file(file_path: str | Path) -> Path:
    """Validate an import source file and return it with ``~`` expanded.

    Raises:
        ValidationError: If the file is missing, unreadable, empty or not
            a ``.sql`` / ``.sql.gz`` file
    """
    if not str(file_path).strip():
        raise ValidationError("File path cannot be empty.")

    path = Path(file_path).expanduser()
    if not path.exists():
        raise ValidationError(f"File does not exist: {path}")
    if not path.is_file():
        raise ValidationError(f"Path is not a file: {path}")
    if not os.access(path, os.R_OK):
        raise ValidationError(f"File is not readable: {path}")
    if not _IMPORT_SUFFIX.search(path.name):
        raise ValidationError(
            f"Invalid file extension. Only .sql and .sql.gz files are supported: {path}"
        )
    if path.stat().st_size == 0:
        raise ValidationError(f"File is empty: {path}")
    return path


@dataclass(frozen=True)
class ImportOptions:
    """Options for a single import.

    The source file is checked against the file system every time an
    instance is built.
    """

    database: str
    file_path: Path
    force: bool = False

    def __post_init__(self) -> None:
        if not self.database or not self.database.strip():
            raise ValidationError("Database name cannot be empty.")
        _reject_option_like(self.database, "Database name")
        object.__setattr__(self, "file_path", check_import_file(self.file_path))


@dataclass(frozen=True)
class DumpResult:
    """Outcome of a dump. Build through ``succeeded`` or ``failed``."""

    success: bool
    file_path: str
    file_size: int
    duration: float
    error: str | None = None

    @classmethod
    def succeeded(cls, file_path: str, file_size: int, duration: float) -> DumpResult:
        return cls(
            success=True,
            file_path=file_path,
            file_size=file_size,
            duration=duration,
        )

    @classmethod
    def failed(cls, error: str) -> DumpResult:
        return cls(success=False, file_path="", file_size=0, duration=0.0, error=error)

    def format_file_size(self) -> str:
        """Human readable size, e.g. ``1.5 MB``."""
        units = ["B", "KB", "MB", "GB", "TB"]
        size = float(self.file_size)
        unit = 0
        while size >= 1024 and unit < len(units) - 1:
            size /= 1024
            unit += 1
        return f"{round(size, 2):g} {units[unit]}"


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import. Build through ``succeeded`` or ``failed``."""

    success: bool
    database: str
    file_path: str
    duration: float
    error: str | None = None

    @classmethod
    def succeeded(cls, database: str, file_path: str, duration: float) -> ImportResult:
        return cls(
            success=True, database=database, file_path=file_path, duration=duration
        )

    @classmethod
    def failed(
        cls, error: str, database: str = "", file_path: str = ""
    ) -> ImportResult:
        return cls(
            success=False,
            database=database,
            file_path=file_path,
            duration=0.0,
            error=error,
        )


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a connection test."""

    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ListingResult:
    """Names returned by a metadata query, or the error that prevented it.

    ``error`` is None when the query ran, so an empty ``items`` list then
    really means there was nothing to list.
    """

    items: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
