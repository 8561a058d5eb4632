"""MySQL connection management.

Thin wrapper over mysql-connector-python used for metadata queries. Dumps
and imports go through the client binaries instead.
"""

from typing import Any

import mysql.connector
from pydantic import BaseModel

from mysql_dumper.core.models import Endpoint, ServerProfile

DRIVER_NAME = "mysql-connector-python"


class ConnectionSettings(BaseModel):
    """Resolved connection parameters for one server."""

    host: str
    port: int
    user: str
    password: str | None = None
    database: str | None = None
    charset: str = "utf8mb4"
    collation: str | None = None
    connect_timeout: int = 5

    @classmethod
    def from_profile(
        cls,
        profile: ServerProfile,
        endpoint: Endpoint | None = None,
        connect_timeout: int = 5,
    ) -> "ConnectionSettings":
        """Build settings for ``profile``, targeting ``endpoint`` when tunnelled."""
        return cls(
            host=endpoint.host if endpoint else profile.host,
            port=endpoint.port if endpoint else profile.port,
            user=profile.username,
            password=profile.password,
            database=profile.database,
            charset=profile.charset,
            collation=profile.collation,
            connect_timeout=connect_timeout,
        )


class MysqlConnection:
    """MySQL connection manager.

    The connection is opened lazily on first use and closed by ``close``
    or by leaving the ``with`` block.
    """

    def __init__(self, settings: ConnectionSettings):
        self._settings = settings
        self._conn: Any | None = None

    def get_dsn(self) -> dict[str, Any]:
        """Keyword arguments for ``mysql.connector.connect()``."""
        dsn: dict[str, Any] = {
            "host": self._settings.host,
            "port": self._settings.port,
            "user": self._settings.user,
            "password": self._settings.password or "",
            "charset": self._settings.charset,
            "connection_timeout": self._settings.connect_timeout,
        }
        if self._settings.database:
            dsn["database"] = self._settings.database
        if self._settings.collation:
            dsn["collation"] = self._settings.collation
        return dsn

    def ensure_connected(self) -> Any:
        if self._conn is None or not self._conn.is_connected():
            self.close()
            self._conn = mysql.connector.connect(**self.get_dsn())
        return self._conn

    def close(self) -> None:
        """Close the current connection if open."""
        if self._conn is not None:
            self._conn.close()
        self._conn = None

    def execute(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        """Execute SQL and return rows as dicts."""
        conn = self.ensure_connected()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(sql, params)
            if cursor.description:
                return [dict(row) for row in cursor.fetchall()]
            return []
        finally:
            cursor.close()

    def column(self, sql: str, params: tuple[Any, ...] | None = None) -> list[Any]:
        """Execute SQL and return the first column of every row."""
        return [next(iter(row.values())) for row in self.execute(sql, params) if row]

    def scalar(self, sql: str, params: tuple[Any, ...] | None = None) -> Any:
        """Execute SQL and return a single scalar value."""
        values = self.column(sql, params)
        return values[0] if values else None

    def key_values(self, sql: str) -> dict[str, Any]:
        """Collect ``SHOW STATUS`` / ``SHOW VARIABLES`` style rows into a dict."""
        return {
            row["Variable_name"]: row["Value"] for row in self.execute(sql)
        }

    @property
    def server_version(self) -> str | None:
        return self.ensure_connected().get_server_info()

    @property
    def settings(self) -> ConnectionSettings:
        return self._settings

    def __enter__(self) -> "MysqlConnection":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
