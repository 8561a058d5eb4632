"""Connection testing and metadata queries for server profiles."""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import mysql.connector
from loguru import logger

from mysql_dumper.core.errors import MysqlDumperError
from mysql_dumper.core.models import ListingResult, ProbeResult, ServerProfile
from mysql_dumper.infra.mysql.connection import (
    DRIVER_NAME,
    ConnectionSettings,
    MysqlConnection,
)
from mysql_dumper.infra.ssh import SshTunnelManager
from mysql_dumper.runtime.config import ExecutionConfig

ConnectionFactory = Callable[[ConnectionSettings], MysqlConnection]

DATABASES_SQL = "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA ORDER BY SCHEMA_NAME"
DATABASE_EXISTS_SQL = (
    "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s"
)
TABLES_SQL = (
    "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
    "WHERE TABLE_SCHEMA = %s ORDER BY TABLE_NAME"
)
PING_SQL = "SELECT 1"
VERSION_COMMENT_SQL = "SELECT @@version_comment"

# Errors a probe turns into a failed result instead of raising
PROBE_ERRORS = (mysql.connector.Error, MysqlDumperError, OSError)


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, mysql.connector.Error):
        return exc.msg or str(exc)
    if isinstance(exc, MysqlDumperError):
        return exc.message
    return str(exc)


class ConnectionProber:
    """Runs short-lived queries against a server, tunnelling when configured.

    Every call opens its own tunnel and connection and closes both before
    returning, connection first.
    """

    def __init__(
        self,
        tunnels: SshTunnelManager,
        execution: ExecutionConfig | None = None,
        connection_factory: ConnectionFactory = MysqlConnection,
    ) -> None:
        self._tunnels = tunnels
        self._execution = execution or ExecutionConfig()
        self._connection_factory = connection_factory

    @contextmanager
    def _connect(self, profile: ServerProfile) -> Iterator[MysqlConnection]:
        with self._tunnels.tunnel_for(profile) as endpoint:
            settings = ConnectionSettings.from_profile(
                profile, endpoint, self._execution.connect_timeout
            )
            with self._connection_factory(settings) as conn:
                yield conn

    def test(self, profile: ServerProfile) -> ProbeResult:
        """Connect, run ``SELECT 1`` and report timing and server details."""
        start = time.perf_counter()
        try:
            with self._connect(profile) as conn:
                conn.scalar(PING_SQL)
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                return ProbeResult(
                    success=True,
                    message="Connection successful",
                    details={
                        "duration_ms": duration_ms,
                        "server_version": conn.server_version,
                        "server_info": conn.scalar(VERSION_COMMENT_SQL),
                        "driver": DRIVER_NAME,
                    },
                )
        except PROBE_ERRORS as e:
            logger.debug(f"Connection test for {profile.name} failed: {e}")
            return self._failure(e)

    def test_with_credentials(
        self,
        host: str,
        port: int,
        username: str,
        password: str | None,
        database: str | None = None,
    ) -> ProbeResult:
        """Test ad-hoc credentials directly, without a tunnel or saved profile."""
        settings = ConnectionSettings(
            host=host,
            port=port,
            user=username,
            password=password,
            database=database,
            connect_timeout=self._execution.connect_timeout,
        )
        start = time.perf_counter()
        try:
            with self._connection_factory(settings) as conn:
                conn.scalar(PING_SQL)
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                return ProbeResult(
                    success=True,
                    message="Connection successful",
                    details={
                        "duration_ms": duration_ms,
                        "server_version": conn.server_version,
                        "server_info": conn.scalar(VERSION_COMMENT_SQL),
                    },
                )
        except PROBE_ERRORS as e:
            return self._failure(e)

    @staticmethod
    def _failure(exc: BaseException) -> ProbeResult:
        details: dict[str, Any] = {}
        if isinstance(exc, mysql.connector.Error):
            details["error_code"] = exc.errno
            details["sqlstate"] = exc.sqlstate
        return ProbeResult(
            success=False,
            message=f"Connection failed: {_error_message(exc)}",
            details=details,
        )

    def fetch_databases(self, profile: ServerProfile) -> ListingResult:
        """Database names, or the error that prevented listing them."""
        try:
            with self._connect(profile) as conn:
                return ListingResult(items=[str(n) for n in conn.column(DATABASES_SQL)])
        except PROBE_ERRORS as e:
            logger.debug(f"Listing databases on {profile.name} failed: {e}")
            return ListingResult(error=_error_message(e))

    def fetch_tables(self, profile: ServerProfile, database: str) -> ListingResult:
        """Table names in ``database``, or the error that prevented listing them."""
        try:
            with self._connect(profile) as conn:
                return ListingResult(
                    items=[str(n) for n in conn.column(TABLES_SQL, (database,))]
                )
        except PROBE_ERRORS as e:
            logger.debug(f"Listing tables in {database} on {profile.name} failed: {e}")
            return ListingResult(error=_error_message(e))

    def list_databases(self, profile: ServerProfile) -> list[str]:
        """Database names; empty on any failure. See ``fetch_databases``."""
        return self.fetch_databases(profile).items

    def list_tables(self, profile: ServerProfile, database: str) -> list[str]:
        """Table names; empty on any failure. See ``fetch_tables``."""
        return self.fetch_tables(profile, database).items

    def database_exists(self, profile: ServerProfile, database: str) -> bool:
        try:
            with self._connect(profile) as conn:
                return bool(conn.column(DATABASE_EXISTS_SQL, (database,)))
        except PROBE_ERRORS as e:
            logger.debug(f"Checking database {database} on {profile.name} failed: {e}")
            return False

    def ping(self, profile: ServerProfile) -> bool:
        try:
            with self._connect(profile) as conn:
                conn.scalar(PING_SQL)
                return True
        except PROBE_ERRORS:
            return False

    def server_status(self, profile: ServerProfile) -> dict[str, Any]:
        """``SHOW STATUS`` as a dict; empty on failure."""
        return self._key_values(profile, "SHOW STATUS")

    def server_variables(self, profile: ServerProfile) -> dict[str, Any]:
        """``SHOW VARIABLES`` as a dict; empty on failure."""
        return self._key_values(profile, "SHOW VARIABLES")

    def _key_values(self, profile: ServerProfile, sql: str) -> dict[str, Any]:
        try:
            with self._connect(profile) as conn:
                return conn.key_values(sql)
        except PROBE_ERRORS as e:
            logger.debug(f"{sql} on {profile.name} failed: {e}")
            return {}
