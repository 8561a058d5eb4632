"""Tests for connection probing and metadata listing."""

from unittest.mock import MagicMock, Mock

import mysql.connector
import pytest

from mysql_dumper.core.errors import TunnelEstablishFailed
from mysql_dumper.core.models import Endpoint
from mysql_dumper.infra.mysql.connection import ConnectionSettings, MysqlConnection
from mysql_dumper.infra.mysql.prober import ConnectionProber


@pytest.fixture
def connection():
    conn = MagicMock(spec=MysqlConnection)
    conn.__enter__.return_value = conn
    conn.__exit__.return_value = False
    conn.server_version = "8.0.36"
    return conn


@pytest.fixture
def factory(connection):
    return Mock(return_value=connection)


def test_successful_test(fake_tunnels, direct_profile, connection, factory):
    """Test that a successful check reports version and timing."""
    connection.scalar.side_effect = [1, "MySQL Community Server - GPL"]
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    result = prober.test(direct_profile)

    assert result.success is True
    assert result.message == "Connection successful"
    assert result.details["server_version"] == "8.0.36"
    assert result.details["server_info"] == "MySQL Community Server - GPL"
    assert result.details["driver"] == "mysql-connector-python"
    assert result.details["duration_ms"] >= 0


def test_connects_through_tunnel_endpoint(fake_tunnels, key_profile, connection, factory):
    """Tunnelled checks connect to the forwarded port."""
    tunnels = fake_tunnels(Endpoint("127.0.0.1", 41000))
    prober = ConnectionProber(tunnels, connection_factory=factory)

    prober.ping(key_profile)

    settings = factory.call_args.args[0]
    assert (settings.host, settings.port) == ("127.0.0.1", 41000)
    assert settings.user == "app"
    assert settings.connect_timeout == 5
    assert tunnels.closed == 1
    connection.__exit__.assert_called_once()


def test_driver_error_becomes_failed_probe(fake_tunnels, direct_profile, factory):
    """Test that driver errors become a failed result with the code."""
    factory.side_effect = mysql.connector.Error(
        msg="Access denied for user 'app'", errno=1045, sqlstate="28000"
    )
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    result = prober.test(direct_profile)

    assert result.success is False
    assert result.message == "Connection failed: Access denied for user 'app'"
    assert result.details["error_code"] == 1045


def test_tunnel_error_becomes_failed_probe(fake_tunnels, key_profile, factory):
    """Tunnel failures are reported, not raised."""
    tunnels = fake_tunnels(error=TunnelEstablishFailed("Connection refused"))
    prober = ConnectionProber(tunnels, connection_factory=factory)

    result = prober.test(key_profile)

    assert result.success is False
    assert result.message == "Connection failed: SSH tunnel failed to establish: Connection refused"
    factory.assert_not_called()


def test_fetch_databases(fake_tunnels, direct_profile, connection, factory):
    """Test that databases are listed from INFORMATION_SCHEMA.SCHEMATA."""
    connection.column.return_value = ["information_schema", "shop"]
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    listing = prober.fetch_databases(direct_profile)

    assert listing.ok
    assert listing.items == ["information_schema", "shop"]
    assert "INFORMATION_SCHEMA.SCHEMATA" in connection.column.call_args.args[0]


def test_fetch_databases_error_is_distinguishable(fake_tunnels, direct_profile, factory):
    """A failed listing carries its error."""
    factory.side_effect = mysql.connector.Error(msg="Can't connect", errno=2003)
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    listing = prober.fetch_databases(direct_profile)

    assert listing.ok is False
    assert listing.error == "Can't connect"
    assert prober.list_databases(direct_profile) == []


def test_fetch_tables_passes_database_as_parameter(fake_tunnels, direct_profile, connection, factory):
    """Test that the database name is bound, not interpolated."""
    connection.column.return_value = ["orders", "users"]
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    assert prober.list_tables(direct_profile, "shop") == ["orders", "users"]
    assert connection.column.call_args.args[1] == ("shop",)


def test_database_exists(fake_tunnels, direct_profile, connection, factory):
    """Test the database existence check."""
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    connection.column.return_value = ["shop"]
    assert prober.database_exists(direct_profile, "shop") is True

    connection.column.return_value = []
    assert prober.database_exists(direct_profile, "ghost") is False


def test_ping_false_on_error(fake_tunnels, direct_profile, factory):
    """ping returns False instead of raising."""
    factory.side_effect = OSError("network unreachable")
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    assert prober.ping(direct_profile) is False


def test_server_status_and_variables(fake_tunnels, direct_profile, connection, factory):
    """Test that status and variables are returned as mappings."""
    connection.key_values.return_value = {"Uptime": "42"}
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    assert prober.server_status(direct_profile) == {"Uptime": "42"}
    assert connection.key_values.call_args.args[0] == "SHOW STATUS"
    prober.server_variables(direct_profile)
    assert connection.key_values.call_args.args[0] == "SHOW VARIABLES"


def test_server_status_empty_on_error(fake_tunnels, direct_profile, factory):
    """Errors give an empty status mapping."""
    factory.side_effect = mysql.connector.Error(msg="gone", errno=2006)
    prober = ConnectionProber(fake_tunnels(), connection_factory=factory)

    assert prober.server_status(direct_profile) == {}


def test_with_credentials_skips_tunnel(fake_tunnels, connection, factory):
    """Test that ad hoc credentials connect directly."""
    connection.scalar.side_effect = [1, "MySQL"]
    tunnels = fake_tunnels()
    prober = ConnectionProber(tunnels, connection_factory=factory)

    result = prober.test_with_credentials("db", 3306, "root", "pw", "shop")

    assert result.success is True
    assert tunnels.opened == 0
    settings = factory.call_args.args[0]
    assert settings.database == "shop"


class TestMysqlConnection:
    def test_dsn(self, direct_profile):
        """Test the connection DSN."""
        settings = ConnectionSettings.from_profile(direct_profile, connect_timeout=7)

        dsn = MysqlConnection(settings).get_dsn()

        assert dsn == {
            "host": "db.internal",
            "port": 3306,
            "user": "app",
            "password": "s3cret",
            "charset": "utf8mb4",
            "connection_timeout": 7,
            "database": "shop",
            "collation": "utf8mb4_unicode_ci",
        }

    def test_execute_returns_dicts_and_closes_cursor(self, direct_profile, monkeypatch):
        """Rows come back as dicts and the cursor is closed."""
        cursor = MagicMock()
        cursor.description = [("SCHEMA_NAME",)]
        cursor.fetchall.return_value = [{"SCHEMA_NAME": "shop"}]
        raw = MagicMock()
        raw.cursor.return_value = cursor
        raw.is_connected.return_value = True
        connect = Mock(return_value=raw)
        monkeypatch.setattr("mysql_dumper.infra.mysql.connection.mysql.connector.connect", connect)

        with MysqlConnection(ConnectionSettings.from_profile(direct_profile)) as conn:
            assert conn.column("SELECT SCHEMA_NAME FROM x") == ["shop"]

        raw.cursor.assert_called_once_with(dictionary=True)
        cursor.close.assert_called_once()
        raw.close.assert_called_once()
        connect.assert_called_once()
