"""Tests for CLI pre-flight checks."""

from collections import namedtuple
from unittest.mock import patch

from mysql_dumper.cli.shared.validation import (
    check_disk_space,
    large_file_warning,
    parse_tables,
    resolve_output_path,
    validate_output_path,
    validate_table_names,
)

DiskUsage = namedtuple("DiskUsage", "total used free")


def test_parse_tables_drops_blanks():
    """Test that blank entries in --tables are ignored."""
    assert parse_tables(" users, ,orders ,") == ["users", "orders"]
    assert parse_tables(None) == []


def test_validate_table_names():
    """Table names allow letters, digits, _ and an inner -."""
    assert validate_table_names(["users", "order-items", "t_2"]) is True
    assert validate_table_names(["users; DROP TABLE x"]) is False
    assert validate_table_names(["--where=1"]) is False
    assert validate_table_names(["a b"]) is False
    assert validate_table_names(["-x"]) is False


def test_validate_output_path(tmp_path):
    """Test that the output directory must exist and be writable."""
    assert validate_output_path(str(tmp_path / "dump.sql")) is None
    assert validate_output_path(str(tmp_path)) is None
    assert "does not exist" in validate_output_path(str(tmp_path / "missing" / "dump.sql"))


def test_resolve_output_path_for_directory(tmp_path):
    """Test that directory outputs get a generated file name."""
    resolved = resolve_output_path(str(tmp_path), "shop", True)

    assert resolved.startswith(str(tmp_path / "shop_"))
    assert resolved.endswith(".sql.gz")
    assert resolve_output_path(str(tmp_path / "x.sql"), "shop", False) == str(tmp_path / "x.sql")
    assert resolve_output_path(None, "shop", False) is None


@patch("mysql_dumper.cli.shared.validation.shutil.disk_usage")
def test_check_disk_space(mock_usage, tmp_path):
    """Low free space produces a warning message."""
    mock_usage.return_value = DiskUsage(0, 0, 50 * 1024 * 1024)

    problem = check_disk_space(str(tmp_path / "dump.sql"), 100)

    assert problem.startswith("Low disk space warning: Only 50.0MB available")
    assert check_disk_space(str(tmp_path / "dump.sql"), 10) is None


def test_large_file_warning(tmp_path):
    """Test that files over the threshold produce a warning."""
    path = tmp_path / "dump.sql"
    path.write_bytes(b"x" * 2048)

    assert large_file_warning(path, 100) is None
    assert large_file_warning(path, 0).startswith("Large file warning")
