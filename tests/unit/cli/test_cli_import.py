"""Tests for the ``import`` command."""

import pytest

from mysql_dumper.cli import app
from mysql_dumper.core.models import ImportResult, ListingResult, ProbeResult


@pytest.fixture
def sql_file(tmp_path):
    path = tmp_path / "shop.sql"
    path.write_text("CREATE TABLE users (id INT);\n")
    return path


@pytest.fixture
def reachable(cli_context, direct_profile):
    cli_context.registry.create(direct_profile)
    cli_context.prober.test.return_value = ProbeResult(True, "Connection successful")
    cli_context.prober.fetch_databases.return_value = ListingResult(["shop"])
    return cli_context


def test_missing_file_rejected_before_connecting(cli_runner, reachable, tmp_path):
    """Test that a missing import file is caught before any connection."""
    result = cli_runner.invoke(
        app,
        ["import", "-s", "local", "-d", "shop", "-f", str(tmp_path / "missing.sql")],
        obj=reachable,
    )

    assert result.exit_code == 1
    assert "File does not exist" in result.output
    reachable.prober.test.assert_not_called()


def test_wrong_extension_rejected(cli_runner, reachable, tmp_path):
    """Only .sql and .sql.gz files are accepted."""
    source = tmp_path / "dump.txt"
    source.write_text("SELECT 1;")

    result = cli_runner.invoke(
        app, ["import", "-s", "local", "-d", "shop", "-f", str(source)], obj=reachable
    )

    assert result.exit_code == 1
    assert "Invalid file extension" in result.output


def test_requires_every_flag_in_direct_mode(cli_runner, reachable, sql_file):
    """Test that direct mode needs --server, --database and --file."""
    result = cli_runner.invoke(app, ["import", "-f", str(sql_file)], obj=reachable)

    assert result.exit_code == 1
    assert "Server name is required" in result.output


def test_force_skips_confirmation(cli_runner, reachable, sql_file):
    """Test that --force imports without asking."""
    reachable.importer.import_database.return_value = ImportResult.succeeded(
        "shop", str(sql_file), 0.5
    )

    result = cli_runner.invoke(
        app,
        ["import", "-s", "local", "-d", "shop", "-f", str(sql_file), "--force"],
        obj=reachable,
    )

    assert result.exit_code == 0, result.output
    assert "Import completed successfully!" in result.output
    _, options = reachable.importer.import_database.call_args.args
    assert options.database == "shop"
    assert options.file_path == sql_file
    assert options.force is True


def test_declined_confirmation_cancels(cli_runner, reachable, sql_file):
    """Answering no to the overwrite prompt cancels the import."""
    result = cli_runner.invoke(
        app,
        ["import", "-s", "local", "-d", "shop", "-f", str(sql_file)],
        input="n\n",
        obj=reachable,
    )

    assert result.exit_code == 0
    assert "Import cancelled." in result.output
    reachable.importer.import_database.assert_not_called()


def test_import_failure_shows_tips(cli_runner, reachable, sql_file):
    """Test that a failed import exits non-zero with tips."""
    reachable.importer.import_database.return_value = ImportResult.failed(
        "mysql import command failed: syntax error"
    )

    result = cli_runner.invoke(
        app,
        ["import", "-s", "local", "-d", "shop", "-f", str(sql_file), "--force"],
        obj=reachable,
    )

    assert result.exit_code == 1
    assert "syntax error" in result.output
    assert "which mysql" in result.output


def test_interactive_mode(cli_runner, reachable, sql_file):
    """Test the prompted import flow end to end."""
    reachable.importer.import_database.return_value = ImportResult.succeeded(
        "shop", str(sql_file), 0.5
    )

    result = cli_runner.invoke(
        app, ["import"], input=f"\n\n{sql_file}\ny\n", obj=reachable
    )

    assert result.exit_code == 0, result.output
    assert "Import Summary" in result.output
    _, options = reachable.importer.import_database.call_args.args
    assert options.force is False
