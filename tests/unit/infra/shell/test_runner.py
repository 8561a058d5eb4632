"""Tests for the shell command runner."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from mysql_dumper.core.errors import DependencyMissing
from mysql_dumper.infra.shell import CommandResult, CommandRunner


def test_require_raises_for_missing_binary():
    """Test that require names the missing binary."""
    runner = CommandRunner(which=lambda binary: None)

    with pytest.raises(DependencyMissing, match="mysqldump binary not found. Install it."):
        runner.require("mysqldump", hint="Install it.")


def test_require_passes_when_all_present():
    """require is silent when every binary exists."""
    runner = CommandRunner(which=lambda binary: f"/usr/bin/{binary}")

    runner.require("mysql", "bash", "gunzip")


@patch("mysql_dumper.infra.shell.runner.subprocess.Popen")
def test_run_shell_uses_pipefail_and_merges_output(mock_popen):
    """Test that commands run under pipefail with merged output."""
    process = MagicMock()
    process.communicate.return_value = ("ERROR 1045: Access denied\n", None)
    process.returncode = 2
    mock_popen.return_value = process

    result = CommandRunner().run_shell("mysqldump x | gzip > out.sql.gz")

    argv = mock_popen.call_args.args[0]
    kwargs = mock_popen.call_args.kwargs
    assert argv == ["bash", "-o", "pipefail", "-c", "mysqldump x | gzip > out.sql.gz"]
    assert kwargs["stderr"] is subprocess.STDOUT
    assert kwargs["start_new_session"] is True
    assert result.success is False
    assert result.returncode == 2
    assert result.output == "ERROR 1045: Access denied"


@patch("mysql_dumper.infra.shell.runner.os.killpg")
@patch("mysql_dumper.infra.shell.runner.subprocess.Popen")
def test_run_shell_timeout_kills_process_group(mock_popen, mock_killpg):
    """Test that a timeout kills the whole process group."""
    process = MagicMock()
    process.pid = 4242
    process.communicate.side_effect = [
        subprocess.TimeoutExpired("bash", 5),
        ("partial output", None),
    ]
    mock_popen.return_value = process

    result = CommandRunner().run_shell("sleep 100", timeout=5)

    mock_killpg.assert_called_once()
    assert mock_killpg.call_args.args[0] == 4242
    assert result.timed_out is True
    assert result.success is False
    assert "Command timed out after 5s" in result.output
    assert "partial output" in result.output


def test_run_shell_real_pipeline_failure_is_not_masked():
    """A failing first stage fails the whole pipeline."""
    result = CommandRunner().run_shell("false | cat")

    assert result.success is False


def test_command_result_output_joins_streams():
    """Test that output joins stdout and stderr."""
    result = CommandResult(success=False, stdout="out\n", stderr="err", returncode=1)

    assert result.output == "out\n\nerr"
