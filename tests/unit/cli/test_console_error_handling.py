import pytest
import typer

from mysql_dumper.cli.shared.console import CLIConsole, with_error_handling
from mysql_dumper.core.errors import CommandFailed, ProfileNotFound


def test_with_error_handling_handles_domain_error():
    """Domain errors become a message and exit status 1."""
    @with_error_handling
    def _command() -> None:
        raise ProfileNotFound("ghost")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 1


def test_with_error_handling_shows_details(capsys):
    """Test that error details are printed under the message."""
    @with_error_handling
    def _command() -> None:
        raise CommandFailed("mysqldump", 2, "Access denied")

    with pytest.raises(typer.Exit):
        _command()

    assert "Access denied" in capsys.readouterr().out


def test_with_error_handling_handles_keyboard_interrupt():
    """Ctrl-C exits with status 130."""
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_select_many_accepts_numbers_and_names(monkeypatch):
    """Test that multi-select accepts both indexes and names."""
    console = CLIConsole()
    monkeypatch.setattr(console.console, "input", lambda prompt="": "2, users ,2")

    assert console.select_many("Tables", ["users", "orders"]) == ["orders", "users"]


def test_confirm_uses_default_on_empty_answer(monkeypatch):
    """An empty answer takes the default."""
    console = CLIConsole()
    monkeypatch.setattr(console.console, "input", lambda prompt="": "")

    assert console.confirm("Proceed?", default=True) is True
    assert console.confirm("Proceed?") is False
