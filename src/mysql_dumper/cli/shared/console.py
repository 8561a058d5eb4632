"""Shared console output and prompts for CLI commands.

Provides the rich console wrapper, numbered-choice prompts and the error
handling decorator used by every command.
"""

from collections.abc import Callable, Sequence
from functools import wraps

import typer
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel
from rich.status import Status

from mysql_dumper.core.errors import MysqlDumperError

YES_ANSWERS = ("y", "yes")


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def status(self, status: str) -> Status:
        return self.console.status(status)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def bullets(self, title: str, items: Sequence[str]) -> None:
        """Print a titled list, one ``•`` per item."""
        self.console.print(title)
        for item in items:
            self.console.print(f"  • {item}", markup=False)

    def _ask(self, prompt: str) -> str | None:
        """Read one stripped line; None when the user hits Ctrl+C or Ctrl+D."""
        try:
            return self.console.input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return None

    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question. Cancelling counts as "no"."""
        hint = "\\[Y/n]" if default else "\\[y/N]"
        answer = self._ask(f"\n[bold]{question}[/bold] {hint}: ")
        if answer is None:
            return False
        if not answer:
            return default
        return answer.lower() in YES_ANSWERS

    def prompt_text(
        self,
        label: str,
        *,
        default: str | None = None,
        required: bool = True,
        validate: Callable[[str], str | None] | None = None,
    ) -> str:
        """Prompt for a line of text, re-asking until ``validate`` accepts it.

        Raises:
            typer.Exit: With code 130 when input is cancelled
        """
        prompt = f"{label} [{default}]: " if default else f"{label}: "
        while True:
            value = self._ask(prompt)
            if value is None:
                raise typer.Exit(130)

            value = value or default or ""
            if not value:
                if not required:
                    return value
                self.console.print(f"[red]{label} is required[/red]")
                continue

            problem = validate(value) if validate else None
            if problem is None:
                return value
            self.console.print(f"[red]{problem}[/red]")

    def handle_error(
        self, message: str, details: str | None = None, exit_code: int = 1
    ) -> None:
        """Report a failed command and leave with ``exit_code``.

        ``details`` (typically client output) is boxed underneath unless the
        message already quotes it.
        """
        self.error(f"[bold red]{message}[/bold red]")
        if details and details.strip() not in message:
            self.console.print(Panel(details, title="Details", border_style="red"))
        raise typer.Exit(exit_code)

    def prompt_choice(
        self,
        title: str,
        choices: list[tuple[str, str]],
        *,
        default: int = 1,
        cancel_option: bool = True,
    ) -> int:
        """Show ``choices`` as a numbered menu and read a 1-based selection.

        Each choice is a ``(label, hint)`` pair; the hint is dimmed under
        the label when not empty. An empty answer picks ``default``. Returns
        0 when the user cancels, either with ``0`` (if ``cancel_option``) or
        Ctrl+C.
        """
        self.console.print(f"\n[yellow]{title}[/yellow]\n")
        for number, (label, hint) in enumerate(choices, 1):
            pointer = "[bold cyan]→[/bold cyan]" if number == default else " "
            self.console.print(f"  {pointer} [bold]{number}.[/bold] {label}")
            if hint:
                self.console.print(f"       [dim]{hint}[/dim]")
        if cancel_option:
            self.console.print("  [bold]0.[/bold] Cancel")

        while True:
            answer = self._ask(f"\nChoice [{default}]: ")
            if answer is None:
                return 0
            if not answer:
                return default
            if answer == "0" and cancel_option:
                self.console.print("[dim]Cancelled.[/dim]")
                return 0
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return int(answer)
            self.console.print(f"[red]Enter a number from 1 to {len(choices)}[/red]")

    def select(self, title: str, options: Sequence[str], *, default: int = 1) -> str | None:
        """Pick one of ``options`` by number. Returns None when cancelled."""
        choice = self.prompt_choice(
            title, [(option, "") for option in options], default=default
        )
        return options[choice - 1] if choice else None

    def select_many(self, title: str, options: Sequence[str]) -> list[str]:
        """Pick several options by number or name, comma separated.

        An empty answer selects nothing.
        """
        self.console.print(f"\n[yellow]{title}[/yellow]\n")
        for number, option in enumerate(options, 1):
            self.console.print(f"  [bold]{number}.[/bold] {option}")

        while True:
            answer = self._ask("\nEnter numbers or names, comma separated: ")
            if answer is None:
                return []

            selected: list[str] = []
            unknown: list[str] = []
            for token in filter(None, (t.strip() for t in answer.split(","))):
                if token.isdigit() and 1 <= int(token) <= len(options):
                    token = options[int(token) - 1]
                elif token not in options:
                    unknown.append(token)
                    continue
                if token not in selected:
                    selected.append(token)

            if not unknown:
                return selected
            self.console.print(f"[red]Unknown selection: {', '.join(unknown)}[/red]")

    def print_header(self, title: str, style: str = "blue") -> None:
        """Boxed title shown at the top of an interactive form."""
        self.console.print(
            Panel.fit(f"[bold {style}]{title}[/bold {style}]", border_style=style)
        )


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Turn failures escaping a command into a clean exit.

    A ``MysqlDumperError`` is reported with its details and exits with
    status 1; Ctrl+C exits with 130.
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except MysqlDumperError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


console = CLIConsole()
