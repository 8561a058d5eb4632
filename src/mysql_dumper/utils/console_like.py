from __future__ import annotations

from typing import Protocol

from rich.console import ConsoleRenderable


class ConsoleLike(Protocol):
    """Output surface infrastructure code may report progress to."""

    def print(self, msg: ConsoleRenderable | str | None = None) -> None: ...
