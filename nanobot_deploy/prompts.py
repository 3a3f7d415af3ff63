from __future__ import annotations

from typing import Protocol

from rich.prompt import Confirm
from rich.text import Text

from .console import console


class Prompter(Protocol):
    """Blocking operator input. No timeouts: the run waits until answered or interrupted."""

    def confirm(self, message: str, *, default: bool = False) -> bool:
        ...

    def pause(self, message: str) -> None:
        ...


class ConsolePrompter:
    def confirm(self, message: str, *, default: bool = False) -> bool:
        return Confirm.ask(Text(message, style="bold"), default=default, console=console)

    def pause(self, message: str) -> None:
        console.input(f"[bold yellow]{message}[/] ")


class AssumeYesPrompter:
    """Answers confirmations with yes; acknowledgement pauses still block."""

    def __init__(self, inner: Prompter) -> None:
        self._inner = inner

    def confirm(self, message: str, *, default: bool = False) -> bool:
        console.print(f"{message} [dim](--yes)[/]")
        return True

    def pause(self, message: str) -> None:
        self._inner.pause(message)
