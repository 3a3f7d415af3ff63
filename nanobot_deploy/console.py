from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.markup import escape

console = Console()


def info(msg: str) -> None:
    console.print(f"[bold cyan]•[/] {escape(msg)}")


def ok(msg: str) -> None:
    console.print(f"[bold green]OK[/] {msg}")


def warn(msg: str) -> None:
    console.print(f"[bold yellow]WARN[/] {msg}")


def err(msg: str) -> None:
    console.print(f"[bold red]ERR[/] {msg}")


def hints(lines: Iterable[str]) -> None:
    for line in lines:
        console.print(f"  {escape(line)}", highlight=False)


def block(text: str) -> None:
    """Print captured command output verbatim."""
    console.print(escape(text), highlight=False, soft_wrap=True)


def print(*args, **kwargs):
    """Proxy to underlying rich Console.print()."""
    console.print(*args, **kwargs)


def rule(*args, **kwargs):
    """Proxy to underlying rich Console.rule()."""
    console.rule(*args, **kwargs)
