"""Operator confirmation - injected into the remote flow so its state machine stays testable."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.console import Console
from rich.prompt import Confirm, Prompt


class Confirmer(ABC):
    """Interface for blocking operator decisions."""

    @abstractmethod
    def confirm(self, question: str) -> bool:
        """Ask a yes/no question. Returns True to proceed."""
        ...

    @abstractmethod
    def acknowledge(self, message: str) -> None:
        """Block until the operator signals a manual step is done."""
        ...


class TerminalConfirmer(Confirmer):
    """Interactive prompts on the terminal. Defaults to "no" and has no timeout."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def confirm(self, question: str) -> bool:
        return Confirm.ask(f"[yellow]{question}[/yellow]", console=self.console, default=False)

    def acknowledge(self, message: str) -> None:
        self.console.print(f"[bold yellow]{message}[/bold yellow]")
        Prompt.ask("Press Enter to continue", console=self.console, default="", show_default=False)
