from typing import Optional, Protocol
from rich.console import Console
from rich.prompt import Confirm, Prompt


class ConsolePrompter:
    """Interactive questions asked on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(self, message: str, default: str = "") -> str:
        """Returns the raw answer; an empty answer means 'use the default'."""
        suffix = f" (default: [bold]{default}[/bold])" if default else ""
        return Prompt.ask(f"{message}{suffix}", default="", show_default=False, console=self.console)

    def confirm(self, message: str) -> bool:
        return Confirm.ask(message, default=False, console=self.console)


class Prompter(Protocol):
    """What the pipeline needs from an interactive front end."""

    def ask(self, message: str, default: str = "") -> str: ...

    def confirm(self, message: str) -> bool: ...
