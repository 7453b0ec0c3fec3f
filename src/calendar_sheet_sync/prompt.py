"""
Console implementation of the user-prompt interface.
"""

import typer
from rich.console import Console


class ConsolePrompt:
    """Alerts go to the console; confirmations use typer's yes/no prompt."""

    def __init__(self, console: Console = None, assume_yes: bool = False):
        self.console = console or Console()
        self.assume_yes = assume_yes

    def alert(self, message: str) -> None:
        self.console.print(f"[bold yellow]![/] {message}", highlight=False)

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            self.console.print(f"{message} [dim](yes, --yes given)[/dim]")
            return True
        return typer.confirm(message, default=False)
