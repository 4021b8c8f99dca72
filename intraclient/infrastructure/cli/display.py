import json
import logging
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.box import ROUNDED
from rich.text import Text

from intraclient.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self):
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays an API payload, pretty-printing JSON-compatible values.

        Args:
            output: Decoded payload to display.
            **kwargs: Additional arguments including:
                - title: Optional line printed above the payload
        """
        title = kwargs.get("title")
        if title:
            self._console.print(f"[bold cyan]{title}[/bold cyan]")
        if output is None:
            self._console.print("[dim]null[/dim]")
            return
        if isinstance(output, str):
            self._console.print(output, markup=False, highlight=False)
            return
        try:
            self._console.print_json(json.dumps(output, ensure_ascii=False, default=str))
        except (TypeError, ValueError) as e:
            logger.debug(f"Falling back to repr output: {e}")
            self._console.print(repr(output))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a red panel."""
        details = kwargs.get("details")
        body = error_message if details is None else f"{error_message}\n\n{details}"
        self._console.print(Panel(Text(body), title="Error", border_style="red", box=ROUNDED))

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        self._console.print(Text(info_message, style="blue"))
