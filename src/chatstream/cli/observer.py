"""Console rendering of streamed turns."""

from rich.console import Console
from rich.text import Text

from ..llm.models import ConversationHistory, Role

SEPARATOR = "------------------------"


class ConsoleObserver:
    """Writes streamed tokens to a Rich console as they arrive.

    Content is written without markup parsing so model output containing
    square brackets is printed verbatim.
    """

    def __init__(self, console: Console) -> None:
        self.console = console
        self._wrote_content = False

    def on_role_announced(self, role: Role) -> None:
        self.console.print(Text(f"{role.value}: ", style="bold cyan"), end="")

    def on_content(self, delta: str) -> None:
        self._wrote_content = True
        self.console.print(delta, end="", markup=False, highlight=False, soft_wrap=True)

    def end_turn(self) -> None:
        """Finish the current turn's output with a separator line."""
        if self._wrote_content:
            self.console.print()
        self.console.print(SEPARATOR)
        self._wrote_content = False


def print_last_message(console: Console, history: ConversationHistory) -> None:
    """Print the most recent turn followed by a separator."""
    message = history.last()
    console.print(Text(f"{message.role.value}: ", style="bold"), end="")
    console.print(message.content, markup=False, highlight=False)
    console.print(SEPARATOR)
