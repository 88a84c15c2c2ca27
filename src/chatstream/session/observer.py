"""Observer interface for streaming progress.

Hides how a caller displays partial output. The coordinator only calls
these two methods, in fragment arrival order, and never touches I/O itself.
"""

from typing import Protocol, runtime_checkable

from ..llm.models import Role


@runtime_checkable
class StreamObserver(Protocol):
    """Receives real-time notifications while a turn is streamed."""

    def on_role_announced(self, role: Role) -> None:
        """Called at most once per turn, before any content."""

    def on_content(self, delta: str) -> None:
        """Called for every non-empty content delta."""


class NullObserver:
    """Observer that ignores all notifications."""

    def on_role_announced(self, role: Role) -> None:
        pass

    def on_content(self, delta: str) -> None:
        pass


class RecordingObserver:
    """Observer that records every notification in order.

    Events are stored as ``("role", Role)`` or ``("content", str)`` tuples.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, Role | str]] = []

    def on_role_announced(self, role: Role) -> None:
        self.events.append(("role", role))

    def on_content(self, delta: str) -> None:
        self.events.append(("content", delta))

    @property
    def text(self) -> str:
        """All content deltas joined together."""
        return "".join(value for kind, value in self.events if kind == "content")

    def clear(self) -> None:
        self.events.clear()
