"""Error taxonomy for chatstream.

Two failure modes exist:
- BackendError: the backend failed to set up or continue a stream
- ShapeMismatchError: a ModelResult was projected to an incompatible type

Neither is retried or suppressed here; callers decide what to do.
"""

from typing import Any


class ChatStreamError(Exception):
    """Base class for all chatstream errors."""


class BackendError(ChatStreamError):
    """A backend failed before or during streaming.

    The original exception (transport fault, malformed response, SDK error)
    is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model


class ShapeMismatchError(ChatStreamError, TypeError):
    """A ModelResult payload is not an instance of the requested shape."""

    def __init__(self, expected: Any, actual: type):
        expected_name = getattr(expected, "__name__", repr(expected))
        super().__init__(
            f"Cannot project result of type {actual.__name__} "
            f"to {expected_name}"
        )
        self.expected = expected
        self.actual = actual
