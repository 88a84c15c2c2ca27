"""Provider result wrapper and checked projection.

A backend wraps its provider-specific payload in a ModelResult so that
callers can handle completions uniformly. ``project`` narrows the wrapper
back to the concrete payload type, failing loudly on a mismatch instead
of returning a wrongly typed object.
"""

from typing import Any, Generic, TypeVar

from ..exceptions import ShapeMismatchError
from .models import AnthropicMessageResult, OpenAIChatResult, TextCompletionResponse

T = TypeVar("T")


class ModelResult(Generic[T]):
    """Opaque wrapper around one provider-specific payload.

    The tag records the payload's type name at construction time and is
    used in error messages and for logging.
    """

    __slots__ = ("_payload", "_tag")

    def __init__(self, payload: T, tag: str | None = None):
        self._payload = payload
        self._tag = tag or type(payload).__name__

    @classmethod
    def of(cls, payload: T) -> "ModelResult[T]":
        """Wrap a payload, tagging it with its runtime type."""
        return cls(payload)

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def payload_type(self) -> type:
        return type(self._payload)

    def __repr__(self) -> str:
        return f"ModelResult(tag={self._tag!r})"


def project(result: ModelResult[Any], shape: type[T]) -> T:
    """Return the wrapped payload as ``shape``.

    The payload object itself is returned; nothing is copied or converted.

    Args:
        result: Wrapper produced by a backend
        shape: Expected payload type; must be a runtime class

    Returns:
        The payload, typed as ``shape``

    Raises:
        ShapeMismatchError: If the payload is not an instance of ``shape``,
            or ``shape`` cannot be checked with isinstance
    """
    payload = result._payload
    try:
        matches = isinstance(payload, shape)
    except TypeError as e:
        # Subscripted generics such as list[int] cannot be checked at runtime
        raise ShapeMismatchError(expected=shape, actual=type(payload)) from e
    if not matches:
        raise ShapeMismatchError(expected=shape, actual=type(payload))
    return payload


def get_text_completion_result(result: ModelResult[Any]) -> TextCompletionResponse:
    """Retrieve a typed text completion payload from a ModelResult."""
    return project(result, TextCompletionResponse)


def get_openai_result(result: ModelResult[Any]) -> OpenAIChatResult:
    """Retrieve a typed OpenAI chat completion payload from a ModelResult."""
    return project(result, OpenAIChatResult)


def get_anthropic_result(result: ModelResult[Any]) -> AnthropicMessageResult:
    """Retrieve a typed Anthropic message payload from a ModelResult."""
    return project(result, AnthropicMessageResult)
