"""Streaming session coordinator.

Folds a backend's fragment stream into a conversation history as a single
finalized turn while echoing partial output to an observer.

Hidden design decisions:
- When partial content becomes visible (observer only, never history)
- How backend failures are reported (BackendError, nothing committed)
- How backend stream resources are released (scoped around iteration)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing, nullcontext
from enum import Enum
from typing import Any

from ..exceptions import BackendError
from ..llm.base import ChatBackend
from ..llm.models import ConversationHistory, Fragment, Role, Turn
from .observer import NullObserver, StreamObserver

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """Lifecycle of a single stream_turn invocation."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


def _scoped(stream: AsyncIterator[Fragment]) -> Any:
    # Async generators get aclose() on exit; plain iterators own no resources here
    if hasattr(stream, "aclose"):
        return aclosing(stream)
    return nullcontext(stream)


def _check_preconditions(history: ConversationHistory, role: Role) -> None:
    if len(history) == 0:
        raise ValueError("Cannot stream a turn into an empty conversation history")
    if history.last().role == role:
        raise ValueError(
            f"Last turn is already from '{role.value}'; "
            f"add a turn from another role before streaming"
        )


class StreamingSessionCoordinator:
    """Streams one turn at a time from a backend into a conversation history.

    The coordinator keeps no data between calls; ``state`` reflects only the
    most recent invocation. Use one history per session; a coordinator and
    its backend may be shared across sessions that run one after another.

    Usage:
        coordinator = StreamingSessionCoordinator(backend, observer)
        history = ConversationHistory.new_chat("You are a librarian")
        history.add_user_message("Any book suggestions?")
        turn = await coordinator.stream_turn(history)
    """

    def __init__(
        self,
        backend: ChatBackend,
        observer: StreamObserver | None = None,
        **stream_kwargs: Any
    ):
        """Initialize the coordinator.

        Args:
            backend: Backend that produces fragment streams
            observer: Receives role and content notifications (default: none)
            **stream_kwargs: Passed through to ``backend.produce_stream``
        """
        self._backend = backend
        self._observer: StreamObserver = observer or NullObserver()
        self._stream_kwargs = stream_kwargs
        self._state = StreamState.IDLE

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def backend(self) -> ChatBackend:
        return self._backend

    async def stream_turn(
        self,
        history: ConversationHistory,
        role: Role = Role.ASSISTANT,
    ) -> Turn:
        """Stream one turn from the backend and append it to history.

        Args:
            history: Non-empty history whose last turn is not from ``role``
            role: Role of the turn being produced

        Returns:
            The appended turn

        Raises:
            ValueError: If the history violates the preconditions; the
                backend is not called
            BackendError: If the backend fails before or during streaming;
                history is left unchanged
        """
        self._state = StreamState.IDLE
        _check_preconditions(history, role)

        self._state = StreamState.STREAMING
        logger.debug(
            "Streaming %s turn from %s (%d turns in history)",
            role.value, self._backend.provider_name, len(history)
        )

        try:
            content = await self._consume(history)
        except BaseException:
            self._state = StreamState.FAILED
            raise

        turn = Turn(role=role, content=content)
        history.append(turn)
        self._state = StreamState.COMPLETED
        logger.debug("Committed %s turn (%d chars)", role.value, len(content))
        return turn

    async def _consume(self, history: ConversationHistory) -> str:
        """Drain the backend stream, notifying the observer as fragments arrive."""
        parts: list[str] = []
        role_announced = False

        try:
            stream = self._backend.produce_stream(history, **self._stream_kwargs)
        except BackendError:
            raise
        except Exception as e:
            raise self._backend_error(e) from e

        async with _scoped(stream):
            while True:
                try:
                    fragment = await anext(stream)
                except StopAsyncIteration:
                    break
                except BackendError:
                    raise
                except Exception as e:
                    raise self._backend_error(e) from e

                if fragment.is_noop:
                    continue

                if fragment.role is not None and not role_announced:
                    # A role arriving after content has been emitted is ignored
                    role_announced = True
                    if not parts:
                        self._observer.on_role_announced(fragment.role)

                if fragment.content_delta:
                    parts.append(fragment.content_delta)
                    self._observer.on_content(fragment.content_delta)

        return "".join(parts)

    def _backend_error(self, error: Exception) -> BackendError:
        logger.warning(
            "Backend %s failed while streaming: %s",
            self._backend.provider_name, error
        )
        return BackendError(
            f"{self._backend.provider_name} stream failed: {error}",
            provider=self._backend.provider_name,
            model=self._backend.model,
        )


async def stream_turn(
    history: ConversationHistory,
    role: Role,
    backend: ChatBackend,
    observer: StreamObserver | None = None,
) -> Turn:
    """Stream one turn from ``backend`` into ``history``.

    Convenience wrapper around StreamingSessionCoordinator.stream_turn.
    """
    coordinator = StreamingSessionCoordinator(backend, observer)
    return await coordinator.stream_turn(history, role)
