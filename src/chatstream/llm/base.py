from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from .models import ConversationHistory, Fragment
from .results import ModelResult


class ChatBackend(ABC):
    """Abstract base class for chat completion backends.

    This module hides the design decision of which provider answers a chat.
    Implementations must handle provider-specific details like:
    - API client setup and authentication
    - Conversion of the conversation history to the provider's format
    - Translation of provider stream events into Fragments

    Supports async context manager protocol for proper resource cleanup:
        async with backend:
            async for fragment in backend.produce_stream(history):
                ...
        # Automatically cleaned up
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g. 'openai', 'azure', 'anthropic')."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model or deployment used for completions."""

    @abstractmethod
    def produce_stream(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> AsyncIterator[Fragment]:
        """Stream a response to the conversation.

        Args:
            history: Conversation so far; not modified by the backend
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            **kwargs: Provider-specific parameters

        Returns:
            A lazy, finite, non-restartable async iterator of Fragments.
            Provider errors surface while iterating.
        """

    @abstractmethod
    async def complete(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> ModelResult[Any]:
        """Generate a non-streaming completion.

        Returns:
            ModelResult wrapping the provider-specific payload
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "ChatBackend":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
