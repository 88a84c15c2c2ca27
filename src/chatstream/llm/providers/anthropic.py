"""Anthropic Claude chat backend.

Uses the official Anthropic Python SDK for async streaming messages.
Reference: https://github.com/anthropics/anthropic-sdk-python
"""

from collections.abc import AsyncIterator
from typing import Any

from anthropic import AsyncAnthropic

from ..base import ChatBackend
from ..models import AnthropicMessageResult, ConversationHistory, Fragment, Role
from ..results import ModelResult


class AnthropicBackend(ChatBackend):
    """Anthropic Claude chat backend.

    Hidden design decisions:
    - Anthropic API client initialization
    - Message format conversion (system message handling)
    - Mapping of stream events to Fragments
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize Anthropic backend.

        Args:
            api_key: Anthropic API key
            model: Default model to use (default: claude-sonnet-4-20250514)
            base_url: Optional custom API base URL
            **client_kwargs: Additional kwargs for AsyncAnthropic client
        """
        self._model = model
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            **client_kwargs
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def _request_params(
        self,
        history: ConversationHistory,
        temperature: float,
        max_tokens: int | None,
        **kwargs: Any
    ) -> dict[str, Any]:
        # Anthropic takes system turns as a separate parameter
        system_parts = []
        anthropic_messages = []

        for turn in history:
            if turn.role == Role.SYSTEM:
                system_parts.append(turn.content)
            else:
                anthropic_messages.append({"role": turn.role.value, "content": turn.content})

        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": anthropic_messages,
            "temperature": temperature,
            "max_tokens": max_tokens or 4096,  # Anthropic requires max_tokens
            **kwargs
        }

        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)

        return request_params

    async def produce_stream(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> AsyncIterator[Fragment]:
        """Stream a message as Fragments.

        ``message_start`` announces the role; ``content_block_delta``
        events carry text. Other events are skipped.
        """
        request_params = self._request_params(history, temperature, max_tokens, **kwargs)

        async with self._client.messages.stream(**request_params) as stream:
            async for event in stream:
                event_type = getattr(event, "type", None)
                if event_type == "message_start":
                    yield Fragment(role=Role(event.message.role))
                elif (
                    event_type == "content_block_delta"
                    and hasattr(event.delta, "text")
                ):
                    yield Fragment(content_delta=event.delta.text)

    async def complete(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> ModelResult[AnthropicMessageResult]:
        """Generate a message using Anthropic Claude.

        Returns:
            ModelResult wrapping an AnthropicMessageResult
        """
        request_params = self._request_params(history, temperature, max_tokens, **kwargs)
        response = await self._client.messages.create(**request_params)

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens
            }

        return ModelResult.of(AnthropicMessageResult.from_blocks(
            response.content,
            id=response.id,
            model=response.model,
            stop_reason=response.stop_reason,
            usage=usage,
        ))

    async def close(self) -> None:
        """Close the Anthropic client."""
        await self._client.close()
