from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI

from ..base import ChatBackend
from ..models import ConversationHistory, Fragment, OpenAIChatResult, Role
from ..results import ModelResult


def _to_role(value: str | None) -> Role | None:
    """Map an OpenAI role string to a Role, ignoring roles we do not model."""
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


class OpenAIBackend(ChatBackend):
    """OpenAI chat completion backend.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion
    - Mapping of streamed chunk deltas to Fragments
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI backend.

        Args:
            api_key: OpenAI API key
            model: Default chat model
            base_url: Optional custom API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._client: AsyncOpenAI = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def provider_name(self) -> str:
        return "openai"

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
        # Only include max_tokens if set
        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": history.to_messages(),
            "temperature": temperature,
            **kwargs
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        return request_params

    async def produce_stream(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> AsyncIterator[Fragment]:
        """Stream a chat completion as Fragments.

        The first chunk of a Chat Completions stream carries
        ``delta.role``; later chunks carry ``delta.content``.
        """
        request_params = self._request_params(history, temperature, max_tokens, **kwargs)
        request_params["stream"] = True

        stream = await self._client.chat.completions.create(**request_params)

        try:
            async for chunk in stream:
                # Usage-only chunks have no choices
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                yield Fragment(
                    role=_to_role(getattr(delta, "role", None)),
                    content_delta=delta.content or "",
                )
        finally:
            # Releases the HTTP response when the consumer stops early
            await stream.close()

    async def complete(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> ModelResult[OpenAIChatResult]:
        """Generate a chat completion using OpenAI.

        Returns:
            ModelResult wrapping an OpenAIChatResult
        """
        request_params = self._request_params(history, temperature, max_tokens, **kwargs)
        completion = await self._client.chat.completions.create(**request_params)

        usage = None
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        choice = completion.choices[0]
        return ModelResult.of(OpenAIChatResult(
            id=completion.id,
            model=completion.model,
            role=_to_role(choice.message.role) or Role.ASSISTANT,
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            usage=usage,
        ))

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()


class AzureOpenAIBackend(OpenAIBackend):
    """Azure OpenAI chat completion backend.

    Azure addresses models by deployment name, so ``model`` is the
    deployment rather than the underlying model id.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        deployment: str,
        api_version: str = "2024-06-01",
        **client_kwargs: Any
    ):
        """Initialize Azure OpenAI backend.

        Args:
            api_key: Azure OpenAI resource key
            endpoint: Resource endpoint, e.g. https://my-resource.openai.azure.com
            deployment: Chat model deployment name
            api_version: Azure OpenAI REST API version
            **client_kwargs: Additional kwargs for AsyncAzureOpenAI client
        """
        self._model = deployment
        self._client = AsyncAzureOpenAI(
            api_key=api_key,
            azure_endpoint=endpoint,
            api_version=api_version,
            **client_kwargs
        )

    @property
    def provider_name(self) -> str:
        return "azure"
