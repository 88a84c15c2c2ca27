from typing import Any

from .base import ChatBackend
from .providers import AnthropicBackend, AzureOpenAIBackend, OpenAIBackend


def create_chat_backend(provider: str, **config: Any) -> ChatBackend:
    """Create a chat backend instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('openai', 'azure', 'anthropic')
        **config: Provider-specific configuration
            For OpenAI:
                - api_key: str (required)
                - model: str (default: 'gpt-4o-mini')
                - base_url: str | None
                - organization: str | None
            For Azure OpenAI:
                - api_key: str (required)
                - endpoint: str (required)
                - deployment: str (required)
                - api_version: str (default: '2024-06-01')
            For Anthropic (Claude):
                - api_key: str (required)
                - model: str (default: 'claude-sonnet-4-20250514')
                - base_url: str | None

    Returns:
        Initialized chat backend instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> backend = create_chat_backend(
        ...     "azure",
        ...     api_key="...",
        ...     endpoint="https://my-resource.openai.azure.com",
        ...     deployment="gpt-4o-mini"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAIBackend(**config)

    if provider_lower in ("azure", "azure_openai"):
        for key in ("api_key", "endpoint", "deployment"):
            if key not in config:
                raise TypeError(f"Azure OpenAI provider requires '{key}' in config")
        return AzureOpenAIBackend(**config)

    if provider_lower in ("anthropic", "claude"):
        if "api_key" not in config:
            raise TypeError("Anthropic provider requires 'api_key' in config")
        return AnthropicBackend(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openai', 'azure', 'anthropic'"
    )
