"""Backend factory functions for CLI.

Centralizes creation of chat backends from environment variables.
Hides configuration details from command implementations.
"""

import os
from typing import Any

from pydantic import BaseModel, Field
from rich.console import Console

from ..llm import ChatBackend, create_chat_backend

# Default console for output
_console = Console()

SUPPORTED_PROVIDERS = ("openai", "azure", "anthropic")

PROVIDER_TITLES = {
    "openai": "Open AI",
    "azure": "Azure Open AI",
    "anthropic": "Anthropic",
}


class BackendSettings(BaseModel):
    """Resolved configuration for one provider."""

    provider: str = Field(description="Provider identifier")
    api_key: str = Field(description="API key or resource key")
    model: str = Field(description="Model id, or deployment name for Azure")
    endpoint: str | None = Field(default=None, description="API endpoint or base URL")
    api_version: str | None = Field(default=None, description="Azure OpenAI API version")

    def to_backend_config(self) -> dict[str, Any]:
        """Keyword arguments for create_chat_backend."""
        if self.provider == "azure":
            return {
                "api_key": self.api_key,
                "endpoint": self.endpoint,
                "deployment": self.model,
                "api_version": self.api_version,
            }
        config: dict[str, Any] = {"api_key": self.api_key, "model": self.model}
        if self.endpoint:
            config["base_url"] = self.endpoint
        return config


def load_backend_settings(provider: str) -> BackendSettings | None:
    """Read one provider's settings from environment variables.

    Args:
        provider: Provider type (openai, azure, anthropic)

    Returns:
        BackendSettings, or None if required variables are missing

    Raises:
        ValueError: If the provider is not supported

    Environment variables:
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        OPENAI_CHAT_MODEL: OpenAI model (default: gpt-4o-mini)
        OPENAI_BASE_URL: Optional OpenAI-compatible base URL
        AZURE_OPENAI_API_KEY: Azure OpenAI key (for azure provider)
        AZURE_OPENAI_ENDPOINT: Azure OpenAI resource endpoint
        AZURE_OPENAI_DEPLOYMENT: Azure chat deployment name
        AZURE_OPENAI_API_VERSION: Azure API version (default: 2024-06-01)
        ANTHROPIC_API_KEY: Anthropic API key (for anthropic provider)
        ANTHROPIC_MODEL: Anthropic model (default: claude-sonnet-4-20250514)
    """
    provider = provider.lower()

    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            return None
        return BackendSettings(
            provider="openai",
            api_key=api_key,
            model=os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini"),
            endpoint=os.getenv("OPENAI_BASE_URL") or None,
        )

    if provider == "azure":
        api_key = os.getenv("AZURE_OPENAI_API_KEY")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT")
        if not (api_key and endpoint and deployment):
            return None
        return BackendSettings(
            provider="azure",
            api_key=api_key,
            model=deployment,
            endpoint=endpoint,
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01"),
        )

    if provider in ("anthropic", "claude"):
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            return None
        return BackendSettings(
            provider="anthropic",
            api_key=api_key,
            model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514"),
        )

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
    )


def configured_providers() -> list[str]:
    """Return every supported provider whose credentials are present."""
    return [p for p in SUPPORTED_PROVIDERS if load_backend_settings(p) is not None]


def get_backend(provider: str, console: Console | None = None) -> ChatBackend | None:
    """Create a chat backend from environment variables.

    Args:
        provider: Provider type
        console: Optional Rich console for output

    Returns:
        Chat backend instance, or None if not configured
    """
    con = console or _console
    try:
        settings = load_backend_settings(provider)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        return None

    if settings is None:
        con.print(f"[yellow]Warning: {provider} credentials not set, skipping[/yellow]")
        return None

    return create_chat_backend(settings.provider, **settings.to_backend_config())


def require_backend(provider: str, console: Console | None = None) -> ChatBackend:
    """Get a chat backend, raising error if not configured.

    Raises:
        SystemExit: If the backend is not configured
    """
    import typer

    con = console or _console
    backend = get_backend(provider, con)
    if not backend:
        con.print(f"[red]Error: {provider} backend not configured[/red]")
        raise typer.Exit(code=1)
    return backend
