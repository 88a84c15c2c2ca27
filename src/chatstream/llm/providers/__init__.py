from .anthropic import AnthropicBackend
from .openai import AzureOpenAIBackend, OpenAIBackend

__all__ = ["AnthropicBackend", "AzureOpenAIBackend", "OpenAIBackend"]
