from .base import ChatBackend
from .factory import create_chat_backend
from .models import (
    AnthropicMessageResult,
    ConversationHistory,
    Fragment,
    OpenAIChatResult,
    Role,
    TextCompletionResponse,
    Turn,
)
from .providers import AnthropicBackend, AzureOpenAIBackend, OpenAIBackend
from .results import (
    ModelResult,
    get_anthropic_result,
    get_openai_result,
    get_text_completion_result,
    project,
)

__all__ = [
    "ChatBackend",
    "create_chat_backend",
    "AnthropicMessageResult",
    "ConversationHistory",
    "Fragment",
    "OpenAIChatResult",
    "Role",
    "TextCompletionResponse",
    "Turn",
    "AnthropicBackend",
    "AzureOpenAIBackend",
    "OpenAIBackend",
    "ModelResult",
    "get_anthropic_result",
    "get_openai_result",
    "get_text_completion_result",
    "project",
]
