"""
Chatstream: streaming chat completions folded into conversation history.

Backends, observers and result types are separate modules so that each
hides one design decision: which provider answers, how partial output
is displayed, and what shape a provider's raw result has.
"""

__version__ = "0.1.0"

from .exceptions import BackendError, ChatStreamError, ShapeMismatchError
from .llm import (
    ChatBackend,
    ConversationHistory,
    Fragment,
    ModelResult,
    Role,
    Turn,
    create_chat_backend,
    project,
)
from .session import (
    NullObserver,
    RecordingObserver,
    StreamingSessionCoordinator,
    StreamObserver,
    stream_turn,
)

__all__ = [
    "BackendError",
    "ChatStreamError",
    "ShapeMismatchError",
    "ChatBackend",
    "ConversationHistory",
    "Fragment",
    "ModelResult",
    "Role",
    "Turn",
    "create_chat_backend",
    "project",
    "NullObserver",
    "RecordingObserver",
    "StreamingSessionCoordinator",
    "StreamObserver",
    "stream_turn",
]
