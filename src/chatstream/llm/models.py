from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a conversation turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """One finalized, attributed message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Role of the message author")
    content: str = Field(description="Content of the message")


class Fragment(BaseModel):
    """One incremental piece of a streamed response.

    The first fragment of a stream usually carries the responding role;
    the rest carry content deltas. Either may be absent.
    """

    model_config = ConfigDict(frozen=True)

    role: Role | None = Field(default=None, description="Responding role, if announced")
    content_delta: str = Field(default="", description="Text appended by this fragment")

    @property
    def is_noop(self) -> bool:
        """True when the fragment carries neither a role nor content."""
        return self.role is None and not self.content_delta


class ConversationHistory:
    """Ordered, append-only sequence of turns for a single session.

    Turns are frozen once appended and there is no removal API.
    Concurrent sessions must each use their own instance.
    """

    def __init__(self, turns: list[Turn] | None = None):
        self._turns: list[Turn] = list(turns or [])

    @classmethod
    def new_chat(cls, instructions: str | None = None) -> "ConversationHistory":
        """Create a history, seeded with a system turn when instructions are given."""
        history = cls()
        if instructions:
            history.add_system_message(instructions)
        return history

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Snapshot of the turns in order."""
        return tuple(self._turns)

    def append(self, turn: Turn) -> None:
        """Append an already built turn."""
        self._turns.append(turn)

    def add_message(self, role: Role | str, content: str) -> Turn:
        """Append a new turn authored by ``role``.

        Raises:
            ValueError: If content is empty
        """
        if not content:
            raise ValueError("Message content cannot be empty")
        turn = Turn(role=Role(role), content=content)
        self._turns.append(turn)
        return turn

    def add_system_message(self, content: str) -> Turn:
        return self.add_message(Role.SYSTEM, content)

    def add_user_message(self, content: str) -> Turn:
        return self.add_message(Role.USER, content)

    def add_assistant_message(self, content: str) -> Turn:
        return self.add_message(Role.ASSISTANT, content)

    def last(self) -> Turn:
        """Return the most recent turn.

        Raises:
            IndexError: If the history is empty
        """
        if not self._turns:
            raise IndexError("Conversation history is empty")
        return self._turns[-1]

    def to_messages(self) -> list[dict[str, str]]:
        """Convert to the role/content dicts accepted by chat completion APIs."""
        return [{"role": turn.role.value, "content": turn.content} for turn in self._turns]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    def __repr__(self) -> str:
        return f"ConversationHistory(turns={len(self._turns)})"


class TextCompletionResponse(BaseModel):
    """Plain text completion payload (Hugging Face style inference result)."""

    model_config = ConfigDict(frozen=True)

    generated_text: str = Field(description="Generated text")


class OpenAIChatResult(BaseModel):
    """Non-streaming chat completion payload from OpenAI or Azure OpenAI."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Completion identifier")
    model: str = Field(description="Model or deployment that produced the completion")
    role: Role = Field(default=Role.ASSISTANT)
    content: str = Field(description="Generated text content")
    finish_reason: str | None = Field(default=None)
    usage: dict[str, int] | None = Field(default=None, description="Token usage information")


class AnthropicMessageResult(BaseModel):
    """Non-streaming message payload from Anthropic."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Message identifier")
    model: str = Field(description="Model that produced the message")
    role: Role = Field(default=Role.ASSISTANT)
    content: str = Field(description="Concatenated text blocks")
    stop_reason: str | None = Field(default=None)
    usage: dict[str, int] | None = Field(default=None, description="Token usage information")

    @classmethod
    def from_blocks(cls, blocks: list[Any], **fields: Any) -> "AnthropicMessageResult":
        """Build from SDK content blocks, keeping only text blocks."""
        content = "".join(block.text for block in blocks if hasattr(block, "text"))
        return cls(content=content, **fields)
