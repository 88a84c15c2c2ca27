"""Pytest configuration and shared fixtures."""
import os
from collections.abc import AsyncIterator
from typing import Any

import pytest

from chatstream.llm import ChatBackend, ConversationHistory, Fragment, ModelResult, Role
from chatstream.llm.models import TextCompletionResponse


class FakeBackend(ChatBackend):
    """In-memory backend that replays a fixed list of fragments.

    If ``error`` is given it is raised after ``fail_after`` fragments
    have been yielded.
    """

    def __init__(
        self,
        fragments: list[Fragment] | None = None,
        error: Exception | None = None,
        fail_after: int = 0,
    ):
        self.fragments = list(fragments or [])
        self.error = error
        self.fail_after = fail_after
        self.calls: list[dict[str, Any]] = []
        self.streams_opened = 0
        self.streams_closed = 0
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def produce_stream(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> AsyncIterator[Fragment]:
        self.calls.append({"turns": len(history), "temperature": temperature, **kwargs})
        self.streams_opened += 1
        try:
            for index, fragment in enumerate(self.fragments):
                if self.error is not None and index == self.fail_after:
                    raise self.error
                yield fragment
            if self.error is not None:
                raise self.error
        finally:
            self.streams_closed += 1

    async def complete(
        self,
        history: ConversationHistory,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> ModelResult[TextCompletionResponse]:
        text = "".join(f.content_delta for f in self.fragments)
        return ModelResult.of(TextCompletionResponse(generated_text=text))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
        "anthropic": os.getenv("ANTHROPIC_API_KEY"),
    }


@pytest.fixture
def librarian_history():
    """History seeded with a system turn and one user question."""
    history = ConversationHistory.new_chat("You are a librarian")
    history.add_user_message("Hi, I'm looking for book suggestions")
    return history


@pytest.fixture
def scenario_a_fragments():
    """Role announcement followed by two content deltas."""
    return [
        Fragment(role=Role.ASSISTANT, content_delta=""),
        Fragment(content_delta="Try "),
        Fragment(content_delta="'Sapiens'."),
    ]


@pytest.fixture
def make_backend():
    """Factory for FakeBackend instances."""
    return FakeBackend
