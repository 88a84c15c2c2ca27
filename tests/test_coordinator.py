"""Unit tests for the streaming session coordinator."""
import asyncio

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from chatstream import BackendError
from chatstream.llm import ConversationHistory, Fragment, Role, Turn
from chatstream.session import (
    RecordingObserver,
    StreamingSessionCoordinator,
    StreamState,
    stream_turn,
)

fragments_strategy = st.lists(
    st.builds(
        Fragment,
        role=st.one_of(st.none(), st.sampled_from(list(Role))),
        content_delta=st.text(max_size=8),
    ),
    max_size=12,
)


def _history() -> ConversationHistory:
    history = ConversationHistory.new_chat("You are a librarian")
    history.add_user_message("Any suggestions?")
    return history


class TestScenarios:
    """End-to-end scenarios for a single streamed turn."""

    @pytest.mark.asyncio
    async def test_role_then_content(self, make_backend, scenario_a_fragments):
        """Scenario A: role announcement, then two content deltas."""
        history = ConversationHistory.new_chat("You are a librarian")
        history.add_user_message("Hi")
        observer = RecordingObserver()
        coordinator = StreamingSessionCoordinator(make_backend(scenario_a_fragments), observer)

        turn = await coordinator.stream_turn(history, Role.ASSISTANT)

        assert turn == Turn(role=Role.ASSISTANT, content="Try 'Sapiens'.")
        assert history.last() is turn
        assert len(history) == 3
        assert observer.events == [
            ("role", Role.ASSISTANT),
            ("content", "Try "),
            ("content", "'Sapiens'."),
        ]
        assert coordinator.state == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_empty_stream_commits_empty_turn(self, make_backend, librarian_history):
        """Scenario B: an immediately exhausted stream commits an empty turn."""
        observer = RecordingObserver()
        turn = await stream_turn(librarian_history, Role.ASSISTANT, make_backend([]), observer)

        assert turn == Turn(role=Role.ASSISTANT, content="")
        assert len(librarian_history) == 3
        assert observer.events == []

    @pytest.mark.asyncio
    async def test_failure_after_partial_content(self, make_backend, librarian_history):
        """Scenario C: partial content then error leaves history unchanged."""
        backend = make_backend(
            [Fragment(content_delta="partial")],
            error=ConnectionError("connection reset"),
            fail_after=1,
        )
        observer = RecordingObserver()
        coordinator = StreamingSessionCoordinator(backend, observer)

        with pytest.raises(BackendError) as exc_info:
            await coordinator.stream_turn(librarian_history)

        assert len(librarian_history) == 2
        assert librarian_history.last().role == Role.USER
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.provider == "fake"
        assert exc_info.value.model == "fake-model"
        # Partial output was visible only through the observer
        assert observer.text == "partial"
        assert coordinator.state == StreamState.FAILED


class TestProperties:
    """Property-based checks over arbitrary fragment sequences."""

    @given(fragments=fragments_strategy)
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_commit_is_concatenation_of_deltas(self, make_backend, fragments):
        """A completed stream appends exactly one turn holding all deltas in order."""
        history = _history()
        before = len(history)

        turn = asyncio.run(stream_turn(history, Role.ASSISTANT, make_backend(fragments)))

        assert len(history) == before + 1
        assert turn.content == "".join(f.content_delta for f in fragments)
        assert history.last() == turn

    @given(fragments=fragments_strategy, data=st.data())
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_failure_never_commits(self, make_backend, fragments, data):
        """An error after any number of fragments leaves history length unchanged."""
        fail_after = data.draw(st.integers(min_value=0, max_value=len(fragments)))
        history = _history()
        before = history.turns
        backend = make_backend(fragments, error=RuntimeError("boom"), fail_after=fail_after)

        with pytest.raises(BackendError):
            asyncio.run(stream_turn(history, Role.ASSISTANT, backend))

        assert history.turns == before

    @given(fragments=fragments_strategy)
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_observer_sees_content_in_arrival_order(self, make_backend, fragments):
        """Observer content events are the non-empty deltas in arrival order."""
        observer = RecordingObserver()
        asyncio.run(stream_turn(_history(), Role.ASSISTANT, make_backend(fragments), observer))

        contents = [value for kind, value in observer.events if kind == "content"]
        assert contents == [f.content_delta for f in fragments if f.content_delta]
        roles = [value for kind, value in observer.events if kind == "role"]
        assert len(roles) <= 1

        first_role = next((i for i, f in enumerate(fragments) if f.role is not None), None)
        first_content = next((i for i, f in enumerate(fragments) if f.content_delta), None)
        if first_role is not None and (first_content is None or first_role <= first_content):
            assert observer.events[0] == ("role", fragments[first_role].role)


class TestRoleAnnouncement:
    """Tests for role announcement ordering."""

    @pytest.mark.asyncio
    async def test_role_and_content_in_same_fragment(self, make_backend, librarian_history):
        """Role is emitted before content carried by the same fragment."""
        observer = RecordingObserver()
        backend = make_backend([Fragment(role=Role.ASSISTANT, content_delta="Hello")])

        await stream_turn(librarian_history, Role.ASSISTANT, backend, observer)

        assert observer.events == [("role", Role.ASSISTANT), ("content", "Hello")]

    @pytest.mark.asyncio
    async def test_first_role_wins(self, make_backend, librarian_history):
        """Only the first role-bearing fragment is announced."""
        observer = RecordingObserver()
        backend = make_backend([
            Fragment(role=Role.ASSISTANT),
            Fragment(role=Role.ASSISTANT, content_delta="a"),
            Fragment(role=Role.SYSTEM, content_delta="b"),
        ])

        turn = await stream_turn(librarian_history, Role.ASSISTANT, backend, observer)

        assert observer.events == [
            ("role", Role.ASSISTANT),
            ("content", "a"),
            ("content", "b"),
        ]
        assert turn.content == "ab"

    @pytest.mark.asyncio
    async def test_role_after_content_is_ignored(self, make_backend, librarian_history):
        """A role arriving after content has been emitted produces no event."""
        observer = RecordingObserver()
        backend = make_backend([
            Fragment(content_delta="Hi"),
            Fragment(role=Role.ASSISTANT, content_delta=" there"),
        ])

        turn = await stream_turn(librarian_history, Role.ASSISTANT, backend, observer)

        assert observer.events == [("content", "Hi"), ("content", " there")]
        assert turn.content == "Hi there"

    @pytest.mark.asyncio
    async def test_noop_fragments_are_inert(self, make_backend, librarian_history):
        """Fragments with no role and no content produce no events."""
        observer = RecordingObserver()
        backend = make_backend([
            Fragment(),
            Fragment(content_delta="x"),
            Fragment(),
            Fragment(content_delta="y"),
            Fragment(),
        ])

        turn = await stream_turn(librarian_history, Role.ASSISTANT, backend, observer)

        assert observer.events == [("content", "x"), ("content", "y")]
        assert turn.content == "xy"


class TestPreconditions:
    """Tests for history preconditions checked before streaming."""

    @pytest.mark.asyncio
    async def test_empty_history_rejected(self, make_backend):
        backend = make_backend([Fragment(content_delta="x")])
        coordinator = StreamingSessionCoordinator(backend)

        with pytest.raises(ValueError, match="empty"):
            await coordinator.stream_turn(ConversationHistory())

        assert backend.calls == []
        assert coordinator.state == StreamState.IDLE

    @pytest.mark.asyncio
    async def test_back_to_back_same_role_rejected(self, make_backend, librarian_history):
        librarian_history.add_assistant_message("Try 'Sapiens'.")
        backend = make_backend([Fragment(content_delta="x")])

        with pytest.raises(ValueError, match="assistant"):
            await stream_turn(librarian_history, Role.ASSISTANT, backend)

        assert backend.calls == []
        assert len(librarian_history) == 3

    @pytest.mark.asyncio
    async def test_other_role_can_be_streamed(self, make_backend, librarian_history):
        """Streaming a user turn after an assistant turn is allowed."""
        librarian_history.add_assistant_message("What do you like?")
        backend = make_backend([Fragment(role=Role.USER, content_delta="History")])

        turn = await stream_turn(librarian_history, Role.USER, backend)

        assert turn == Turn(role=Role.USER, content="History")


class TestFailureModes:
    """Tests for backend failures, cancellation and resource release."""

    @pytest.mark.asyncio
    async def test_setup_failure_is_backend_error(self, make_backend, librarian_history):
        """A backend that fails before yielding anything raises BackendError."""
        backend = make_backend([], error=TimeoutError("no response"))

        with pytest.raises(BackendError, match="no response"):
            await stream_turn(librarian_history, Role.ASSISTANT, backend)

        assert len(librarian_history) == 2

    @pytest.mark.asyncio
    async def test_synchronous_setup_failure_is_backend_error(self, make_backend, librarian_history):
        """produce_stream raising before returning an iterator is wrapped too."""
        backend = make_backend([])

        def broken(history, **kwargs):
            raise KeyError("endpoint")

        backend.produce_stream = broken

        with pytest.raises(BackendError) as exc_info:
            await stream_turn(librarian_history, Role.ASSISTANT, backend)

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert len(librarian_history) == 2

    @pytest.mark.asyncio
    async def test_backend_error_is_not_rewrapped(self, make_backend, librarian_history):
        original = BackendError("rate limited", provider="fake")
        backend = make_backend([Fragment(content_delta="x")], error=original, fail_after=1)

        with pytest.raises(BackendError) as exc_info:
            await stream_turn(librarian_history, Role.ASSISTANT, backend)

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_observer_errors_propagate_unwrapped(self, make_backend, librarian_history):
        """Errors raised by the observer are not reported as backend failures."""

        class BrokenObserver(RecordingObserver):
            def on_content(self, delta):
                raise OSError("stdout closed")

        backend = make_backend([Fragment(content_delta="x")])

        with pytest.raises(OSError, match="stdout closed"):
            await stream_turn(librarian_history, Role.ASSISTANT, backend, BrokenObserver())

        assert len(librarian_history) == 2
        assert backend.streams_closed == 1

    @pytest.mark.asyncio
    async def test_stream_is_closed_after_success(self, make_backend, librarian_history, scenario_a_fragments):
        backend = make_backend(scenario_a_fragments)

        await stream_turn(librarian_history, Role.ASSISTANT, backend)

        assert backend.streams_opened == backend.streams_closed == 1

    @pytest.mark.asyncio
    async def test_cancellation_commits_nothing(self, make_backend, librarian_history):
        """Abandoning consumption mid-stream leaves history unchanged."""
        released = asyncio.Event()

        class HangingBackend(make_backend):
            async def produce_stream(self, history, **kwargs):
                try:
                    yield Fragment(role=Role.ASSISTANT, content_delta="Thinking")
                    await asyncio.Event().wait()
                    yield Fragment(content_delta="never")
                finally:
                    released.set()

        content_seen = asyncio.Event()

        class SignallingObserver(RecordingObserver):
            def on_content(self, delta):
                super().on_content(delta)
                content_seen.set()

        coordinator = StreamingSessionCoordinator(HangingBackend(), SignallingObserver())
        task = asyncio.create_task(coordinator.stream_turn(librarian_history))

        await content_seen.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(librarian_history) == 2
        assert released.is_set()
        assert coordinator.state == StreamState.FAILED


class TestCoordinatorReuse:
    """Tests for running several turns through one coordinator."""

    @pytest.mark.asyncio
    async def test_two_turn_conversation(self, make_backend, scenario_a_fragments):
        backend = make_backend(scenario_a_fragments)
        coordinator = StreamingSessionCoordinator(backend, temperature=0.2)
        history = ConversationHistory.new_chat("You are a librarian, expert about books")

        history.add_user_message("Hi, I'm looking for book suggestions")
        await coordinator.stream_turn(history)
        history.add_user_message("Anything about Greece?")
        await coordinator.stream_turn(history)

        assert [t.role for t in history] == [
            Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT
        ]
        assert [call["turns"] for call in backend.calls] == [2, 4]
        assert all(call["temperature"] == 0.2 for call in backend.calls)

    @pytest.mark.asyncio
    async def test_independent_sessions(self, make_backend, scenario_a_fragments):
        """Concurrent sessions with separate histories do not interfere."""
        backend = make_backend(scenario_a_fragments)
        first, second = _history(), _history()

        await asyncio.gather(
            stream_turn(first, Role.ASSISTANT, backend),
            stream_turn(second, Role.ASSISTANT, backend),
        )

        assert len(first) == len(second) == 3
        assert first.last().content == second.last().content == "Try 'Sapiens'."
