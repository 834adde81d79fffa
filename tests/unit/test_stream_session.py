"""
Unit tests for StreamSession.

WHAT: Test event emission, first-token timing and terminal guarantees of one session
WHY: Every consumer relies on exactly one terminal event per (config, model) pair
HOW: Drive sessions with MockChatProvider scripts and a stepping clock
"""

import asyncio

import pytest

from llm_playground.llm.session import CANCELLED_MESSAGE, StreamSession, describe_error
from llm_playground.llm.types import (
    ConfigurationError,
    DurationRecord,
    Model,
    ProviderError,
    SessionState,
    UnsupportedProviderError,
    UsageRecord,
)
from tests.fixtures.mock_llm import (
    MockAdapterFactory,
    MockChatProvider,
    Script,
    StepClock,
    make_config,
)

MODEL = Model(id="m1", name="gpt-4o-mini")


def build_session(script: Script, *, clock=None, factory=None, model: Model = MODEL):
    provider = MockChatProvider({model.target: script})
    factory = factory or MockAdapterFactory({"c1": provider})
    session = StreamSession(
        make_config("c1", [model]),
        model,
        "You're a helpful assistant.",
        "hi",
        adapter_factory=factory,
        clock=clock or StepClock(),
    )
    return session, provider


@pytest.mark.unit
class TestSessionSuccess:
    """Test a session that streams to completion."""

    @pytest.mark.asyncio
    async def test_content_then_single_terminal(self):
        usage = UsageRecord(prompt_tokens=10, completion_tokens=2, total_tokens=12)
        session, provider = build_session(Script(tokens=["Hel", "lo"], usage=usage))
        events = []

        await session.run(events.append)

        assert [e.content for e in events[:-1]] == ["Hel", "lo"]
        assert all(not e.is_terminal for e in events[:-1])
        terminal = events[-1]
        assert terminal.is_terminal and not terminal.is_error
        assert terminal.usage == usage
        assert terminal.content == ""
        assert session.state == SessionState.FINISHED
        assert session.fragments == 2
        assert provider.calls[0]["messages"] == [
            {"role": "system", "content": "You're a helpful assistant."},
            {"role": "user", "content": "hi"},
        ]

    @pytest.mark.asyncio
    async def test_first_token_latched_once(self):
        """Clock reads: start=0, first token=1, finish=2."""
        session, _ = build_session(Script(tokens=["a", "b", "c"]))
        events = []

        await session.run(events.append)

        assert events[-1].duration == DurationRecord(total=2.0, first_token=1.0)

    @pytest.mark.asyncio
    async def test_no_content_has_no_first_token(self):
        session, _ = build_session(Script(tokens=[]))
        events = []

        await session.run(events.append)

        assert len(events) == 1
        assert events[0].duration.first_token is None
        assert events[0].duration.total == 1.0

    @pytest.mark.asyncio
    async def test_missing_end_marker_finishes_without_usage(self):
        session, _ = build_session(Script(tokens=["x"], usage=UsageRecord(total_tokens=3), end_marker=False))
        events = []

        await session.run(events.append)

        assert events[-1].duration is not None
        assert events[-1].usage is None

    @pytest.mark.asyncio
    async def test_deployment_id_is_sent_as_model(self):
        model = Model(id="m9", name="gpt-4", deployment_id="my-gpt4")
        session, provider = build_session(Script(tokens=["ok"]), model=model)

        await session.run(lambda event: None)

        assert provider.calls[0]["model"] == "my-gpt4"

    @pytest.mark.asyncio
    async def test_async_emitter_is_awaited(self):
        session, _ = build_session(Script(tokens=["a"]))
        events = []

        async def emit(event):
            await asyncio.sleep(0)
            events.append(event)

        await session.run(emit)

        assert len(events) == 2


@pytest.mark.unit
class TestSessionFailure:
    """Test failure paths; each ends in exactly one error event."""

    @pytest.mark.asyncio
    async def test_construction_failure(self):
        factory = MockAdapterFactory({"c1": ConfigurationError("Base URL is not set")})
        session, provider = build_session(Script(tokens=["never"]), factory=factory)
        events = []

        await session.run(events.append)

        assert len(events) == 1
        assert events[0].error == "Base URL is not set"
        assert events[0].duration is None
        assert session.state == SessionState.FAILED
        assert provider.opened == 0

    @pytest.mark.asyncio
    async def test_unsupported_provider(self):
        factory = MockAdapterFactory({"c1": UnsupportedProviderError("Unsupported provider: foo")})
        session, _ = build_session(Script(), factory=factory)
        events = []

        await session.run(events.append)

        assert [e.error for e in events] == ["Unsupported provider: foo"]

    @pytest.mark.asyncio
    async def test_empty_model_name_fails_before_streaming(self):
        model = Model(id="m0", name="")
        session, provider = build_session(Script(), model=model)
        events = []

        await session.run(events.append)

        assert events[0].is_error
        assert provider.opened == 0

    @pytest.mark.asyncio
    async def test_mid_stream_error_keeps_earlier_content(self):
        session, provider = build_session(
            Script(tokens=["partial ", "answer"], error=ProviderError("Rate limit reached"))
        )
        events = []

        await session.run(events.append)

        assert "".join(e.content for e in events) == "partial answer"
        assert events[-1].error == "Rate limit reached"
        assert sum(1 for e in events if e.is_terminal) == 1
        assert provider.closed == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_event(self):
        session, _ = build_session(Script(error=RuntimeError("boom")))
        events = []

        await session.run(events.append)

        assert events[-1].error == "boom"

    @pytest.mark.asyncio
    async def test_terminal_is_idempotent(self):
        session, _ = build_session(Script(tokens=["a"]))
        events = []

        await session.run(events.append)
        await session.fail(events.append, ProviderError("late"))
        await session.finish(events.append, None)

        assert sum(1 for e in events if e.is_terminal) == 1
        assert session.state == SessionState.FINISHED


@pytest.mark.unit
class TestSessionCancellation:
    """Test cancellation closes the stream and emits nothing further."""

    @pytest.mark.asyncio
    async def test_cancel_closes_provider_stream(self):
        session, provider = build_session(Script(tokens=["a"], hang=True))
        events = []

        task = asyncio.create_task(session.run(events.append))
        while not events:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert [e.content for e in events] == ["a"]
        assert provider.closed == provider.opened == 1
        assert session.state == SessionState.FAILED
        assert session.error == CANCELLED_MESSAGE


@pytest.mark.unit
class TestDescribeError:
    """Test user-facing error text."""

    def test_llm_error_message(self):
        assert describe_error(ProviderError("Invalid API key")) == "Invalid API key"

    def test_first_line_only(self):
        assert describe_error(ValueError("line one\nline two")) == "line one"

    def test_empty_falls_back(self):
        assert describe_error(RuntimeError()) == "An unexpected error occurred"
