"""
Unit tests for the multi-provider orchestrator.

WHAT: Test selection resolution, fan-out isolation, deadlines, concurrency bound and channel form
WHY: One slow or broken backend must never affect sibling sessions
HOW: Mock adapters per config id, assert on collected StreamEvents
"""

import asyncio
from contextlib import aclosing

import pytest

from llm_playground.llm.orchestrator import (
    Orchestrator,
    resolve_pairs,
    selected_model_ids,
)
from llm_playground.llm.types import (
    ConfigurationError,
    Model,
    ProviderError,
    UsageRecord,
)
from tests.fixtures.mock_llm import (
    MockAdapterFactory,
    MockChatProvider,
    Script,
    make_config,
)

GPT = Model(id="m1", name="gpt-4o-mini", input_token_price=1.0, output_token_price=2.0)
LLAMA = Model(id="m2", name="llama-3.1-8b-instant")
DEEPSEEK = Model(id="m3", name="deepseek-chat")


def terminals(events):
    return {e.key: e for e in events if e.is_terminal}


def contents(events, key):
    return "".join(e.content for e in events if e.key == key and not e.is_terminal)


@pytest.mark.unit
class TestSelection:
    """Test selection normalization and pair resolution."""

    def test_checkbox_form(self):
        assert selected_model_ids({"m1": True, "m2": False}) == {"m1"}

    def test_set_form(self):
        assert selected_model_ids(["m1", "m2"]) == {"m1", "m2"}

    def test_single_string(self):
        assert selected_model_ids("m1") == {"m1"}

    def test_none(self):
        assert selected_model_ids(None) == set()

    def test_stale_references_skipped(self):
        configs = [make_config("c1", [GPT, LLAMA])]
        selection = {"c1": ["m2", "gone"], "deleted-config": ["m1"]}

        pairs = resolve_pairs(configs, selection)

        assert [(c.id, m.id) for c, m in pairs] == [("c1", "m2")]

    def test_order_follows_configs(self):
        configs = [make_config("c1", [GPT, LLAMA]), make_config("c2", [DEEPSEEK])]
        selection = {"c2": ["m3"], "c1": {"m2": True, "m1": True}}

        pairs = resolve_pairs(configs, selection)

        assert [(c.id, m.id) for c, m in pairs] == [("c1", "m1"), ("c1", "m2"), ("c2", "m3")]


@pytest.mark.unit
class TestDispatch:
    """Test fan-out and terminal accounting."""

    @pytest.mark.asyncio
    async def test_one_terminal_per_pair(self):
        usage = UsageRecord(prompt_tokens=10, completion_tokens=2, total_tokens=12)
        factory = MockAdapterFactory({
            "c1": MockChatProvider({
                "gpt-4o-mini": Script(tokens=["Hel", "lo"], usage=usage),
                "llama-3.1-8b-instant": Script(tokens=["Hi"]),
            }),
        })
        configs = [make_config("c1", [GPT, LLAMA])]
        events = []

        summary = await Orchestrator(factory).dispatch(
            configs, {"c1": ["m1", "m2"]}, "sys", "hi", events.append
        )

        assert summary.sessions == 2
        assert summary.finished == 2
        assert summary.failed == 0
        ends = terminals(events)
        assert set(ends) == {"c1|m1", "c1|m2"}
        assert sum(1 for e in events if e.is_terminal) == 2
        assert contents(events, "c1|m1") == "Hello"
        assert ends["c1|m1"].usage == usage

    @pytest.mark.asyncio
    async def test_empty_selection_emits_nothing(self):
        factory = MockAdapterFactory({})
        events = []

        summary = await Orchestrator(factory).dispatch(
            [make_config("c1", [GPT])], {}, "sys", "hi", events.append
        )

        assert summary.sessions == 0
        assert events == []
        assert factory.created == []

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        """A misconfigured config fails alone; siblings stream normally."""
        factory = MockAdapterFactory({
            "good": MockChatProvider({"gpt-4o-mini": Script(tokens=["fine"])}),
            "bad": ConfigurationError("Base URL is not set for provider config 'Config bad'"),
            "flaky": MockChatProvider({"deepseek-chat": Script(tokens=["par"], error=ProviderError("Overloaded"))}),
        })
        configs = [
            make_config("good", [GPT]),
            make_config("bad", [LLAMA]),
            make_config("flaky", [DEEPSEEK]),
        ]
        events = []

        summary = await Orchestrator(factory).dispatch(
            configs, {"good": ["m1"], "bad": ["m2"], "flaky": ["m3"]}, "sys", "hi", events.append
        )

        ends = terminals(events)
        assert not ends["good|m1"].is_error
        assert contents(events, "good|m1") == "fine"
        assert ends["bad|m2"].error.startswith("Base URL is not set")
        assert contents(events, "bad|m2") == ""
        assert ends["flaky|m3"].error == "Overloaded"
        assert contents(events, "flaky|m3") == "par"
        assert (summary.finished, summary.failed) == (1, 2)

    @pytest.mark.asyncio
    async def test_sink_failure_is_isolated(self):
        factory = MockAdapterFactory({
            "c1": MockChatProvider({"gpt-4o-mini": Script(tokens=["a", "b"])}),
            "c2": MockChatProvider({"deepseek-chat": Script(tokens=["x", "y"])}),
        })
        configs = [make_config("c1", [GPT]), make_config("c2", [DEEPSEEK])]
        events = []

        def sink(event):
            if event.config_id == "c2" and not event.is_terminal:
                raise RuntimeError("sink broke")
            events.append(event)

        summary = await Orchestrator(factory).dispatch(
            configs, {"c1": ["m1"], "c2": ["m3"]}, "sys", "hi", sink
        )

        ends = terminals(events)
        assert contents(events, "c1|m1") == "ab"
        assert not ends["c1|m1"].is_error
        assert ends["c2|m3"].error == "sink broke"
        assert summary.failed == 1

    @pytest.mark.asyncio
    async def test_async_sink(self):
        factory = MockAdapterFactory({"c1": MockChatProvider({"gpt-4o-mini": Script(tokens=["a"])})})
        events = []

        async def sink(event):
            await asyncio.sleep(0)
            events.append(event)

        await Orchestrator(factory).dispatch(
            [make_config("c1", [GPT])], {"c1": ["m1"]}, "sys", "hi", sink
        )

        assert [e.content for e in events if not e.is_terminal] == ["a"]
        assert len(terminals(events)) == 1

    @pytest.mark.asyncio
    async def test_per_key_order_preserved(self):
        tokens = [str(i) for i in range(20)]
        factory = MockAdapterFactory({
            "c1": MockChatProvider({
                "gpt-4o-mini": Script(tokens=tokens, delay=0.001),
                "llama-3.1-8b-instant": Script(tokens=tokens, delay=0.001),
            }),
        })
        events = []

        await Orchestrator(factory).dispatch(
            [make_config("c1", [GPT, LLAMA])], {"c1": ["m1", "m2"]}, "sys", "hi", events.append
        )

        for key in ("c1|m1", "c1|m2"):
            keyed = [e for e in events if e.key == key]
            assert [e.content for e in keyed[:-1]] == tokens
            assert keyed[-1].is_terminal


@pytest.mark.unit
class TestDeadlinesAndLimits:
    """Test session timeout and concurrency bound."""

    @pytest.mark.asyncio
    async def test_session_timeout_fails_only_the_slow_session(self):
        slow = MockChatProvider({"deepseek-chat": Script(tokens=["start"], hang=True)})
        factory = MockAdapterFactory({
            "fast": MockChatProvider({"gpt-4o-mini": Script(tokens=["done"])}),
            "slow": slow,
        })
        configs = [make_config("fast", [GPT]), make_config("slow", [DEEPSEEK])]
        events = []

        summary = await Orchestrator(factory, session_timeout=0.05).dispatch(
            configs, {"fast": ["m1"], "slow": ["m3"]}, "sys", "hi", events.append
        )

        ends = terminals(events)
        assert not ends["fast|m1"].is_error
        assert ends["slow|m3"].error == "Request timed out after 0.05s"
        assert contents(events, "slow|m3") == "start"
        assert slow.closed == slow.opened == 1
        assert (summary.finished, summary.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_timeout_during_final_delivery_still_yields_terminal(self):
        """A deadline hit while an async sink is taking the finished event still ends in a failed event."""
        factory = MockAdapterFactory({
            "c1": MockChatProvider({"gpt-4o-mini": Script(tokens=["a"])}),
        })
        events = []

        async def sink(event):
            if event.duration is not None:
                await asyncio.sleep(1)
            events.append(event)

        summary = await Orchestrator(factory, session_timeout=0.05).dispatch(
            [make_config("c1", [GPT])], {"c1": ["m1"]}, "sys", "hi", sink
        )

        assert [e.content for e in events if not e.is_terminal] == ["a"]
        ends = [e for e in events if e.is_terminal]
        assert len(ends) == 1
        assert ends[0].error == "Request timed out after 0.05s"
        assert summary.failed == 1

    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_open_streams(self):
        providers = {
            f"c{i}": MockChatProvider({"gpt-4o-mini": Script(tokens=["a", "b"], delay=0.005)})
            for i in range(4)
        }
        factory = MockAdapterFactory(dict(providers))
        configs = [make_config(config_id, [GPT]) for config_id in providers]
        peak = 0

        def sink(event):
            nonlocal peak
            in_flight = sum(p.opened - p.closed for p in providers.values())
            peak = max(peak, in_flight)

        summary = await Orchestrator(factory, max_concurrency=2).dispatch(
            configs, {config_id: ["m1"] for config_id in providers}, "sys", "hi", sink
        )

        assert summary.finished == 4
        assert 1 <= peak <= 2


@pytest.mark.unit
class TestCancellation:
    """Test teardown when the consumer goes away."""

    @pytest.mark.asyncio
    async def test_dispatch_cancel_closes_every_stream(self):
        providers = {
            "c1": MockChatProvider({"gpt-4o-mini": Script(tokens=["a"], hang=True)}),
            "c2": MockChatProvider({"deepseek-chat": Script(tokens=["b"], hang=True)}),
        }
        factory = MockAdapterFactory(dict(providers))
        configs = [make_config("c1", [GPT]), make_config("c2", [DEEPSEEK])]
        events = []

        task = asyncio.create_task(Orchestrator(factory).dispatch(
            configs, {"c1": ["m1"], "c2": ["m3"]}, "sys", "hi", events.append
        ))
        while len(events) < 2:
            await asyncio.sleep(0.001)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert all(p.opened == p.closed == 1 for p in providers.values())
        assert not any(e.is_terminal for e in events)

    @pytest.mark.asyncio
    async def test_stream_channel_yields_all_events(self):
        factory = MockAdapterFactory({
            "c1": MockChatProvider({"gpt-4o-mini": Script(tokens=["x", "y"])}),
        })

        received = [
            event async for event in Orchestrator(factory).stream(
                [make_config("c1", [GPT])], {"c1": ["m1"]}, "sys", "hi"
            )
        ]

        assert [e.content for e in received[:-1]] == ["x", "y"]
        assert received[-1].is_terminal

    @pytest.mark.asyncio
    async def test_stream_early_close_tears_down_sessions(self):
        provider = MockChatProvider({
            "gpt-4o-mini": Script(tokens=["first"], hang=True),
            "llama-3.1-8b-instant": Script(tokens=["other"], hang=True),
        })
        factory = MockAdapterFactory({"c1": provider})

        async with aclosing(Orchestrator(factory).stream(
            [make_config("c1", [GPT, LLAMA])], {"c1": ["m1", "m2"]}, "sys", "hi"
        )) as events:
            async for event in events:
                assert not event.is_terminal
                break

        assert provider.opened >= 1
        assert provider.closed == provider.opened
