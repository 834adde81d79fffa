"""
Multi-provider streaming orchestrator.

WHAT: Fan one prompt out to every selected (config, model) pair and multiplex their events
WHY: Compare many backends side by side while one bad backend cannot affect the others
HOW: One supervised asyncio task per session, joined with gather; sink callback or queue channel
"""

import asyncio
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from .provider_factory import create_adapter
from .session import EventEmitter, StreamSession
from .types import (
    Model,
    ProviderConfig,
    ProviderTimeoutError,
    SessionState,
    StreamEvent,
)
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# {config_id: [model_id, ...]} or {config_id: {model_id: bool}}
Selection = Mapping[str, Iterable[str] | Mapping[str, bool]]


@dataclass
class DispatchSummary:
    """Terminal-state counts for one dispatch."""
    sessions: int = 0
    finished: int = 0
    failed: int = 0


def selected_model_ids(entry: Iterable[str] | Mapping[str, bool] | None) -> set[str]:
    """Normalize one selection entry (set form or checkbox form) to a set of model ids."""
    if entry is None:
        return set()
    if isinstance(entry, Mapping):
        return {model_id for model_id, checked in entry.items() if checked}
    if isinstance(entry, str):
        return {entry}
    return set(entry)


def resolve_pairs(
    configs: Iterable[ProviderConfig],
    selection: Selection
) -> list[tuple[ProviderConfig, Model]]:
    """
    Resolve a selection against known configs.

    Stale references (unknown config ids or model ids) are skipped silently.
    Order follows the configs and their model lists.
    """
    pairs = []
    for config in configs:
        wanted = selected_model_ids(selection.get(config.id))
        if not wanted:
            continue
        for model in config.models:
            if model.id in wanted:
                pairs.append((config, model))
    return pairs


class Orchestrator:
    """
    Runs one StreamSession per selected pair, concurrently.

    WHAT: dispatch() delivers events to a sink; stream() exposes them as a channel
    WHY: Callers pick callback or async-iteration delivery with the same isolation rules
    HOW: Supervised tasks convert any escaping failure into the session's own failed event
    """

    def __init__(
        self,
        adapter_factory=create_adapter,
        *,
        max_concurrency: int | None = None,
        session_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize orchestrator.

        Args:
            adapter_factory: Builds a ChatProvider from a ProviderConfig
            max_concurrency: Max simultaneously open sessions (None/0 = unbounded)
            session_timeout: Per-session deadline in seconds (None = unbounded)
            clock: Monotonic clock used for durations
        """
        self.adapter_factory = adapter_factory
        self.max_concurrency = max_concurrency or None
        self.session_timeout = session_timeout
        self.clock = clock

    @classmethod
    def from_settings(cls) -> "Orchestrator":
        return cls(
            max_concurrency=settings.LLM_MAX_CONCURRENT_SESSIONS,
            session_timeout=settings.LLM_SESSION_TIMEOUT,
        )

    def build_sessions(
        self,
        configs: Iterable[ProviderConfig],
        selection: Selection,
        system_prompt: str,
        user_prompt: str
    ) -> list[StreamSession]:
        return [
            StreamSession(
                config,
                model,
                system_prompt,
                user_prompt,
                adapter_factory=self.adapter_factory,
                clock=self.clock,
                max_tokens=settings.LLM_DEFAULT_MAX_TOKENS,
            )
            for config, model in resolve_pairs(configs, selection)
        ]

    async def _supervise(
        self,
        session: StreamSession,
        emit: EventEmitter,
        semaphore: asyncio.Semaphore | None
    ) -> None:
        """Run one session; nothing but cancellation escapes."""
        try:
            if semaphore is None:
                await self._run_with_deadline(session, emit)
            else:
                async with semaphore:
                    await self._run_with_deadline(session, emit)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Session {session.key} crashed: {e!r}")
            try:
                await session.fail(emit, e)
            except Exception as sink_error:
                logger.error(f"Could not deliver failure for session {session.key}: {sink_error!r}")

    async def _run_with_deadline(self, session: StreamSession, emit: EventEmitter) -> None:
        if self.session_timeout is None:
            await session.run(emit)
            return
        try:
            await asyncio.wait_for(session.run(emit), timeout=self.session_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Session {session.key} timed out after {self.session_timeout}s")
            await session.fail(
                emit, ProviderTimeoutError(f"Request timed out after {self.session_timeout:g}s")
            )

    async def dispatch(
        self,
        configs: Iterable[ProviderConfig],
        selection: Selection,
        system_prompt: str,
        user_prompt: str,
        sink: EventEmitter
    ) -> DispatchSummary:
        """
        Stream the prompt to every selected pair and wait for all of them.

        Args:
            configs: Known provider configurations
            selection: Selected model ids per config id
            system_prompt: System message content
            user_prompt: User message content (non-empty; enforced by the caller)
            sink: Called once per StreamEvent, possibly from concurrent tasks;
                  may be a plain function or a coroutine function

        Returns:
            DispatchSummary once every session is terminal

        Raises:
            asyncio.CancelledError: dispatch was cancelled; all sessions were torn down
        """
        sessions = self.build_sessions(configs, selection, system_prompt, user_prompt)
        summary = DispatchSummary(sessions=len(sessions))
        if not sessions:
            logger.info("Dispatch skipped: no resolvable models selected")
            return summary

        logger.info(f"Dispatching prompt to {len(sessions)} sessions")
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        tasks = [
            asyncio.create_task(self._supervise(session, sink, semaphore), name=f"session:{session.key}")
            for session in sessions
        ]
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            # Let every session close its connection before propagating
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Dispatch cancelled ({len(sessions)} sessions torn down)")
            raise

        for session in sessions:
            if session.state == SessionState.FINISHED:
                summary.finished += 1
            else:
                summary.failed += 1

        logger.info(
            f"Dispatch complete: {summary.finished} finished, {summary.failed} failed "
            f"of {summary.sessions}"
        )
        return summary

    async def stream(
        self,
        configs: Iterable[ProviderConfig],
        selection: Selection,
        system_prompt: str,
        user_prompt: str
    ) -> AsyncIterator[StreamEvent]:
        """
        Channel form of dispatch: iterate events as sessions produce them.

        Closing the iterator before exhaustion cancels the dispatch and closes
        every live connection.

        Yields:
            StreamEvent in arrival order (ordered per session key)
        """
        channel: asyncio.Queue = asyncio.Queue()
        done = object()

        async def produce() -> DispatchSummary:
            try:
                return await self.dispatch(
                    configs, selection, system_prompt, user_prompt, channel.put_nowait
                )
            finally:
                channel.put_nowait(done)

        producer = asyncio.create_task(produce(), name="dispatch")
        try:
            while True:
                item = await channel.get()
                if item is done:
                    break
                yield item
            await producer
        finally:
            if not producer.done():
                producer.cancel()
                await asyncio.gather(producer, return_exceptions=True)


async def dispatch(
    configs: Iterable[ProviderConfig],
    selection: Selection,
    system_prompt: str,
    user_prompt: str,
    sink: EventEmitter
) -> DispatchSummary:
    """Dispatch with an orchestrator configured from settings."""
    return await Orchestrator.from_settings().dispatch(
        configs, selection, system_prompt, user_prompt, sink
    )
