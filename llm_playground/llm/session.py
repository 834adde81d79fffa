"""
Stream session for one (provider config, model) pair.

WHAT: Drive one streaming request and turn it into StreamEvents
WHY: Every endpoint needs the same latch/finish/fail accounting, independent of siblings
HOW: Small state machine (pending -> streaming -> finished/failed) around the adapter's token stream
"""

import asyncio
import inspect
import time
from contextlib import aclosing
from typing import Awaitable, Callable

import httpx

from .openai_compatible import GENERIC_ERROR_MESSAGE
from .provider_factory import create_adapter
from .types import (
    ChatMessage,
    DurationRecord,
    LLMError,
    Model,
    ProviderConfig,
    SessionState,
    StreamEvent,
    UsageRecord,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Request cancelled"

EventEmitter = Callable[[StreamEvent], Awaitable[None] | None]


def describe_error(exc: BaseException) -> str:
    """
    Short, user-facing message for a failure.

    Provider/transport errors carry their own message; anything else falls
    back to its text, then to a fixed string. Never a traceback.
    """
    if isinstance(exc, LLMError) and exc.message:
        return exc.message
    if isinstance(exc, httpx.HTTPError) and str(exc):
        return str(exc)
    text = str(exc).strip()
    return text.splitlines()[0] if text else GENERIC_ERROR_MESSAGE


async def _deliver(emit: EventEmitter, event: StreamEvent) -> None:
    result = emit(event)
    if inspect.isawaitable(result):
        await result


class StreamSession:
    """One in-flight streaming request; owns token timing and its single terminal event."""

    def __init__(
        self,
        config: ProviderConfig,
        model: Model,
        system_prompt: str,
        user_prompt: str,
        *,
        adapter_factory=create_adapter,
        clock: Callable[[], float] = time.monotonic,
        max_tokens: int | None = None
    ):
        self.config = config
        self.model = model
        self.system_prompt = system_prompt
        self.user_prompt = user_prompt
        self.max_tokens = max_tokens
        self._adapter_factory = adapter_factory
        self._clock = clock

        self.state = SessionState.PENDING
        self.started_at: float | None = None
        self.first_token_at: float | None = None
        self.fragments = 0
        self.error: str | None = None
        self.usage: UsageRecord | None = None
        self._terminal_emitted = False

    @property
    def key(self) -> str:
        return f"{self.config.id}|{self.model.id}"

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.FINISHED, SessionState.FAILED)

    @property
    def messages(self) -> list[ChatMessage]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]

    def _elapsed(self, since: float | None) -> float:
        if since is None or self.started_at is None:
            return 0.0
        return since - self.started_at

    def _event(self, **fields) -> StreamEvent:
        return StreamEvent(config_id=self.config.id, model_id=self.model.id, **fields)

    async def run(self, emit: EventEmitter) -> None:
        """
        Run the session to a terminal state, emitting events as they happen.

        Raises:
            asyncio.CancelledError: the session was cancelled (no terminal event emitted)
        """
        self.started_at = self._clock()

        try:
            adapter = self._adapter_factory(self.config)
            chunks = adapter.stream(self.model.target, self.messages, max_tokens=self.max_tokens)
        except LLMError as e:
            logger.warning(f"Session {self.key} rejected before streaming: {e.message}")
            await self.fail(emit, e)
            return

        self.state = SessionState.STREAMING
        usage = None

        try:
            async with aclosing(chunks):
                async for chunk in chunks:
                    if chunk.is_end:
                        usage = chunk.usage
                        break
                    if not chunk.token:
                        continue
                    if self.first_token_at is None:
                        self.first_token_at = self._clock()
                    self.fragments += 1
                    await _deliver(emit, self._event(content=chunk.token))
        except asyncio.CancelledError:
            self.state = SessionState.FAILED
            self.error = CANCELLED_MESSAGE
            logger.info(f"Session {self.key} cancelled after {self.fragments} fragments")
            raise
        except Exception as e:
            logger.error(f"Session {self.key} failed after {self.fragments} fragments: {e!r}")
            await self.fail(emit, e)
            return

        await self.finish(emit, usage)

    async def finish(self, emit: EventEmitter, usage: UsageRecord | None) -> None:
        """Emit the single finished event with usage and duration."""
        if self._terminal_emitted:
            return
        self.state = SessionState.FINISHED
        self.usage = usage

        now = self._clock()
        duration = DurationRecord(
            total=self._elapsed(now),
            first_token=self._elapsed(self.first_token_at) if self.first_token_at is not None else None,
        )
        logger.info(
            f"Session {self.key} finished in {duration.total:.2f}s "
            f"(fragments: {self.fragments}, tokens: {usage.total_tokens if usage else 'unknown'})"
        )
        await _deliver(emit, self._event(usage=usage, duration=duration))
        # Latched after delivery: an interrupted delivery leaves fail() free to emit
        self._terminal_emitted = True

    async def fail(self, emit: EventEmitter, exc: BaseException) -> None:
        """Emit the single failed event; a no-op once a terminal event went out."""
        if self._terminal_emitted:
            return
        self.state = SessionState.FAILED
        self.error = describe_error(exc)
        await _deliver(emit, self._event(error=self.error))
        self._terminal_emitted = True
