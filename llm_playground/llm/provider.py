"""
LLM provider protocol definition.

WHAT: Abstract interface for chat-completion providers
WHY: Decouple sessions and the orchestrator from specific provider implementations
HOW: Use Protocol to define the stream and complete capabilities
"""

from typing import Protocol, AsyncIterator
from .types import ChatMessage, LLMResult, TokenChunk


class ChatProvider(Protocol):
    """Protocol defining the interface all provider adapters must implement."""

    def stream(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int | None = None
    ) -> AsyncIterator[TokenChunk]:
        """Validate the request, then return a live token stream (one connection)."""
        ...

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int | None = None
    ) -> LLMResult:
        """Generate a complete response (non-streaming)."""
        ...
