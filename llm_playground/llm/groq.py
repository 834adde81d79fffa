"""
Groq provider adapter.

WHAT: Chat completions against the Groq OpenAI-compatible endpoint
WHY: Groq reports streaming usage under x_groq.usage on the final chunk
HOW: Bearer auth, {base}/chat/completions, usage read from x_groq before the top level
"""

from .openai_compatible import OpenAICompatibleProvider
from .types import ProviderKind, UsageRecord
from .usage import normalize_usage


class GroqProvider(OpenAICompatibleProvider):
    """Groq chat-completions adapter."""

    kind = ProviderKind.GROQ
    include_usage = False

    def _extract_usage(self, data: dict) -> UsageRecord | None:
        x_groq = data.get("x_groq")
        if isinstance(x_groq, dict):
            usage = normalize_usage(x_groq.get("usage"))
            if usage is not None:
                return usage
        return normalize_usage(data.get("usage"))
