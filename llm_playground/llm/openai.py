"""
OpenAI provider adapter.

WHAT: Chat completions against api.openai.com or any OpenAI-style gateway
WHY: Reference shape every other variant derives from
HOW: Bearer auth, {base}/chat/completions, usage requested via stream_options
"""

from .openai_compatible import OpenAICompatibleProvider
from .types import ProviderKind


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI chat-completions adapter."""

    kind = ProviderKind.OPENAI
