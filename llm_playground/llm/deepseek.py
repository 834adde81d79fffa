"""
DeepSeek provider adapter.

WHAT: Chat completions against the DeepSeek API
WHY: DeepSeek mirrors the OpenAI wire format, including the trailing usage chunk
HOW: Bearer auth, {base}/chat/completions, usage requested via stream_options
"""

from .openai_compatible import OpenAICompatibleProvider
from .types import ProviderKind


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek chat-completions adapter."""

    kind = ProviderKind.DEEPSEEK
