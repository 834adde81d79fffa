"""
Provider adapter factory.

WHAT: Map a ProviderConfig to the adapter for its provider kind
WHY: Adding a provider means adding a variant here, never touching sessions or the orchestrator
HOW: Closed registry keyed by ProviderKind, validated before any network I/O
"""

from typing import TYPE_CHECKING

from .azure_openai import AzureOpenAIProvider
from .deepseek import DeepSeekProvider
from .groq import GroqProvider
from .openai import OpenAIProvider
from .types import ProviderConfig, ProviderKind, UnsupportedProviderError
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .provider import ChatProvider

logger = get_logger(__name__)

PROVIDER_ADAPTERS = {
    ProviderKind.AZURE_OPENAI: AzureOpenAIProvider,
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.GROQ: GroqProvider,
    ProviderKind.DEEPSEEK: DeepSeekProvider,
}


def resolve_kind(provider: str | ProviderKind) -> ProviderKind:
    """
    Parse a provider kind string.

    Raises:
        UnsupportedProviderError: kind is outside the enumeration
    """
    try:
        return ProviderKind(provider)
    except ValueError as e:
        raise UnsupportedProviderError(f"Unsupported provider: {provider}") from e


def create_adapter(config: ProviderConfig) -> "ChatProvider":
    """
    Build the adapter for a provider configuration.

    Args:
        config: Provider configuration (read-only)

    Returns:
        Adapter implementing ChatProvider

    Raises:
        UnsupportedProviderError: Unknown provider kind
        ConfigurationError: Base URL or API key missing
    """
    kind = resolve_kind(config.provider)
    adapter_cls = PROVIDER_ADAPTERS[kind]
    logger.debug(f"Creating {adapter_cls.__name__} for config {config.id}")
    return adapter_cls(config)
