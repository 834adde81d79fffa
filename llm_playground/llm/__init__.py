"""LLM provider layer and streaming orchestration."""

from .types import (
    ProviderKind,
    ChatMessage,
    Model,
    ProviderConfig,
    UsageRecord,
    DurationRecord,
    TokenChunk,
    StreamEvent,
    SessionState,
    LLMResult,
    ConnectivityResult,
    LLMError,
    ConfigurationError,
    UnsupportedProviderError,
    TransportError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderError,
)
from .provider import ChatProvider
from .provider_factory import create_adapter
from .usage import CostReport, normalize_usage, compute_cost, cost_report, format_cost
from .session import StreamSession
from .orchestrator import Orchestrator, DispatchSummary, dispatch, resolve_pairs
from .connectivity import check_model

__all__ = [
    "ProviderKind",
    "ChatMessage",
    "Model",
    "ProviderConfig",
    "UsageRecord",
    "DurationRecord",
    "TokenChunk",
    "StreamEvent",
    "SessionState",
    "LLMResult",
    "ConnectivityResult",
    "LLMError",
    "ConfigurationError",
    "UnsupportedProviderError",
    "TransportError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderError",
    "ChatProvider",
    "create_adapter",
    "CostReport",
    "normalize_usage",
    "compute_cost",
    "cost_report",
    "format_cost",
    "StreamSession",
    "Orchestrator",
    "DispatchSummary",
    "dispatch",
    "resolve_pairs",
    "check_model",
]
