"""
LLM provider types, dataclasses, and exceptions.

WHAT: Standard type definitions for multi-provider streaming
WHY: Ensure consistent contracts across all providers, sessions and consumers
HOW: TypedDict for messages, dataclasses for configs/events/results, custom exceptions for errors
"""

import enum
from dataclasses import dataclass, field
from typing import TypedDict, Literal


class ProviderKind(str, enum.Enum):
    """Closed set of supported provider kinds."""
    AZURE_OPENAI = "azure-openai"
    OPENAI = "openai"
    GROQ = "groq"
    DEEPSEEK = "deepseek"


# Message format compatible with OpenAI-style APIs
ChatMessage = TypedDict(
    "ChatMessage",
    {"role": Literal["system", "user", "assistant"], "content": str}
)


@dataclass(frozen=True)
class Model:
    """A model offered by a provider configuration, with optional pricing per 1M tokens."""
    id: str
    name: str
    input_token_price: float | None = None
    output_token_price: float | None = None
    deployment_id: str | None = None

    @property
    def target(self) -> str:
        """Identifier sent to the provider (Azure deployments win over model names)."""
        return self.deployment_id or self.name


@dataclass(frozen=True)
class ProviderConfig:
    """Connection parameters for one provider plus its models."""
    id: str
    provider: str
    name: str
    base_url: str
    api_key: str = field(repr=False)
    models: tuple[Model, ...] = ()
    created_at: int = 0

    def find_model(self, model_id: str) -> Model | None:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


@dataclass(frozen=True)
class UsageRecord:
    """Token counts reported by a provider; any field may be missing."""
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class DurationRecord:
    """Elapsed seconds for a session, and seconds to first token (None if no content arrived)."""
    total: float
    first_token: float | None = None


@dataclass
class TokenChunk:
    """Individual token from a streaming response; the last chunk carries usage."""
    token: str
    index: int
    is_end: bool = False
    usage: UsageRecord | None = None


@dataclass(frozen=True)
class StreamEvent:
    """
    Uniform unit of output for one (config, model) stream.

    Content events carry a delta only. A terminal event carries either an
    error (abnormal end) or a duration (normal end, usage when reported).
    """
    config_id: str
    model_id: str
    content: str = ""
    error: str | None = None
    usage: UsageRecord | None = None
    duration: DurationRecord | None = None

    @property
    def key(self) -> str:
        return f"{self.config_id}|{self.model_id}"

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_terminal(self) -> bool:
        return self.error is not None or self.duration is not None


class SessionState(str, enum.Enum):
    """Lifecycle of a stream session."""
    PENDING = "pending"
    STREAMING = "streaming"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass
class LLMResult:
    """Complete (non-streaming) LLM generation result."""
    text: str
    usage: UsageRecord | None
    model: str


@dataclass
class ConnectivityResult:
    """Outcome of a successful one-shot connectivity check."""
    ok: bool
    model: str
    latency: float


# Provider exceptions
class LLMError(Exception):
    """Base class for provider and session errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ConfigurationError(LLMError):
    """Base URL, API key, model identifier or message list is missing or malformed."""
    pass


class UnsupportedProviderError(LLMError):
    """Provider kind is outside the supported enumeration."""
    pass


class TransportError(LLMError):
    """Network-level failure while opening or reading a stream."""
    pass


class ProviderTimeoutError(TransportError):
    """Request to provider timed out."""
    pass


class ProviderUnavailableError(TransportError):
    """Provider is not reachable or down."""
    pass


class ProviderError(LLMError):
    """Provider returned a structured error or an invalid response."""

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
