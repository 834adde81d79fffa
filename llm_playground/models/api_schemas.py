"""
Pydantic API schemas.

WHAT: Request and response models for FastAPI
WHY: Type-safe validation and serialization of configs, prompts and stream events
HOW: Pydantic v2 models with validators, converters to and from domain dataclasses
"""

from typing import Optional, List, Dict, Union
from pydantic import BaseModel, Field, field_validator

from ..core.config import settings
from ..llm.types import (
    DurationRecord,
    ProviderConfig,
    ProviderKind,
    StreamEvent,
    UsageRecord,
)
from ..llm.usage import CostReport, format_cost
from ..services.config_store import ModelData, ProviderConfigData
from ..services.response_board import ResponseView
from ..utils.logger import mask_secret


# ========== Provider configuration ==========

class ModelSchema(BaseModel):
    """Model offered by a provider, prices per 1M tokens."""
    id: Optional[str] = Field(default=None, max_length=36, description="Model ID (generated when omitted)")
    name: str = Field(..., min_length=1, max_length=200, description="Provider-side model name")
    deployment_id: Optional[str] = Field(default=None, max_length=200, description="Azure deployment name")
    input_token_price: Optional[float] = Field(default=None, ge=0, description="Input price per 1M tokens")
    output_token_price: Optional[float] = Field(default=None, ge=0, description="Output price per 1M tokens")


class ProviderConfigRequest(BaseModel):
    """Create or replace a provider configuration."""
    provider: ProviderKind = Field(..., description="Provider kind")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    base_url: str = Field(default="", max_length=500, description="API base URL")
    api_key: str = Field(default="", max_length=500, description="API key", repr=False)
    models: List[ModelSchema] = Field(default_factory=list)

    def to_data(self) -> ProviderConfigData:
        return ProviderConfigData(
            provider=self.provider.value,
            name=self.name,
            base_url=self.base_url,
            api_key=self.api_key,
            models=[ModelData(**model.model_dump()) for model in self.models],
        )


class ProviderConfigResponse(BaseModel):
    """Provider configuration with the API key masked."""
    id: str
    provider: str
    name: str
    base_url: str
    api_key: str
    models: List[ModelSchema]
    created_at: int

    @classmethod
    def from_domain(cls, config: ProviderConfig) -> "ProviderConfigResponse":
        return cls(
            id=config.id,
            provider=config.provider,
            name=config.name,
            base_url=config.base_url,
            api_key=mask_secret(config.api_key),
            models=[
                ModelSchema(
                    id=model.id,
                    name=model.name,
                    deployment_id=model.deployment_id,
                    input_token_price=model.input_token_price,
                    output_token_price=model.output_token_price,
                )
                for model in config.models
            ],
            created_at=config.created_at,
        )


class ConnectivityRequest(BaseModel):
    """Request to check a single model."""
    model_name: str = Field(..., min_length=1, max_length=200, description="Model or deployment name")


class ConnectivityResponse(BaseModel):
    """Outcome of a connectivity check; failures are data, not HTTP errors."""
    ok: bool
    message: str
    latency: Optional[float] = None


# ========== Playground ==========

class PromptRequest(BaseModel):
    """Prompt to fan out. Omitted selection means every model of every config."""
    system_prompt: str = Field(default_factory=lambda: settings.DEFAULT_SYSTEM_PROMPT, max_length=20000)
    user_prompt: str = Field(..., max_length=100000)
    selection: Optional[Dict[str, Union[Dict[str, bool], List[str]]]] = Field(
        default=None,
        description="config_id -> {model_id: bool} or [model_id, ...]"
    )

    @field_validator("user_prompt")
    @classmethod
    def validate_user_prompt(cls, v):
        """Reject empty or whitespace-only prompts."""
        if not v.strip():
            raise ValueError("user_prompt must not be empty")
        return v


class UsageSchema(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @classmethod
    def from_domain(cls, usage: UsageRecord | None) -> Optional["UsageSchema"]:
        if usage is None:
            return None
        return cls(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )


class DurationSchema(BaseModel):
    total: float
    first_token: Optional[float] = None

    @classmethod
    def from_domain(cls, duration: DurationRecord | None) -> Optional["DurationSchema"]:
        if duration is None:
            return None
        return cls(total=duration.total, first_token=duration.first_token)


class StreamEventSchema(BaseModel):
    """Wire form of a StreamEvent."""
    config_id: str
    model_id: str
    content: str = ""
    error: Optional[str] = None
    usage: Optional[UsageSchema] = None
    duration: Optional[DurationSchema] = None

    @classmethod
    def from_domain(cls, event: StreamEvent) -> "StreamEventSchema":
        return cls(
            config_id=event.config_id,
            model_id=event.model_id,
            content=event.content,
            error=event.error,
            usage=UsageSchema.from_domain(event.usage),
            duration=DurationSchema.from_domain(event.duration),
        )


class CostSchema(BaseModel):
    """Costs as fixed 6-digit strings."""
    cost: str
    multiplier: int = 1
    scaled_cost: Optional[str] = None

    @classmethod
    def from_domain(cls, report: CostReport | None) -> Optional["CostSchema"]:
        if report is None:
            return None
        return cls(
            cost=format_cost(report.cost),
            multiplier=report.multiplier,
            scaled_cost=format_cost(report.scaled_cost),
        )


class ResponseSchema(BaseModel):
    """Accumulated response of one (config, model) pair."""
    key: str
    config_id: str
    model_id: str
    provider: Optional[str] = None
    model_name: Optional[str] = None
    content: str
    error: Optional[str] = None
    done: bool
    usage: Optional[UsageSchema] = None
    duration: Optional[DurationSchema] = None
    cost: Optional[CostSchema] = None

    @classmethod
    def from_view(cls, view: ResponseView) -> "ResponseSchema":
        entry = view.entry
        return cls(
            key=f"{entry.config_id}|{entry.model_id}",
            config_id=entry.config_id,
            model_id=entry.model_id,
            provider=view.provider,
            model_name=view.model_name,
            content=entry.content,
            error=entry.error,
            done=entry.done,
            usage=UsageSchema.from_domain(entry.usage),
            duration=DurationSchema.from_domain(entry.duration),
            cost=CostSchema.from_domain(view.cost),
        )


class RunStartedResponse(BaseModel):
    run_id: str
    sessions: int


class RunSnapshotResponse(BaseModel):
    run_id: str
    is_streaming: bool
    responses: List[ResponseSchema]
