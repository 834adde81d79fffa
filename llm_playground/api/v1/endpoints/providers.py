"""
Provider configuration endpoints.

WHAT: CRUD for provider configs plus the one-shot connectivity check
WHY: Users manage endpoints and verify them before fanning out prompts
HOW: FastAPI routes over ConfigStore; check_model errors become ok=false responses
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_config_store
from ....llm.connectivity import check_model
from ....llm.types import LLMError
from ....models.api_schemas import (
    ConnectivityRequest,
    ConnectivityResponse,
    ProviderConfigRequest,
    ProviderConfigResponse,
)
from ....services.config_store import ConfigStore
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/providers", response_model=list[ProviderConfigResponse])
async def list_providers(store: ConfigStore = Depends(get_config_store)):
    """List every provider configuration (API keys masked)."""
    return [ProviderConfigResponse.from_domain(config) for config in store.list_configs()]


@router.post("/providers", response_model=ProviderConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_provider(request: ProviderConfigRequest, store: ConfigStore = Depends(get_config_store)):
    """Add a provider configuration."""
    config = store.add_config(request.to_data())
    return ProviderConfigResponse.from_domain(config)


@router.get("/providers/{config_id}", response_model=ProviderConfigResponse)
async def get_provider(config_id: str, store: ConfigStore = Depends(get_config_store)):
    """
    Get one provider configuration.

    Raises:
        ConfigNotFoundException: Unknown id (404)
    """
    return ProviderConfigResponse.from_domain(store.get_config(config_id))


@router.put("/providers/{config_id}", response_model=ProviderConfigResponse)
async def update_provider(
    config_id: str,
    request: ProviderConfigRequest,
    store: ConfigStore = Depends(get_config_store)
):
    """Replace a provider configuration, including its model list."""
    config = store.update_config(config_id, request.to_data())
    return ProviderConfigResponse.from_domain(config)


@router.delete("/providers/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_provider(config_id: str, store: ConfigStore = Depends(get_config_store)):
    """Delete a provider configuration and its models."""
    store.delete_config(config_id)


@router.post("/providers/{config_id}/test", response_model=ConnectivityResponse)
async def test_provider_model(
    config_id: str,
    request: ConnectivityRequest,
    store: ConfigStore = Depends(get_config_store)
):
    """
    Check that one model of a config answers.

    WHAT: Minimal non-streaming "hello" completion
    WHY: Surface credential/URL/model mistakes before a fan-out
    HOW: check_model(); its errors are reported as ok=false with the reason
    """
    config = store.get_config(config_id)

    try:
        result = await check_model(config, request.model_name)
    except LLMError as e:
        logger.warning(f"Connectivity check failed for {config_id}: {e.message}")
        return ConnectivityResponse(ok=False, message=e.message or "An unexpected error occurred")

    return ConnectivityResponse(
        ok=True,
        message=f"Model {result.model} responded",
        latency=result.latency,
    )
