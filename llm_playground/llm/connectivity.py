"""
One-shot model connectivity check.

WHAT: Ask a single model to answer a tiny prompt, without streaming
WHY: Let users verify base URL, key and model name before fanning out prompts
HOW: Reuse the provider adapter's complete(); errors propagate to the single caller
"""

import time

from .provider_factory import create_adapter
from .types import (
    ConfigurationError,
    ConnectivityResult,
    ProviderConfig,
    ProviderUnavailableError,
)
from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

CONNECT_FAILURE_MESSAGE = "Could not connect to the API. Please check your Base URL and API Key."


async def check_model(
    config: ProviderConfig,
    model_name: str,
    *,
    adapter_factory=create_adapter
) -> ConnectivityResult:
    """
    Check that a model answers a minimal completion.

    Args:
        config: Provider configuration to test
        model_name: Provider-side model or deployment name

    Returns:
        ConnectivityResult on success

    Raises:
        ConfigurationError: Base URL, API key or model name missing
        UnsupportedProviderError: Unknown provider kind
        ProviderUnavailableError: Endpoint not reachable
        ProviderTimeoutError / TransportError / ProviderError: as reported by the adapter
    """
    if not config.base_url or not config.api_key or not model_name:
        raise ConfigurationError("Missing required configuration")

    adapter = adapter_factory(config)
    started = time.monotonic()

    try:
        result = await adapter.complete(
            model_name,
            [{"role": "user", "content": settings.CONNECTIVITY_PROMPT}],
        )
    except ProviderUnavailableError as e:
        logger.warning(f"Connectivity check failed for {config.id}/{model_name}: {e.message}")
        raise ProviderUnavailableError(CONNECT_FAILURE_MESSAGE) from e

    latency = time.monotonic() - started
    logger.info(f"Connectivity check passed for {config.id}/{model_name} in {latency:.2f}s")
    return ConnectivityResult(ok=True, model=result.model, latency=latency)
