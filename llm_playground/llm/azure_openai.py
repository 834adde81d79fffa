"""
Azure OpenAI provider adapter.

WHAT: Chat completions against an Azure OpenAI resource
WHY: Azure routes by deployment in the URL, pins an api-version and authenticates with api-key
HOW: Normalize the base URL to .../openai/deployments, add api-version query, api-key header
"""

from .openai_compatible import OpenAICompatibleProvider
from .types import ProviderConfig, ProviderKind
from ..core.config import settings

DEPLOYMENTS_SUFFIX = "/openai/deployments"


def normalize_azure_base_url(base_url: str) -> str:
    """
    Accept resource root, .../openai or .../openai/deployments and return the deployments root.

    >>> normalize_azure_base_url("https://res.openai.azure.com/")
    'https://res.openai.azure.com/openai/deployments'
    """
    base = base_url.strip().rstrip("/")
    if base.endswith(DEPLOYMENTS_SUFFIX):
        return base
    if base.endswith("/openai"):
        return f"{base}/deployments"
    return f"{base}{DEPLOYMENTS_SUFFIX}"


class AzureOpenAIProvider(OpenAICompatibleProvider):
    """Azure OpenAI chat-completions adapter."""

    kind = ProviderKind.AZURE_OPENAI

    def __init__(self, config: ProviderConfig, *, api_version: str | None = None, **kwargs):
        super().__init__(config, **kwargs)
        self.base_url = normalize_azure_base_url(self.base_url)
        self.api_version = api_version or settings.AZURE_OPENAI_API_VERSION

    def _headers(self) -> dict[str, str]:
        return {"api-key": self.api_key}

    def _endpoint(self, model: str) -> str:
        return f"{self.base_url}/{model}/chat/completions"

    def _params(self) -> dict[str, str]:
        return {"api-version": self.api_version}
