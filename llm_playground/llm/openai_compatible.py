"""
OpenAI-compatible chat-completion adapter.

WHAT: Shared streaming/non-streaming client for every supported provider
WHY: All providers speak the chat-completions SSE shape; only auth, URLs and usage placement differ
HOW: Fresh HTTPX client per call, SSE line parsing, error normalization into the LLMError taxonomy
"""

import json
from typing import AsyncIterator

import httpx

from .types import (
    ChatMessage,
    ConfigurationError,
    LLMResult,
    ProviderConfig,
    ProviderError,
    ProviderKind,
    ProviderTimeoutError,
    ProviderUnavailableError,
    TokenChunk,
    TransportError,
    UsageRecord,
)
from .usage import normalize_usage
from ..core.config import settings
from ..utils.logger import get_logger, mask_secret

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def extract_error_message(body) -> str | None:
    """
    Pull the most specific message out of a provider error body.

    Order: nested error.message, top-level message, plain string error.
    """
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
        if isinstance(error, str) and error.strip():
            return error.strip()
    return None


class OpenAICompatibleProvider:
    """Chat-completions adapter; subclasses override auth, endpoint and usage hooks."""

    kind: ProviderKind = ProviderKind.OPENAI
    # Ask the server to append a usage chunk before [DONE]
    include_usage: bool = True

    def __init__(
        self,
        config: ProviderConfig,
        *,
        connect_timeout: float | None = None,
        read_timeout: float | None = None
    ):
        """
        Initialize adapter from a provider configuration.

        Raises:
            ConfigurationError: base URL or API key is empty
        """
        if not config.base_url or not config.base_url.strip():
            raise ConfigurationError(f"Base URL is not set for provider config '{config.name}'")
        if not config.api_key or not config.api_key.strip():
            raise ConfigurationError(f"API key is not set for provider config '{config.name}'")

        self.config = config
        self.base_url = config.base_url.strip().rstrip("/")
        self.api_key = config.api_key.strip()
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.LLM_CONNECT_TIMEOUT
        self.read_timeout = read_timeout if read_timeout is not None else settings.LLM_READ_TIMEOUT

        logger.debug(
            f"{self.kind.value} adapter ready (config: {config.id}, base_url: {self.base_url}, "
            f"API key: {mask_secret(self.api_key)})"
        )

    # ----- provider hooks -----

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _endpoint(self, model: str) -> str:
        return f"{self.base_url}/chat/completions"

    def _params(self) -> dict[str, str]:
        return {}

    def _extract_usage(self, data: dict) -> UsageRecord | None:
        return normalize_usage(data.get("usage"))

    # ----- shared plumbing -----

    def _client(self) -> httpx.AsyncClient:
        # One client per invocation: connections are never shared across sessions
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.read_timeout, connect=self.connect_timeout),
            headers=self._headers(),
            http2=False
        )

    def _payload(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        stream: bool,
        max_tokens: int | None = None
    ) -> dict:
        payload = {
            "model": model,
            "messages": messages,
            "stream": stream,
        }
        if stream and self.include_usage:
            payload["stream_options"] = {"include_usage": True}
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return payload

    def _validate_request(self, model: str, messages: list[ChatMessage]) -> None:
        if not model or not model.strip():
            raise ConfigurationError(f"Model identifier is empty for provider config '{self.config.name}'")
        roles = [message.get("role") for message in messages]
        if roles != ["system", "user"]:
            raise ConfigurationError(
                f"Expected exactly one system message followed by one user message, got roles {roles}"
            )

    def _status_error(self, response: httpx.Response) -> ProviderError:
        """Build a ProviderError from an HTTP error response whose body has been read."""
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = None
        message = extract_error_message(body) or f"HTTP {response.status_code}"
        return ProviderError(message, status_code=response.status_code)

    def stream(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int | None = None
    ) -> AsyncIterator[TokenChunk]:
        """
        Validate the request and return the live token stream.

        Validation happens here, before any network I/O; the returned async
        generator opens the connection on first iteration.

        Raises:
            ConfigurationError: empty model identifier or malformed message list
        """
        self._validate_request(model, messages)
        return self._stream(model, messages, max_tokens=max_tokens)

    async def _stream(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int | None
    ) -> AsyncIterator[TokenChunk]:
        """
        Stream tokens as they arrive.

        Yields:
            TokenChunk per content delta, then one is_end chunk with usage

        Raises:
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Provider not reachable
            TransportError: Connection dropped mid-stream
            ProviderError: Error status, error chunk or malformed chunk
        """
        payload = self._payload(
            model, messages, stream=True, max_tokens=max_tokens
        )
        url = self._endpoint(model)

        try:
            async with self._client() as client:
                async with client.stream("POST", url, params=self._params(), json=payload) as response:
                    if response.is_error:
                        await response.aread()
                        raise self._status_error(response)

                    index = 0
                    usage = None

                    async for line in response.aiter_lines():
                        line = line.strip()

                        # Skip blank separators and SSE comments/fields other than data
                        if not line or not line.startswith("data:"):
                            continue

                        data_str = line[5:].strip()
                        if data_str == "[DONE]":
                            break

                        try:
                            data = json.loads(data_str)
                        except json.JSONDecodeError as e:
                            logger.error(f"Invalid SSE chunk from {self.kind.value}: {line[:100]}")
                            raise ProviderError(f"Invalid streaming chunk: {e}") from e

                        if not isinstance(data, dict):
                            raise ProviderError("Invalid streaming chunk: expected a JSON object")

                        if data.get("error"):
                            raise ProviderError(extract_error_message(data) or GENERIC_ERROR_MESSAGE)

                        chunk_usage = self._extract_usage(data)
                        if chunk_usage is not None:
                            usage = chunk_usage

                        for choice in data.get("choices") or []:
                            token = (choice.get("delta") or {}).get("content")
                            if token:
                                yield TokenChunk(token=token, index=index)
                                index += 1

                    logger.info(f"{self.kind.value} stream completed (model: {model}, {index} chunks)")
                    yield TokenChunk(token="", index=index, is_end=True, usage=usage)

        except httpx.TimeoutException as e:
            logger.error(f"{self.kind.value} streaming timeout (model: {model})")
            raise ProviderTimeoutError("Streaming request timed out") from e

        except httpx.ConnectError as e:
            logger.error(f"{self.kind.value} connection refused during streaming (model: {model})")
            raise ProviderUnavailableError(f"{self.kind.value} endpoint is not reachable: {e}") from e

        except httpx.HTTPError as e:
            logger.error(f"{self.kind.value} transport error during streaming: {e!r}")
            raise TransportError(str(e) or GENERIC_ERROR_MESSAGE) from e

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        *,
        max_tokens: int | None = None
    ) -> LLMResult:
        """
        Generate complete response (non-streaming).

        Raises:
            ConfigurationError: empty model identifier
            ProviderTimeoutError: Request timed out
            ProviderUnavailableError: Provider not reachable
            ProviderError: Error status or invalid response
        """
        if not model or not model.strip():
            raise ConfigurationError(f"Model identifier is empty for provider config '{self.config.name}'")

        payload = self._payload(model, messages, stream=False, max_tokens=max_tokens)

        try:
            async with self._client() as client:
                response = await client.post(self._endpoint(model), params=self._params(), json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError("Request timed out") from e
        except httpx.ConnectError as e:
            raise ProviderUnavailableError(f"{self.kind.value} endpoint is not reachable: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or GENERIC_ERROR_MESSAGE) from e

        if response.is_error:
            raise self._status_error(response)

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Invalid response from {self.kind.value}: {e}")
            raise ProviderError(f"Invalid response format: {e}") from e

        usage = self._extract_usage(data)
        response_model = data.get("model", model)
        logger.info(
            f"{self.kind.value} complete success (model: {response_model}, "
            f"tokens: {usage.total_tokens if usage else 'unknown'})"
        )
        return LLMResult(text=text, usage=usage, model=response_model)
