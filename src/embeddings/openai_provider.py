"""OpenAI-compatible embedding provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.search.exceptions import EmbeddingConfigurationError, EmbeddingProviderError

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_MODEL = "text-embedding-3-small"


class OpenAIEmbeddingProvider:
    """Async embedding client for the ``/embeddings`` endpoint.

    The httpx client is created on the first call and reused until
    ``aclose()``. No retries: a failed call is reported to the caller.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = _DEFAULT_MODEL,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def model_name(self) -> str:
        """Get the embedding model name."""
        return self._model

    @property
    def is_configured(self) -> bool:
        """Whether an API key is present."""
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def embed(self, text: str, dimension: int) -> list[float]:
        """Embed a single text. Returns a vector of exactly ``dimension`` floats.

        Raises:
            EmbeddingConfigurationError: If no API key is configured
            EmbeddingProviderError: On transport failure, error status,
                malformed payload, or a vector of the wrong dimension
        """
        if not self._api_key:
            raise EmbeddingConfigurationError("OPENAI_API_KEY not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                "/embeddings",
                json={
                    "model": self._model,
                    "input": text,
                    "dimensions": dimension,
                },
            )
        except httpx.HTTPError as e:
            raise EmbeddingProviderError(f"OpenAI API request failed: {e}", cause=e) from e

        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = None
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                message = payload["error"].get("message")
            raise EmbeddingProviderError(f"OpenAI API error: {message or 'Unknown error'}")

        try:
            embedding = payload["data"][0]["embedding"]
            vector = [float(v) for v in embedding]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingProviderError(f"Unexpected OpenAI response: {e!r}", cause=e) from e

        if len(vector) != dimension:
            raise EmbeddingProviderError(f"Expected {dimension} dims, got {len(vector)}")

        logger.debug("Embedded query with %s (%d dims)", self._model, dimension)
        return vector

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
