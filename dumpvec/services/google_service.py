"""Google Generative Language embedding provider (cloud API)."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from ..utils.constants import DEFAULT_GOOGLE_URL
from ..utils.exceptions import ConfigurationError, ProviderAuthError, ProviderResponseError
from .embedding_provider import EmbeddingProvider

logger = logging.getLogger(__name__)

TASK_TYPE = "SEMANTIC_SIMILARITY"


class GoogleEmbeddingProvider(EmbeddingProvider):
    """Client for the ``batchEmbedContents`` endpoint.

    429 and 5xx responses are retried with exponential backoff, honouring
    ``Retry-After``; auth failures and malformed bodies are fatal.
    """

    name = "google"

    def __init__(self, api_key: str, base_url: Optional[str] = None, **kwargs):
        """Initialize Google provider.

        Args:
            api_key: Generative Language API key.
            base_url: API root, defaults to the public v1beta endpoint.
            **kwargs: Passed to :class:`EmbeddingProvider`.

        Raises:
            ConfigurationError: If ``api_key`` is empty.
        """
        if not api_key:
            raise ConfigurationError("The google embedding provider needs an API key")
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_GOOGLE_URL).rstrip("/")

    @property
    def model_path(self) -> str:
        return self.model if self.model.startswith("models/") else f"models/{self.model}"

    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        payload = {
            "requests": [
                {
                    "model": self.model_path,
                    "content": {"parts": [{"text": text}]},
                    "taskType": TASK_TYPE,
                    "outputDimensionality": self.dimension,
                }
                for text in texts
            ]
        }

        async def call() -> httpx.Response:
            response = await self.client.post(
                f"{self.base_url}/{self.model_path}:batchEmbedContents",
                params={"key": self.api_key},
                json=payload,
            )
            self._raise_for_transient(response)
            return response

        response = await self._request(call)
        if response.status_code in (401, 403):
            raise ProviderAuthError(f"Google rejected the API key ({response.status_code})")
        if response.status_code != 200:
            raise ProviderResponseError(
                f"Google embedding error {response.status_code}: {response.text[:200]}"
            )
        try:
            embeddings = response.json()["embeddings"]
            return [item["values"] for item in embeddings]
        except (ValueError, KeyError, TypeError) as exc:
            raise ProviderResponseError(f"Unexpected Google response: {exc}") from exc
