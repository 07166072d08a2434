"""Ollama embedding provider (long-lived local model server)."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from ..utils.constants import DEFAULT_OLLAMA_URL
from ..utils.exceptions import ProviderResponseError
from .embedding_provider import EmbeddingProvider

logger = logging.getLogger(__name__)


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Client for a local Ollama server.

    Each text is one ``/api/embeddings`` request; a batch fans out over the
    provider's concurrency slots, so at most ``max_concurrency`` requests
    are in flight.

    Attributes:
        host: Ollama server URL (e.g., "http://localhost:11434").
    """

    name = "ollama"

    def __init__(self, host: Optional[str] = None, **kwargs):
        """Initialize Ollama provider.

        Args:
            host: Ollama server URL. A trailing ``/api/embeddings`` is accepted.
            **kwargs: Passed to :class:`EmbeddingProvider`.
        """
        super().__init__(**kwargs)
        host = (host or DEFAULT_OLLAMA_URL).rstrip("/")
        if host.endswith("/api/embeddings"):
            host = host[: -len("/api/embeddings")]
        self.host = host

    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        return list(await asyncio.gather(*(self._embed_one(text) for text in texts)))

    async def _embed_one(self, text: str) -> List[float]:
        async def call() -> httpx.Response:
            response = await self.client.post(
                f"{self.host}/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
            self._raise_for_transient(response)
            return response

        response = await self._request(call)
        if response.status_code != 200:
            raise ProviderResponseError(
                f"Ollama embedding error {response.status_code}: {response.text[:200]}"
            )
        try:
            embedding = response.json()["embedding"]
        except (ValueError, KeyError) as exc:
            raise ProviderResponseError(f"Unexpected Ollama response: {exc}") from exc
        if not isinstance(embedding, list) or not embedding:
            raise ProviderResponseError("Ollama returned an empty embedding")
        return embedding
