"""Build the configured embedding provider."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config.settings import Settings
from ..utils.exceptions import ConfigurationError
from .embedding_provider import EmbeddingProvider
from .google_service import GoogleEmbeddingProvider
from .ollama_service import OllamaEmbeddingProvider
from .tei_service import TeiEmbeddingProvider, TeiServerProcess

logger = logging.getLogger(__name__)


def build_provider(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> EmbeddingProvider:
    """Create the provider selected by ``settings.embedding_provider``.

    For ``tei`` without an ``embedding_url`` a local server process is
    managed by the provider for the duration of the run.
    """
    common = dict(
        model=settings.embedding_model,
        dimension=settings.dimension,
        timeout=settings.embedding_timeout,
        max_concurrency=settings.embedding_max_concurrency,
        max_retries=settings.embedding_max_retries,
        retry_base_delay=settings.embedding_retry_base_delay,
        client=client,
    )
    name = settings.embedding_provider
    logger.info("Embedding provider: %s (model %s)", name, settings.embedding_model)

    if name == "ollama":
        return OllamaEmbeddingProvider(host=settings.embedding_url, **common)
    if name == "tei":
        if settings.embedding_url:
            return TeiEmbeddingProvider(url=settings.embedding_url, **common)
        server = TeiServerProcess(
            binary_path=settings.tei_binary_path,
            model=settings.embedding_model,
            port=settings.tei_local_port,
            startup_timeout=settings.tei_startup_timeout,
        )
        return TeiEmbeddingProvider(server=server, **common)
    if name == "google":
        return GoogleEmbeddingProvider(
            api_key=settings.embedding_api_key, base_url=settings.embedding_url, **common
        )
    raise ConfigurationError(f"Unknown embedding provider: {name}")
