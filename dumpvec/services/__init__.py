"""Embedding providers."""

from __future__ import annotations

from .embedding_provider import (
    EmbeddingProvider,
    EmbeddingRequest,
    EmbeddingResult,
    count_tokens,
    truncate_text,
)
from .google_service import GoogleEmbeddingProvider
from .ollama_service import OllamaEmbeddingProvider
from .providers import build_provider
from .tei_service import TeiEmbeddingProvider, TeiServerProcess

__all__ = [
    "EmbeddingProvider",
    "EmbeddingRequest",
    "EmbeddingResult",
    "count_tokens",
    "truncate_text",
    "GoogleEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "TeiEmbeddingProvider",
    "TeiServerProcess",
    "build_provider",
]
