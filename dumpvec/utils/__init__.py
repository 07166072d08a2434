"""
Utility modules for dumpvec.

This package provides the exception hierarchy, constants, identifier helpers
and logging configuration used throughout the application.
"""

from __future__ import annotations

from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    DumpVecError,
    EmbeddingError,
    EmbeddingTimeoutError,
    ExtractionError,
    PayloadTooLargeError,
    ProviderAuthError,
    ProviderProcessError,
    ProviderResponseError,
    RateLimitError,
    SinkConnectionError,
    StatementParseError,
    VectorStoreError,
)
from .ids import find_primary_key, generate_entry_id, is_valid_entry_id
from .logging_config import setup_logging

__all__ = [
    "ConfigurationError",
    "DimensionMismatchError",
    "DumpVecError",
    "EmbeddingError",
    "EmbeddingTimeoutError",
    "ExtractionError",
    "PayloadTooLargeError",
    "ProviderAuthError",
    "ProviderProcessError",
    "ProviderResponseError",
    "RateLimitError",
    "SinkConnectionError",
    "StatementParseError",
    "VectorStoreError",
    "find_primary_key",
    "generate_entry_id",
    "is_valid_entry_id",
    "setup_logging",
]
