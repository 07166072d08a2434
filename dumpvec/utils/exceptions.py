"""
Custom exception hierarchy for dumpvec.

Errors are split by pipeline stage so the orchestrator can tell recoverable
problems (a skipped statement, a retryable timeout) from fatal ones.
"""

from __future__ import annotations

from typing import Optional


class DumpVecError(Exception):
    """Base exception for all dumpvec errors."""

    pass


class ConfigurationError(DumpVecError):
    """Raised when configuration is invalid or missing."""

    pass


class ExtractionError(DumpVecError):
    """Raised when a dump file cannot be read or extracted."""

    pass


class StatementParseError(ExtractionError):
    """Raised for a single malformed statement. Always recovered locally."""

    pass


class EmbeddingError(DumpVecError):
    """Raised for embedding provider errors."""

    pass


class EmbeddingTimeoutError(EmbeddingError):
    """Raised when an embedding request exceeds its timeout."""

    pass


class RateLimitError(EmbeddingError):
    """Raised when a provider returns HTTP 429 or a transient 5xx."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderResponseError(EmbeddingError):
    """Raised when a provider returns a body we cannot interpret."""

    pass


class ProviderAuthError(EmbeddingError):
    """Raised when a provider rejects our credentials."""

    pass


class ProviderProcessError(EmbeddingError):
    """Raised when a local inference server cannot be started."""

    pass


class DimensionMismatchError(DumpVecError):
    """Raised when a vector or collection dimension differs from the run's."""

    def __init__(self, expected: int, actual: int, table: Optional[str] = None):
        where = f" for table '{table}'" if table else ""
        super().__init__(
            f"Dimension mismatch{where}: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.table = table


class VectorStoreError(DumpVecError):
    """Raised for vector database operation errors."""

    pass


class SinkConnectionError(VectorStoreError):
    """Raised when a vector database cannot be reached."""

    pass


class PayloadTooLargeError(VectorStoreError):
    """Raised when a single entry exceeds the request payload ceiling."""

    pass
