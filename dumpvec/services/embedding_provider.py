"""Embedding provider contract, shared retry policy and text truncation."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

import httpx
import tiktoken

from ..utils.constants import TIKTOKEN_ENCODING
from ..utils.exceptions import (
    DimensionMismatchError,
    EmbeddingTimeoutError,
    ProviderResponseError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class EmbeddingRequest:
    """Text to embed plus a reference back to the record it came from."""

    text: str
    record_ref: Any = None


@dataclass
class EmbeddingResult:
    vector: List[float]
    dimension: int


@lru_cache(maxsize=1)
def _encoding():
    return tiktoken.get_encoding(TIKTOKEN_ENCODING)


def count_tokens(text: str) -> int:
    return len(_encoding().encode(text))


def truncate_text(
    text: str, budget: int, direction: str = "tail", unit: str = "chars"
) -> str:
    """Cut ``text`` down to ``budget`` characters or tokens.

    Args:
        text: Text to truncate.
        budget: Maximum length in ``unit``.
        direction: ``tail`` drops the end (keeps the start); ``head`` drops
            the start (keeps the end).
        unit: ``chars`` or ``tokens`` (tiktoken ``cl100k_base``).

    Returns:
        The text unchanged when within budget, else the truncated text.
    """
    if budget <= 0:
        return ""
    if direction not in ("tail", "head"):
        raise ValueError(f"Unknown truncation direction: {direction}")

    if unit == "tokens":
        encoding = _encoding()
        tokens = encoding.encode(text)
        if len(tokens) <= budget:
            return text
        kept = tokens[:budget] if direction == "tail" else tokens[-budget:]
        return encoding.decode(kept)

    if len(text) <= budget:
        return text
    return text[:budget] if direction == "tail" else text[-budget:]


class EmbeddingProvider(ABC):
    """Base class for embedding providers.

    ``embed`` returns one result per input text, in input order. Timeouts are
    retried once. Every returned vector is checked against the configured
    dimension; a mismatch is fatal and never reshaped.

    Attributes:
        model: Model name sent to the provider.
        dimension: Expected vector dimension for the whole run.
        client: Async HTTP client for API requests.
    """

    name = "provider"

    def __init__(
        self,
        model: str,
        dimension: int,
        timeout: float = 60.0,
        max_concurrency: int = 4,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.dimension = dimension
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._slots = asyncio.Semaphore(max_concurrency)

    @abstractmethod
    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Return raw vectors for ``texts`` in order."""
        raise NotImplementedError

    async def start(self) -> None:
        """Acquire any external resources. No-op by default."""

    async def embed(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        """Embed a batch of texts.

        Raises:
            EmbeddingTimeoutError: If the batch times out twice.
            DimensionMismatchError: If a vector has the wrong dimension.
            ProviderResponseError: If the provider returns the wrong count.
        """
        if not texts:
            return []
        batch = list(texts)
        try:
            vectors = await self._embed_batch(batch)
        except EmbeddingTimeoutError:
            logger.warning(
                "%s batch of %d timed out, retrying once", self.name, len(batch)
            )
            vectors = await self._embed_batch(batch)

        if len(vectors) != len(batch):
            raise ProviderResponseError(
                f"{self.name} returned {len(vectors)} vectors for {len(batch)} texts"
            )
        results = []
        for vector in vectors:
            if len(vector) != self.dimension:
                raise DimensionMismatchError(self.dimension, len(vector))
            results.append(EmbeddingResult(vector=[float(v) for v in vector], dimension=len(vector)))
        return results

    async def _request(self, call: Callable[[], Awaitable[T]]) -> T:
        """Run one HTTP call in a concurrency slot, retrying rate limits.

        ``call`` raises RateLimitError for 429/5xx; those are retried with
        exponential backoff up to ``max_retries`` times.
        """
        attempt = 0
        while True:
            try:
                async with self._slots:
                    return await call()
            except httpx.TimeoutException as exc:
                raise EmbeddingTimeoutError(
                    f"{self.name} request timed out after {self.timeout}s"
                ) from exc
            except RateLimitError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                logger.warning(
                    "%s rate limited (attempt %d/%d): %s",
                    self.name,
                    attempt,
                    self.max_retries,
                    exc,
                )
                await self._backoff_delay(attempt, retry_after=exc.retry_after)

    async def _backoff_delay(self, attempt: int, retry_after: Optional[int] = None) -> None:
        delay = self.retry_base_delay * (2 ** (attempt - 1))
        if retry_after:
            delay = max(delay, retry_after)
        if delay > 0:
            await asyncio.sleep(delay)

    def _retry_after_seconds(self, response: httpx.Response) -> Optional[int]:
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return None
        try:
            return int(retry_after)
        except ValueError:
            return None

    def _raise_for_transient(self, response: httpx.Response) -> None:
        if response.status_code == 429 or response.status_code >= 500:
            raise RateLimitError(
                f"{self.name} returned HTTP {response.status_code}",
                retry_after=self._retry_after_seconds(response),
            )

    async def close(self):
        """Close the HTTP client and cleanup resources."""
        await self.client.aclose()

    async def __aenter__(self) -> "EmbeddingProvider":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
