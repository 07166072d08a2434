"""Vector sink contract and the HTTP plumbing shared by REST adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config.settings import Settings
from ..utils.constants import DEFAULT_SINK_TIMEOUT, REQUEST_ENVELOPE_BYTES
from ..utils.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    PayloadTooLargeError,
    SinkConnectionError,
    VectorStoreError,
)

logger = logging.getLogger(__name__)


@dataclass
class SinkEntry:
    """One vector to store: deterministic id, embedding and record fields."""

    id: str
    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SinkBatch:
    """Entries bound for one table's collection in a single request."""

    table: str
    entries: List[SinkEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def ids(self) -> List[str]:
        return [entry.id for entry in self.entries]


def encode_json(body: Any) -> bytes:
    """Compact UTF-8 JSON, exactly as REST sinks put it on the wire."""
    return json.dumps(body, ensure_ascii=False, separators=(",", ":"), default=str).encode("utf-8")


def flatten_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce metadata to scalar values for backends with flat metadata.

    Nulls are dropped and arrays or objects are stored as JSON text.
    """
    flat: Dict[str, Any] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (list, dict)):
            flat[key] = json.dumps(value, ensure_ascii=False, default=str)
        else:
            flat[key] = value
    return flat


class VectorSink(ABC):
    """Base class for vector database adapters.

    ``ensure_collection`` is called once per collection before the first
    write to it; ``upsert`` receives batches that already respect the
    configured entry-count and payload ceilings. Entry ids are stable, so
    re-running an import overwrites instead of duplicating.

    Attributes:
        settings: Resolved run configuration.
        client: Async HTTP client for REST backends.
    """

    name = "sink"
    metric_names: Dict[str, str] = {"cosine": "cosine", "euclidean": "euclidean", "dot": "dot"}

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.base_url = settings.host.rstrip("/")
        self.max_retries = settings.sink_max_retries
        self.retry_base_delay = 1.0
        self.client = client or httpx.AsyncClient(timeout=DEFAULT_SINK_TIMEOUT)

    @abstractmethod
    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        """Create the table's collection if missing, or verify its dimension.

        Raises:
            DimensionMismatchError: If the collection exists with another dimension.
            VectorStoreError: If the backend refuses the request.
        """
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, table: str, batch: SinkBatch) -> int:
        """Write one batch, returning the number of entries stored."""
        raise NotImplementedError

    def wire_entry(self, table: str, entry: SinkEntry) -> Any:
        """The part of the upsert request that carries one entry."""
        return {"id": entry.id, "vector": entry.vector, "metadata": entry.metadata}

    def upsert_body(self, table: str, wires: List[Any]) -> Any:
        """Upsert request body around already built wire entries.

        None means the adapter does not send a single JSON body.
        """
        return None

    def estimate_entry_size(self, table: str, entry: SinkEntry) -> int:
        """Bytes one entry adds to an upsert request for ``table``."""
        return len(encode_json(self.wire_entry(table, entry)))

    def envelope_size(self, table: str) -> int:
        """Bytes of the upsert request around its entries."""
        body = self.upsert_body(table, [])
        if body is None:
            return REQUEST_ENVELOPE_BYTES
        return len(encode_json(body))

    async def _ping(self) -> Optional[httpx.Response]:
        """Cheap request proving the backend answers; None skips the check."""
        return None

    async def check_connection(self) -> None:
        """Make sure the backend is reachable before any record is processed.

        Raises:
            ConfigurationError: If the host does not answer, rejects the
                credentials, or reports itself unhealthy.
        """
        try:
            response = await self._ping()
        except SinkConnectionError as exc:
            raise ConfigurationError(str(exc)) from exc
        if response is None:
            return
        if response.status_code in (401, 403):
            raise ConfigurationError(
                f"{self.name} at {self.base_url} rejected the credentials "
                f"({response.status_code})"
            )
        if response.status_code >= 500:
            raise ConfigurationError(
                f"{self.name} at {self.base_url} is not healthy ({response.status_code})"
            )
        logger.info("%s reachable at %s", self.name, self.base_url)

    def has_credentials(self) -> bool:
        return bool(self.settings.db_secret)

    def validate_credentials(self) -> None:
        """Fail before any write when auth is on but credentials are missing."""
        if self.settings.use_auth and not self.has_credentials():
            raise ConfigurationError(
                f"Authentication is enabled for {self.name} but no credentials were given"
            )

    def collection_name(self, table: str) -> str:
        return self.settings.collection or table

    def backend_metric(self, metric: str) -> str:
        try:
            return self.metric_names[metric]
        except KeyError:
            raise ConfigurationError(f"{self.name} does not support metric '{metric}'") from None

    def check_dimension(self, table: str, actual: Optional[int], expected: int) -> None:
        if actual is not None and int(actual) != expected:
            raise DimensionMismatchError(expected, int(actual), table=table)

    def _headers(self) -> Dict[str, str]:
        return {}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying connection failures with backoff.

        Raises:
            SinkConnectionError: If the backend stays unreachable.
        """
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        attempt = 0
        while True:
            try:
                return await self.client.request(method, url, headers=headers, **kwargs)
            except httpx.TransportError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise SinkConnectionError(
                        f"{self.name} unreachable at {url}: {exc}"
                    ) from exc
                logger.warning(
                    "%s connection failed (attempt %d/%d): %s",
                    self.name,
                    attempt,
                    self.max_retries,
                    exc,
                )
                await asyncio.sleep(self.retry_base_delay * (2 ** (attempt - 1)))

    def check_payload(self, size: int, table: str) -> None:
        limit = self.settings.max_payload_bytes
        if size > limit:
            raise PayloadTooLargeError(
                f"{self.name} request for table '{table}' is {size} bytes, "
                f"above the {limit} byte ceiling"
            )

    async def _send_json(
        self, method: str, url: str, body: Any, table: str, params: Optional[dict] = None
    ) -> httpx.Response:
        """Send ``body`` as compact JSON after checking it against the payload ceiling."""
        content = encode_json(body)
        self.check_payload(len(content), table)
        return await self._send(
            method,
            url,
            content=content,
            headers={"Content-Type": "application/json"},
            params=params,
        )

    def _raise_for_status(self, response: httpx.Response, action: str, table: str) -> None:
        if response.status_code >= 400:
            raise VectorStoreError(
                f"{self.name} {action} failed for table '{table}' "
                f"({response.status_code}): {response.text[:300]}"
            )

    async def close(self):
        """Close the HTTP client and cleanup resources."""
        await self.client.aclose()

    async def __aenter__(self) -> "VectorSink":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
