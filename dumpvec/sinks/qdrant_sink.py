"""Qdrant vector database sink."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..utils.exceptions import VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink

logger = logging.getLogger(__name__)


class QdrantSink(VectorSink):
    """Client for the Qdrant REST API.

    Collections are created with a single unnamed dense vector. Points are
    upserted with ``wait=true`` so a successful response means the write is
    durable.
    """

    name = "qdrant"
    metric_names = {"cosine": "Cosine", "euclidean": "Euclid", "dot": "Dot"}

    def _headers(self) -> Dict[str, str]:
        if self.settings.use_auth and self.settings.db_secret:
            return {"api-key": self.settings.db_secret}
        return {}

    async def collection_info(self, name: str) -> Optional[dict]:
        """Fetch collection info, or None when the collection does not exist."""
        response = await self._send("GET", f"{self.base_url}/collections/{name}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "describe collection", name)
        return response.json()

    @staticmethod
    def _vector_size(info: dict) -> Optional[int]:
        vectors: Any = info.get("result", {}).get("config", {}).get("params", {}).get("vectors", {})
        if isinstance(vectors, dict) and "size" in vectors:
            return vectors["size"]
        # Named vectors: every entry carries its own size.
        if isinstance(vectors, dict):
            for named in vectors.values():
                if isinstance(named, dict) and "size" in named:
                    return named["size"]
        return None

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        name = self.collection_name(table)
        info = await self.collection_info(name)
        if info is not None:
            self.check_dimension(table, self._vector_size(info), dimension)
            logger.debug("Qdrant collection %s already exists", name)
            return

        payload = {"vectors": {"size": dimension, "distance": self.backend_metric(metric)}}
        response = await self._send("PUT", f"{self.base_url}/collections/{name}", json=payload)
        self._raise_for_status(response, "create collection", table)
        logger.info("Created Qdrant collection %s (dim %d, %s)", name, dimension, metric)

    def wire_entry(self, table: str, entry: SinkEntry) -> Any:
        return {"id": entry.id, "vector": entry.vector, "payload": entry.metadata}

    def upsert_body(self, table: str, wires: List[Any]) -> Any:
        return {"points": wires}

    async def _ping(self) -> Optional[httpx.Response]:
        return await self._send("GET", f"{self.base_url}/collections")

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        name = self.collection_name(table)
        points = [self.wire_entry(table, entry) for entry in batch.entries]
        response = await self._send_json(
            "PUT",
            f"{self.base_url}/collections/{name}/points",
            self.upsert_body(table, points),
            table,
            params={"wait": "true"},
        )
        self._raise_for_status(response, "upsert", table)
        status = response.json().get("status")
        if status not in (None, "ok"):
            raise VectorStoreError(f"qdrant upsert for table '{table}' returned status {status}")
        return len(points)
