"""Chroma vector database sink (v2 REST API)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..utils.exceptions import VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink, flatten_metadata

logger = logging.getLogger(__name__)


class ChromaSink(VectorSink):
    """Client for a Chroma server.

    The tenant and database are created on first use; "already exists"
    answers (409) are accepted. Collections are created with
    ``get_or_create`` and addressed by the id Chroma returns.
    """

    name = "chroma"
    metric_names = {"cosine": "cosine", "euclidean": "l2", "dot": "ip"}

    def __init__(self, settings, client=None):
        super().__init__(settings, client)
        self.api_url = f"{self.base_url}/api/v2"
        self.tenant = settings.tenant
        self.database = settings.database
        self._collection_ids: Dict[str, str] = {}
        self._database_ready = False

    def _headers(self) -> Dict[str, str]:
        if self.settings.use_auth and self.settings.db_secret:
            return {"X-Chroma-Token": self.settings.db_secret}
        return {}

    @property
    def _database_url(self) -> str:
        return f"{self.api_url}/tenants/{self.tenant}/databases/{self.database}"

    async def _ensure_database(self) -> None:
        if self._database_ready:
            return
        response = await self._send("POST", f"{self.api_url}/tenants", json={"name": self.tenant})
        if response.status_code != 409:
            self._raise_for_status(response, "create tenant", self.tenant)
        response = await self._send(
            "POST",
            f"{self.api_url}/tenants/{self.tenant}/databases",
            json={"name": self.database},
        )
        if response.status_code != 409:
            self._raise_for_status(response, "create database", self.database)
        self._database_ready = True

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        await self._ensure_database()
        name = self.collection_name(table)
        response = await self._send(
            "POST",
            f"{self._database_url}/collections",
            json={
                "name": name,
                "metadata": {"hnsw:space": self.backend_metric(metric)},
                "get_or_create": True,
            },
        )
        self._raise_for_status(response, "create collection", table)
        collection = response.json()
        # Chroma reports no dimension until the first vector is written.
        self.check_dimension(table, collection.get("dimension"), dimension)
        self._collection_ids[name] = collection["id"]
        logger.info("Chroma collection %s ready (id %s)", name, collection["id"])

    def wire_entry(self, table: str, entry: SinkEntry) -> Any:
        return {
            "id": entry.id,
            "embedding": entry.vector,
            "document": json.dumps(entry.metadata, ensure_ascii=False, default=str),
            "metadata": {"table": table, **flatten_metadata(entry.metadata)},
        }

    def upsert_body(self, table: str, wires: List[Any]) -> Any:
        # Parallel arrays; sizes measured on the per-entry object are an upper bound.
        return {
            "ids": [wire["id"] for wire in wires],
            "embeddings": [wire["embedding"] for wire in wires],
            "documents": [wire["document"] for wire in wires],
            "metadatas": [wire["metadata"] for wire in wires],
        }

    async def _ping(self) -> Optional[httpx.Response]:
        return await self._send("GET", f"{self.api_url}/heartbeat")

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        name = self.collection_name(table)
        collection_id = self._collection_ids.get(name)
        if collection_id is None:
            raise VectorStoreError(f"chroma collection for table '{table}' was never created")

        wires = [self.wire_entry(table, entry) for entry in batch.entries]
        response = await self._send_json(
            "POST",
            f"{self._database_url}/collections/{collection_id}/upsert",
            self.upsert_body(table, wires),
            table,
        )
        self._raise_for_status(response, "upsert", table)
        return len(batch)
