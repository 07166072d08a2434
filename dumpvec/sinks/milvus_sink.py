"""Milvus vector database sink (RESTful v2 API)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..utils.exceptions import VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink

logger = logging.getLogger(__name__)

ID_MAX_LENGTH = 64


class MilvusSink(VectorSink):
    """Client for the Milvus ``/v2/vectordb`` endpoints.

    Milvus answers HTTP 200 for most failures and reports them in a
    ``code`` field, so every response is checked for ``code == 0``.
    Record fields are stored in a dynamic ``metadata`` JSON field.
    """

    name = "milvus"
    metric_names = {"cosine": "COSINE", "euclidean": "L2", "dot": "IP"}

    def has_credentials(self) -> bool:
        return bool(self.settings.db_secret or (self.settings.db_user and self.settings.db_password))

    def _headers(self) -> Dict[str, str]:
        if not self.settings.use_auth:
            return {}
        token = self.settings.db_secret or f"{self.settings.db_user}:{self.settings.db_password}"
        return {"Authorization": f"Bearer {token}"}

    async def _call(self, endpoint: str, payload: dict, table: str) -> httpx.Response:
        body = {"dbName": self.settings.database, **payload}
        response = await self._send_json(
            "POST", f"{self.base_url}/v2/vectordb/{endpoint}", body, table
        )
        self._raise_for_status(response, endpoint, table)
        return response

    @staticmethod
    def _vector_dimension(description: dict) -> Optional[int]:
        for field in description.get("fields", []):
            if "vector" not in str(field.get("type", "")).lower():
                continue
            for param in field.get("params", []):
                if param.get("key") == "dim":
                    return int(param["value"])
        return None

    async def describe_collection(self, name: str, table: str) -> Optional[Dict[str, Any]]:
        response = await self._call("collections/describe", {"collectionName": name}, table)
        body = response.json()
        if body.get("code") != 0:
            return None
        return body.get("data", {})

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        name = self.collection_name(table)
        description = await self.describe_collection(name, table)
        if description is not None:
            self.check_dimension(table, self._vector_dimension(description), dimension)
            logger.debug("Milvus collection %s already exists", name)
            return

        payload = {
            "collectionName": name,
            "dimension": dimension,
            "metricType": self.backend_metric(metric),
            "primaryFieldName": "id",
            "idType": "VarChar",
            "vectorFieldName": "vector",
            "autoId": False,
            "enableDynamicField": True,
            "params": {"max_length": ID_MAX_LENGTH},
        }
        body = (await self._call("collections/create", payload, table)).json()
        if body.get("code") != 0:
            raise VectorStoreError(
                f"milvus create collection failed for table '{table}': {body.get('message')}"
            )
        logger.info("Created Milvus collection %s (dim %d, %s)", name, dimension, metric)

    def wire_entry(self, table: str, entry: SinkEntry) -> Any:
        return {"id": entry.id, "vector": entry.vector, "table": table, "metadata": entry.metadata}

    def upsert_body(self, table: str, wires: List[Any]) -> Any:
        return {
            "dbName": self.settings.database,
            "collectionName": self.collection_name(table),
            "data": wires,
        }

    async def _ping(self) -> Optional[httpx.Response]:
        return await self._send(
            "POST",
            f"{self.base_url}/v2/vectordb/collections/list",
            json={"dbName": self.settings.database},
        )

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        data = [self.wire_entry(table, entry) for entry in batch.entries]
        body = (await self._call("entities/upsert", self.upsert_body(table, data), table)).json()
        if body.get("code") != 0:
            raise VectorStoreError(
                f"milvus upsert failed for table '{table}': {body.get('message')}"
            )
        return body.get("data", {}).get("upsertCount", len(data))
