"""Pinecone sink: one serverless index, one namespace per table."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..utils.constants import PINECONE_API_VERSION, PINECONE_CONTROL_URL
from ..utils.exceptions import ConfigurationError, VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink, flatten_metadata

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def index_name(name: str) -> str:
    """Pinecone index names are lowercase alphanumerics and hyphens."""
    cleaned = re.sub(r"[^a-z0-9-]+", "-", name.lower()).strip("-")
    return cleaned or "dumpvec"


class PineconeSink(VectorSink):
    """Client for Pinecone's control and data planes.

    The index is created through the control plane on first use. A 409
    means it already exists, in which case it is described to learn its
    data-plane host and dimension. Records go to a namespace named after
    their table. A local emulator (host on localhost) serves both planes
    and needs no key.
    """

    name = "pinecone"
    metric_names = {"cosine": "cosine", "euclidean": "euclidean", "dot": "dotproduct"}

    def __init__(self, settings, client=None):
        super().__init__(settings, client)
        self.is_local = any(host in self.base_url for host in LOCAL_HOSTS)
        self.control_url = self.base_url if self.is_local else PINECONE_CONTROL_URL
        self.index = index_name(settings.collection or settings.database)
        self.data_url: Optional[str] = self.base_url if self.is_local else None
        if not self.is_local and ".svc." in self.base_url and "pinecone.io" in self.base_url:
            self.data_url = self.base_url if self.base_url.startswith("https://") else f"https://{self.base_url}"
        self._index_ready = False

    def validate_credentials(self) -> None:
        if not self.is_local and not self.settings.db_secret:
            raise ConfigurationError("Pinecone cloud requires an API key (db_secret)")

    def _headers(self) -> Dict[str, str]:
        headers = {"X-Pinecone-API-Version": PINECONE_API_VERSION, "Accept": "application/json"}
        if self.settings.db_secret:
            headers["Api-Key"] = self.settings.db_secret
        return headers

    def collection_name(self, table: str) -> str:
        return self.index

    @staticmethod
    def _data_plane(host: Optional[str]) -> str:
        if not host:
            raise VectorStoreError("Pinecone response did not include the index host")
        return host if host.startswith("http") else f"https://{host}"

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        if self._index_ready:
            return
        if self.is_local:
            logger.debug("Pinecone local mode, assuming index %s exists", self.index)
            return

        payload = {
            "name": self.index,
            "dimension": dimension,
            "metric": self.backend_metric(metric),
            "spec": {
                "serverless": {
                    "cloud": self.settings.pinecone_cloud,
                    "region": self.settings.pinecone_region,
                }
            },
        }
        response = await self._send("POST", f"{self.control_url}/indexes", json=payload)
        if response.status_code in (200, 201):
            host = response.json().get("host")
            logger.info("Created Pinecone index %s at %s", self.index, host)
        elif response.status_code == 409:
            logger.info("Pinecone index %s already exists, describing it", self.index)
            described = await self._send("GET", f"{self.control_url}/indexes/{self.index}")
            self._raise_for_status(described, "describe index", table)
            info = described.json()
            self.check_dimension(table, info.get("dimension"), dimension)
            host = info.get("host")
        else:
            self._raise_for_status(response, "create index", table)
            raise VectorStoreError(
                f"pinecone create index returned unexpected status {response.status_code}"
            )

        if self.data_url is None:
            self.data_url = self._data_plane(host)
        self._index_ready = True

    def wire_entry(self, table: str, entry: SinkEntry) -> Any:
        return {
            "id": entry.id,
            "values": entry.vector,
            "metadata": {"table": table, **flatten_metadata(entry.metadata)},
        }

    def upsert_body(self, table: str, wires: List[Any]) -> Any:
        return {"vectors": wires, "namespace": table}

    async def _ping(self) -> Optional[httpx.Response]:
        return await self._send("GET", f"{self.control_url}/indexes")

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        if self.data_url is None:
            raise VectorStoreError(f"pinecone index for table '{table}' was never created")
        vectors = [self.wire_entry(table, entry) for entry in batch.entries]
        response = await self._send_json(
            "POST", f"{self.data_url}/vectors/upsert", self.upsert_body(table, vectors), table
        )
        self._raise_for_status(response, "upsert", table)
        count = response.json().get("upsertedCount", len(vectors))
        logger.debug("Pinecone upserted %d vectors into namespace %s", count, table)
        return count
