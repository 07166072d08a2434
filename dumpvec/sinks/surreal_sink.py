"""SurrealDB sink over the HTTP ``/sql`` endpoint."""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

import httpx

from ..utils.exceptions import VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink

logger = logging.getLogger(__name__)


class SurrealSink(VectorSink):
    """Client for a SurrealDB server.

    Namespace and database are defined on first use, each table is defined
    schemaless, and entries are written with ``UPSERT`` so re-imports
    overwrite. Table names are lowercased.
    """

    name = "surreal"

    def __init__(self, settings, client=None):
        super().__init__(settings, client)
        self.namespace = settings.namespace
        self.database = settings.database
        self._database_ready = False

    def has_credentials(self) -> bool:
        return bool(self.settings.db_user and self.settings.db_password)

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "text/plain",
            "Surreal-NS": self.namespace,
            "Surreal-DB": self.database,
            "NS": self.namespace,
            "DB": self.database,
        }

    def collection_name(self, table: str) -> str:
        return (self.settings.collection or table).lower()

    async def query(self, sql: str, table: str) -> List[dict]:
        """Run SurrealQL and return the per-statement results.

        Raises:
            VectorStoreError: If the request or any statement fails.
        """
        auth = None
        if self.settings.use_auth:
            auth = httpx.BasicAuth(self.settings.db_user, self.settings.db_password)
        kwargs = {"content": sql.encode("utf-8")}
        if auth is not None:
            kwargs["auth"] = auth
        response = await self._send("POST", f"{self.base_url}/sql", **kwargs)
        self._raise_for_status(response, "query", table)
        results = response.json()
        if isinstance(results, dict):
            results = [results]
        for result in results:
            if result.get("status") not in (None, "OK"):
                raise VectorStoreError(
                    f"surreal statement failed for table '{table}': {result.get('result')}"
                )
        return results

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        name = self.collection_name(table)
        if not self._database_ready:
            await self.query(
                f"DEFINE NAMESPACE IF NOT EXISTS `{self.namespace}`;"
                f" DEFINE DATABASE IF NOT EXISTS `{self.database}`;",
                table,
            )
            self._database_ready = True

        results = await self.query(
            f"DEFINE TABLE IF NOT EXISTS `{name}` TYPE ANY SCHEMALESS PERMISSIONS NONE;"
            f" SELECT array::len(vector) AS dim FROM `{name}` LIMIT 1;",
            table,
        )
        rows = results[-1].get("result") or []
        if rows:
            self.check_dimension(table, rows[0].get("dim"), dimension)
        logger.info("SurrealDB table %s ready", name)

    def statement(self, table: str, entry: SinkEntry) -> str:
        content = json.dumps(
            {"vector": entry.vector, "data": entry.metadata, "original_table": table},
            ensure_ascii=False,
            default=str,
        )
        name = self.collection_name(table)
        return f"UPSERT type::thing({json.dumps(name)}, {json.dumps(entry.id)}) CONTENT {content};"

    def estimate_entry_size(self, table: str, entry: SinkEntry) -> int:
        # Statement plus its newline separator.
        return len(self.statement(table, entry).encode("utf-8")) + 1

    def envelope_size(self, table: str) -> int:
        return 0

    async def _ping(self) -> Optional[httpx.Response]:
        return await self._send("GET", f"{self.base_url}/health")

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        sql = "\n".join(self.statement(table, entry) for entry in batch.entries)
        self.check_payload(len(sql.encode("utf-8")), table)
        await self.query(sql, table)
        return len(batch)
