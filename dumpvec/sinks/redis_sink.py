"""Redis sink storing vectors as hashes."""

from __future__ import annotations

import asyncio
import json
import logging
import struct
from typing import Any, List, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from ..config.settings import Settings
from ..utils.constants import ENTRY_ID_SCHEME
from ..utils.exceptions import ConfigurationError, SinkConnectionError, VectorStoreError
from .base import SinkBatch, SinkEntry, VectorSink

logger = logging.getLogger(__name__)


def pack_vector(vector: List[float]) -> bytes:
    """Encode a vector as little-endian float32, the layout RediSearch expects."""
    return struct.pack(f"<{len(vector)}f", *vector)


def unpack_vector(raw: bytes) -> List[float]:
    return list(struct.unpack(f"<{len(raw) // 4}f", raw))


class RedisSink(VectorSink):
    """Store entries in Redis hashes.

    Two shapes are supported:

    * per record (default): ``HSET {collection}:{id}`` with ``vector``
      (float32 bytes), ``data`` (record JSON) and ``table`` fields.
    * grouped (``group_redis``): one hash per collection, ``HSET
      {collection} {id} {"vector": [...], "data": {...}}``.

    The dimension and metric of each collection are kept under
    ``dumpvec:schema:{collection}`` so a later run with another dimension
    is refused.
    """

    name = "redis"

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.base_url = settings.host
        self.max_retries = settings.sink_max_retries
        self.retry_base_delay = 1.0
        self.grouped = settings.group_redis
        if client is None:
            client = redis.Redis.from_url(
                settings.host,
                username=settings.db_user if settings.use_auth and settings.db_password else None,
                password=settings.db_password if settings.use_auth else None,
                socket_connect_timeout=5,
            )
        self.client = client

    def has_credentials(self) -> bool:
        return bool(self.settings.db_password)

    @staticmethod
    def schema_key(collection: str) -> str:
        return f"{ENTRY_ID_SCHEME}:schema:{collection}"

    async def _execute(self, operation, description: str, table: str):
        attempt = 0
        while True:
            try:
                return await operation()
            except (RedisConnectionError, RedisTimeoutError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise SinkConnectionError(
                        f"redis unreachable at {self.base_url}: {exc}"
                    ) from exc
                logger.warning(
                    "redis connection failed (attempt %d/%d): %s",
                    attempt,
                    self.max_retries,
                    exc,
                )
                await asyncio.sleep(self.retry_base_delay * (2 ** (attempt - 1)))
            except RedisError as exc:
                raise VectorStoreError(
                    f"redis {description} failed for table '{table}': {exc}"
                ) from exc

    async def ensure_collection(self, table: str, dimension: int, metric: str) -> None:
        key = self.schema_key(self.collection_name(table))
        stored = await self._execute(lambda: self.client.hget(key, "dimension"), "schema read", table)
        if stored is not None:
            self.check_dimension(table, int(stored), dimension)
            return
        await self._execute(
            lambda: self.client.hset(key, mapping={"dimension": dimension, "metric": metric}),
            "schema write",
            table,
        )
        logger.info("Registered Redis collection %s (dim %d, %s)", key, dimension, metric)

    async def check_connection(self) -> None:
        try:
            await self._execute(self.client.ping, "ping", "*")
        except (SinkConnectionError, VectorStoreError) as exc:
            raise ConfigurationError(f"redis at {self.base_url} is not usable: {exc}") from exc
        logger.info("redis reachable at %s", self.base_url)

    def _data(self, entry: SinkEntry) -> str:
        return json.dumps(entry.metadata, ensure_ascii=False, default=str)

    def _grouped_value(self, entry: SinkEntry) -> str:
        return json.dumps(
            {"vector": entry.vector, "data": entry.metadata}, ensure_ascii=False, default=str
        )

    def estimate_entry_size(self, table: str, entry: SinkEntry) -> int:
        collection = self.collection_name(table)
        if self.grouped:
            value = self._grouped_value(entry).encode("utf-8")
            return len(collection) + len(entry.id) + len(value)
        fields = {
            "vector": pack_vector(entry.vector),
            "data": self._data(entry).encode("utf-8"),
            "table": table.encode("utf-8"),
        }
        key = f"{collection}:{entry.id}".encode("utf-8")
        return len(key) + sum(len(name) + len(value) for name, value in fields.items())

    def envelope_size(self, table: str) -> int:
        return 0

    async def upsert(self, table: str, batch: SinkBatch) -> int:
        collection = self.collection_name(table)

        async def write():
            pipe = self.client.pipeline(transaction=False)
            for entry in batch.entries:
                if self.grouped:
                    pipe.hset(collection, entry.id, self._grouped_value(entry))
                else:
                    pipe.hset(
                        f"{collection}:{entry.id}",
                        mapping={
                            "vector": pack_vector(entry.vector),
                            "data": self._data(entry),
                            "table": table,
                        },
                    )
            return await pipe.execute()

        await self._execute(write, "upsert", table)
        return len(batch)

    async def close(self):
        await self.client.aclose()
