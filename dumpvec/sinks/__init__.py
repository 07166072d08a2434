"""Vector database sinks."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..config.settings import Settings
from ..utils.exceptions import ConfigurationError
from .base import SinkBatch, SinkEntry, VectorSink, flatten_metadata
from .chroma_sink import ChromaSink
from .milvus_sink import MilvusSink
from .pinecone_sink import PineconeSink
from .qdrant_sink import QdrantSink
from .redis_sink import RedisSink
from .surreal_sink import SurrealSink

logger = logging.getLogger(__name__)

SINKS = {
    "qdrant": QdrantSink,
    "chroma": ChromaSink,
    "milvus": MilvusSink,
    "pinecone": PineconeSink,
    "redis": RedisSink,
    "surreal": SurrealSink,
}


def build_sink(settings: Settings, client: Optional[Any] = None) -> VectorSink:
    """Create the sink selected by ``settings.export_type`` and check its credentials.

    Raises:
        ConfigurationError: For an unknown sink or missing credentials.
    """
    try:
        sink_class = SINKS[settings.export_type]
    except KeyError:
        raise ConfigurationError(f"Unknown export type: {settings.export_type}") from None
    sink = sink_class(settings, client=client)
    sink.validate_credentials()
    logger.info("Vector sink: %s at %s", settings.export_type, settings.host)
    return sink


__all__ = [
    "SINKS",
    "SinkBatch",
    "SinkEntry",
    "VectorSink",
    "flatten_metadata",
    "build_sink",
    "ChromaSink",
    "MilvusSink",
    "PineconeSink",
    "QdrantSink",
    "RedisSink",
    "SurrealSink",
]
