"""Extractor registry keyed by dialect."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Type

from .extractors import (
    DumpExtractor,
    JsonLinesExtractor,
    MssqlExtractor,
    MysqlExtractor,
    OracleExtractor,
    PostgresExtractor,
    SqliteExtractor,
    SurrealExtractor,
)
from .models import Dialect

logger = logging.getLogger(__name__)

DEFAULT_EXTRACTORS: List[Type[DumpExtractor]] = [
    MysqlExtractor,
    PostgresExtractor,
    MssqlExtractor,
    OracleExtractor,
    SqliteExtractor,
    SurrealExtractor,
    JsonLinesExtractor,
]


class ExtractorRegistry:
    """Registry for dump extractors."""

    def __init__(self) -> None:
        self._extractors: Dict[Dialect, Type[DumpExtractor]] = {}

    def register(self, extractor_class: Type[DumpExtractor]) -> None:
        dialect = extractor_class().dialect
        self._extractors[dialect] = extractor_class
        logger.debug("Registered extractor for %s", dialect.value)

    def list_dialects(self) -> List[Dialect]:
        return list(self._extractors)

    def get_for_dialect(self, dialect: Dialect) -> Optional[DumpExtractor]:
        extractor_class = self._extractors.get(dialect)
        return extractor_class() if extractor_class else None


def default_registry() -> ExtractorRegistry:
    registry = ExtractorRegistry()
    for extractor_class in DEFAULT_EXTRACTORS:
        registry.register(extractor_class)
    return registry


def get_extractor(dialect: Dialect) -> DumpExtractor:
    """Return a fresh extractor for ``dialect``, falling back to JSON lines."""
    extractor = default_registry().get_for_dialect(dialect)
    if extractor is None:
        logger.warning("No extractor for %s, using JSON lines", dialect.value)
        return JsonLinesExtractor()
    return extractor
