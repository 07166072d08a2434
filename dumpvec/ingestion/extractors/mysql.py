"""Extractor for mysqldump output."""

from __future__ import annotations

from typing import Iterator, List

from ..models import Dialect
from ..scanner import parse_create_tables
from .base import DumpExtractor, Row, compile_insert_pattern

INSERT_RE = compile_insert_pattern(r"(?:INSERT|REPLACE)\s+(?:IGNORE\s+)?INTO\s+{ident}")

FALLBACK_COLUMNS = ["id", "name", "description"]


def fallback_columns(count: int) -> List[str]:
    """Column names for an INSERT with no column list and no CREATE TABLE."""
    names = FALLBACK_COLUMNS[:count]
    names.extend(f"column{i}" for i in range(len(names), count))
    return names


class MysqlExtractor(DumpExtractor):
    @property
    def dialect(self) -> Dialect:
        return Dialect.MYSQL

    def iter_rows(self, text: str) -> Iterator[Row]:
        yield from self.iter_insert_rows(
            text,
            INSERT_RE,
            column_types=parse_create_tables(text),
            default_columns=fallback_columns,
        )
