"""Extractor for sqlite3 ``.dump`` output."""

from __future__ import annotations

from typing import Iterator

from ..models import Dialect
from ..scanner import parse_create_tables
from .base import DumpExtractor, Row, compile_insert_pattern

INSERT_RE = compile_insert_pattern(r"INSERT\s+(?:OR\s+\w+\s+)?INTO\s+{ident}")
INTERNAL_TABLES = ("sqlite_sequence", "sqlite_stat1", "sqlite_stat4")


class SqliteExtractor(DumpExtractor):
    """Column names come from the CREATE TABLE statements, since sqlite
    dumps write ``INSERT INTO t VALUES(...)`` without a column list."""

    @property
    def dialect(self) -> Dialect:
        return Dialect.SQLITE

    def iter_rows(self, text: str) -> Iterator[Row]:
        yield from self.iter_insert_rows(
            text,
            INSERT_RE,
            column_types=parse_create_tables(text),
            skip_tables=INTERNAL_TABLES,
        )
