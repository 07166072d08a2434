"""Extractor for Oracle INSERT exports (SQL Developer, ``REM INSERTING into``)."""

from __future__ import annotations

from typing import Iterator

from ..models import Dialect
from ..scanner import parse_create_tables
from .base import DumpExtractor, Row, compile_insert_pattern

INSERT_RE = compile_insert_pattern(r"INSERT\s+INTO\s+{ident}")


class OracleExtractor(DumpExtractor):
    @property
    def dialect(self) -> Dialect:
        return Dialect.ORACLE

    def iter_rows(self, text: str) -> Iterator[Row]:
        yield from self.iter_insert_rows(
            text, INSERT_RE, column_types=parse_create_tables(text)
        )
