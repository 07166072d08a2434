"""Extractor for SQL Server scripts (SSMS "Generate Scripts" style)."""

from __future__ import annotations

from typing import Iterator

from ..models import Dialect
from ..scanner import parse_create_tables
from .base import DumpExtractor, Row, compile_insert_pattern

INSERT_RE = compile_insert_pattern(r"INSERT\s+(?:INTO\s+)?{ident}")


class MssqlExtractor(DumpExtractor):
    """Handles ``N'..'`` strings, ``CAST(x AS T)`` wrappers and ``bit``
    columns, which are written as 0/1 and read back as booleans."""

    @property
    def dialect(self) -> Dialect:
        return Dialect.MSSQL

    def iter_rows(self, text: str) -> Iterator[Row]:
        yield from self.iter_insert_rows(
            text, INSERT_RE, column_types=parse_create_tables(text)
        )
