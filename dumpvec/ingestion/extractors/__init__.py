"""Per-dialect dump extractors."""

from .base import DumpExtractor, ExtractionStats
from .json_lines import JsonLinesExtractor
from .mssql import MssqlExtractor
from .mysql import MysqlExtractor
from .oracle import OracleExtractor
from .postgres import PostgresExtractor
from .sqlite import SqliteExtractor
from .surreal import SurrealExtractor

__all__ = [
    "DumpExtractor",
    "ExtractionStats",
    "JsonLinesExtractor",
    "MssqlExtractor",
    "MysqlExtractor",
    "OracleExtractor",
    "PostgresExtractor",
    "SqliteExtractor",
    "SurrealExtractor",
]
