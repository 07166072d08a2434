"""Unit tests for dump loading and dialect detection."""

import codecs
from pathlib import Path

import pytest

from dumpvec.ingestion.detector import (
    decode_dump,
    detect_dialect,
    detect_file_dialect,
    matching_dialects,
    read_dump,
)
from dumpvec.ingestion.models import Dialect
from dumpvec.utils.exceptions import ExtractionError

FIXTURES = Path(__file__).resolve().parents[2] / "fixtures"


def test_sqlite_fixture_is_detected():
    path = FIXTURES / "sqlite_items.sql"
    assert detect_file_dialect(path, read_dump(path)) == Dialect.SQLITE


def test_postgres_fixture_is_detected():
    path = FIXTURES / "postgres_users.sql"
    assert detect_file_dialect(path, read_dump(path)) == Dialect.POSTGRES


def test_extension_wins_over_content():
    assert detect_dialect("export.surql", "ENGINE=InnoDB") == Dialect.SURREAL


@pytest.mark.parametrize(
    "head,expected",
    [
        ("INSERT INTO `users` VALUES (1);", Dialect.MYSQL),
        ("SET ANSI_NULLS ON\nGO\nINSERT [dbo].[t] ([a]) VALUES (1)", Dialect.MSSQL),
        ("REM INSERTING into HR.T\nInsert into HR.T (A) values (1);", Dialect.ORACLE),
        ("OPTION IMPORT;\nDEFINE TABLE person SCHEMALESS;", Dialect.SURREAL),
    ],
)
def test_signatures(head, expected):
    assert detect_dialect("dump.sql", head) == expected


def test_unrecognised_content_falls_back_to_json():
    assert detect_dialect("data.txt", '{"id": 1}\n{"id": 2}\n') == Dialect.JSON


def test_ambiguous_dump_uses_priority_order():
    head = "SET DEFINE OFF;\nCREATE TABLE t (id int) ENGINE=InnoDB;"
    assert matching_dialects(head) == ["oracle", "mysql"]
    assert detect_dialect("dump.sql", head) == Dialect.ORACLE


def test_sqlite_is_excluded_by_mysql_markers():
    head = "BEGIN TRANSACTION;\nCREATE TABLE t (a);\nINSERT INTO t VALUES (1);\nCOMMIT;\nENGINE=InnoDB"
    assert "sqlite" not in matching_dialects(head)


def test_decode_utf16_with_bom():
    raw = codecs.BOM_UTF16_LE + "INSERT [dbo].[t]".encode("utf-16-le")
    assert decode_dump(raw) == "INSERT [dbo].[t]"


def test_decode_strips_utf8_bom():
    assert decode_dump(codecs.BOM_UTF8 + b"COPY") == "COPY"


def test_read_dump_missing_file(tmp_path):
    with pytest.raises(ExtractionError):
        read_dump(tmp_path / "missing.sql")
