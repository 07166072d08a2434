"""Unit tests for the per-dialect extractors."""

from pathlib import Path

import pytest

from dumpvec.ingestion.extractor_registry import default_registry, get_extractor
from dumpvec.ingestion.extractors import (
    JsonLinesExtractor,
    MssqlExtractor,
    MysqlExtractor,
    OracleExtractor,
    PostgresExtractor,
    SqliteExtractor,
    SurrealExtractor,
)
from dumpvec.ingestion.models import Dialect

FIXTURES = Path(__file__).resolve().parents[2] / "fixtures"


def test_sqlite_fixture_rows():
    extractor = SqliteExtractor()
    records = list(extractor.extract((FIXTURES / "sqlite_items.sql").read_text()))

    assert [r.table for r in records] == ["items"] * 6
    assert [r.ordinal for r in records] == list(range(6))
    first = records[0]
    assert list(first.fields) == [
        "id", "name", "description", "tags", "attributes", "price", "is_active", "created_at",
    ]
    assert first.fields["tags"] is None
    assert first.fields["is_active"] is True
    assert records[1].fields["tags"] == ["gaming", "rgb", "mechanical"]
    assert records[1].fields["attributes"]["brand"] == "Keychron"
    assert records[2].fields["description"] is None
    assert records[2].fields["tags"] == ""
    assert records[2].fields["is_active"] is False
    assert records[4].fields["tags"] == "video, conference, usb"
    assert extractor.stats.records == 6
    assert extractor.stats.skipped == 0


def test_json_column_with_commas_is_one_field():
    dump = "INSERT INTO t (a, b) VALUES (1, '{\"a\": \"x,y\", \"b\": [1,2]}');\n"
    records = list(SqliteExtractor().extract(dump))
    assert records[0].fields == {"a": 1, "b": {"a": "x,y", "b": [1, 2]}}


def test_mysql_multi_row_insert_with_backticks():
    dump = (
        "CREATE TABLE `users` (\n"
        "  `id` int NOT NULL,\n"
        "  `name` varchar(64),\n"
        "  `admin` tinyint(1)\n"
        ") ENGINE=InnoDB;\n"
        "INSERT INTO `users` (`id`, `name`, `admin`) VALUES "
        "(1,'Ann',1),(2,'Bob\\'s, Inc',0),(3,NULL,NULL);\n"
    )
    records = list(MysqlExtractor().extract(dump))
    assert [r.fields for r in records] == [
        {"id": 1, "name": "Ann", "admin": True},
        {"id": 2, "name": "Bob's, Inc", "admin": False},
        {"id": 3, "name": None, "admin": None},
    ]


def test_mysql_without_column_list_uses_fallback_names():
    records = list(MysqlExtractor().extract("INSERT INTO `t` VALUES (1,'a','b','c');"))
    assert list(records[0].fields) == ["id", "name", "description", "column3"]


def test_mysql_skips_bad_group_and_keeps_the_rest():
    dump = "INSERT INTO `t` (`a`, `b`) VALUES (1,'x'),(2),(3,'z');"
    extractor = MysqlExtractor()
    records = list(extractor.extract(dump))
    assert [r.fields["a"] for r in records] == [1, 3]
    assert extractor.stats.skipped == 1


def test_postgres_copy_and_insert():
    extractor = PostgresExtractor()
    records = list(extractor.extract((FIXTURES / "postgres_users.sql").read_text()))

    assert [r.table for r in records] == ["users"] * 4
    assert records[0].fields == {
        "id": 1,
        "email": "ann@example.com",
        "active": True,
        "tags": ["admin", "staff"],
        "profile": {"age": 31},
    }
    assert records[1].fields["email"] is None
    assert records[1].fields["tags"] == []
    assert records[2].fields["email"] == "line\tbreak"
    assert records[2].fields["tags"] == ["a b", None]
    assert records[3].fields["email"] == "o'neil@example.com"
    assert records[3].fields["active"] is True


def test_postgres_copy_without_terminator_is_skipped():
    dump = "COPY public.t (a, b) FROM stdin;\n1\t2\n"
    extractor = PostgresExtractor()
    assert list(extractor.extract(dump)) == []
    assert extractor.stats.skipped == 1


def test_postgres_copy_row_with_wrong_field_count_is_skipped():
    dump = "COPY t (a, b) FROM stdin;\n1\t2\n3\n\\.\n"
    extractor = PostgresExtractor()
    records = list(extractor.extract(dump))
    assert [r.fields for r in records] == [{"a": 1, "b": 2}]
    assert extractor.stats.skipped == 1


def test_mysql_statement_text_inside_a_value_is_not_a_statement():
    dump = (
        "INSERT INTO `notes` (`id`, `body`) VALUES "
        "(1,'run INSERT INTO users VALUES (99,\\'x\\') later');\n"
        "INSERT INTO `notes` (`id`, `body`) VALUES (2,'ok');\n"
    )
    extractor = MysqlExtractor()
    records = list(extractor.extract(dump))
    assert [(r.table, r.fields["id"]) for r in records] == [("notes", 1), ("notes", 2)]
    assert records[0].fields["body"] == "run INSERT INTO users VALUES (99,'x') later"
    assert extractor.stats.skipped == 0


def test_postgres_insert_text_inside_copy_data_is_not_a_statement():
    dump = "COPY t (a, b) FROM stdin;\n1\tINSERT INTO t VALUES (5, 'z');\n\\.\n"
    records = list(PostgresExtractor().extract(dump))
    assert [r.fields for r in records] == [{"a": 1, "b": "INSERT INTO t VALUES (5, 'z');"}]


def test_mssql_bracketed_insert_with_bit_column():
    dump = (
        "CREATE TABLE [dbo].[Flags](\n"
        "  [Id] [int] NOT NULL,\n"
        "  [Name] [nvarchar](50) NULL,\n"
        "  [Enabled] [bit] NOT NULL\n"
        ")\nGO\n"
        "INSERT [dbo].[Flags] ([Id], [Name], [Enabled]) VALUES (1, N'Dark mode', 1)\n"
        "INSERT INTO [dbo].[Flags] ([Id], [Name], [Enabled]) "
        "VALUES (2, CAST(N'Beta' AS nvarchar(10)), 0)\n"
    )
    records = list(MssqlExtractor().extract(dump))
    assert [r.table for r in records] == ["Flags", "Flags"]
    assert records[0].fields == {"Id": 1, "Name": "Dark mode", "Enabled": True}
    assert records[1].fields == {"Id": 2, "Name": "Beta", "Enabled": False}


def test_oracle_insert_with_to_date():
    dump = (
        "REM INSERTING into HR.EMPLOYEES\n"
        "SET DEFINE OFF;\n"
        "Insert into HR.EMPLOYEES (\"ID\",\"NAME\",\"HIRED\") values "
        "(7,'O''Hara',to_date('2020-05-01','YYYY-MM-DD'));\n"
    )
    records = list(OracleExtractor().extract(dump))
    assert records[0].table == "EMPLOYEES"
    assert records[0].fields == {"ID": 7, "NAME": "O'Hara", "HIRED": "2020-05-01"}


def test_surreal_insert_create_and_record_links():
    dump = (
        "OPTION IMPORT;\n"
        "INSERT [ { id: person:one, name: 'Ann', score: 1.5f }, "
        "{ id: person:two, name: 'Bob', nick: NONE } ];\n"
        "INSERT INTO pet { name: 'Rex', owner: person:one };\n"
        "CREATE note:first CONTENT { body: 'hello', tags: ['a'] };\n"
    )
    records = list(SurrealExtractor().extract(dump))
    assert [(r.table, r.ordinal) for r in records] == [
        ("person", 0),
        ("person", 1),
        ("pet", 0),
        ("note", 0),
    ]
    assert records[0].fields == {"id": "person:one", "name": "Ann", "score": 1.5}
    assert records[1].fields["nick"] is None
    assert records[2].fields["owner"] == "person:one"
    assert records[3].fields == {"id": "note:first", "body": "hello", "tags": ["a"]}


def test_surreal_unbalanced_statement_is_skipped():
    extractor = SurrealExtractor()
    records = list(extractor.extract("INSERT INTO t { a: 1;\n"))
    assert records == []
    assert extractor.stats.skipped == 1


def test_surreal_statement_text_inside_a_string_is_not_a_statement():
    dump = "CREATE note:a CONTENT { body: 'INSERT INTO x { a: 1 }' };\n"
    records = list(SurrealExtractor().extract(dump))
    assert [(r.table, r.fields) for r in records] == [
        ("note", {"id": "note:a", "body": "INSERT INTO x { a: 1 }"})
    ]


def test_json_lines_with_table_hints():
    dump = (
        '{"table": "users", "id": 1, "name": "Ann"}\n'
        "not json\n"
        '{"collection": "orders", "id": 9}\n'
        '{"id": 3}\n'
    )
    extractor = JsonLinesExtractor()
    records = list(extractor.extract(dump))
    assert [(r.table, r.fields) for r in records] == [
        ("users", {"id": 1, "name": "Ann"}),
        ("orders", {"id": 9}),
        ("records", {"id": 3}),
    ]
    assert extractor.stats.skipped == 1


def test_json_whole_array():
    records = list(JsonLinesExtractor().extract('[{"_table": "a", "x": 1}, {"x": 2}]'))
    assert [(r.table, r.fields) for r in records] == [("a", {"x": 1}), ("records", {"x": 2})]


def test_extract_restarts_from_the_top():
    extractor = JsonLinesExtractor()
    dump = '{"id": 1}\n{"id": 2}\n'
    assert len(list(extractor.extract(dump))) == 2
    assert len(list(extractor.extract(dump))) == 2


@pytest.mark.parametrize("dialect", list(Dialect))
def test_registry_covers_every_dialect(dialect):
    assert dialect in default_registry().list_dialects()
    assert get_extractor(dialect).dialect == dialect
