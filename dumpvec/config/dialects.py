"""
Dump Dialect Configuration and Registry

Holds the signature tokens used to recognise each dump family and the fixed
priority order used when more than one family matches.
"""

from typing import Dict, List, Optional

# Supported dump dialects registry
# Lower priority number is checked first; the first family with a matching
# signature wins.
DUMP_DIALECTS = {
    "oracle": {
        "id": "oracle",
        "display_name": "Oracle",
        "priority": 1,
        "extensions": [],
        "signatures": [
            r"REM INSERTING into",
            r"SET DEFINE OFF;",
            r"(?m)^Insert into ",
        ],
        "all_of": [["PCTFREE", "TABLESPACE"]],
        "description": "Oracle SQL Developer / exp style INSERT exports",
    },
    "postgres": {
        "id": "postgres",
        "display_name": "PostgreSQL",
        "priority": 2,
        "extensions": [],
        "signatures": [
            r"COPY\s+[\w.\"]+\s*\([^)]*\)\s+FROM\s+stdin;",
            r"PostgreSQL database dump",
            r"standard_conforming_strings",
            r"ALTER TABLE ONLY",
        ],
        "all_of": [],
        "description": "pg_dump plain-text output",
    },
    "sqlite": {
        "id": "sqlite",
        "display_name": "SQLite",
        "priority": 3,
        "extensions": [".sqlite.sql"],
        "signatures": [
            r"\A\s*PRAGMA foreign_keys=OFF;",
            r"sqlite_sequence",
        ],
        "all_of": [["BEGIN TRANSACTION;", "CREATE TABLE", "INSERT INTO", "COMMIT;"]],
        "none_of": ["ENGINE=", "[dbo]", "SET ANSI_NULLS"],
        "description": "sqlite3 .dump output",
    },
    "mssql": {
        "id": "mssql",
        "display_name": "SQL Server",
        "priority": 4,
        "extensions": [],
        "signatures": [
            r"SET ANSI_NULLS ON",
            r"SET QUOTED_IDENTIFIER ON",
            r"CREATE TABLE \[dbo\]\.",
            r"INSERT\s+(?:INTO\s+)?\[",
        ],
        "all_of": [],
        "description": "SQL Server Management Studio script output",
    },
    "mysql": {
        "id": "mysql",
        "display_name": "MySQL",
        "priority": 5,
        "extensions": [],
        "signatures": [
            r"ENGINE=InnoDB",
            r"LOCK TABLES",
            r"/\*!40\d{3}",
            r"AUTO_INCREMENT",
            r"COLLATE=utf8mb4",
            r"INSERT INTO `",
        ],
        "all_of": [],
        "description": "mysqldump output",
    },
    "surreal": {
        "id": "surreal",
        "display_name": "SurrealDB",
        "priority": 6,
        "extensions": [".surql"],
        "signatures": [
            r"OPTION IMPORT;",
            r"DEFINE TABLE \w+",
            r"(?m)^CREATE\s+\w+:\S+\s+CONTENT\s*\{",
        ],
        "all_of": [],
        "description": "SurrealDB export",
    },
}

FALLBACK_DIALECT = "json"


def get_all_dialects() -> List[Dict]:
    """Get all dialects in detection priority order."""
    return sorted(DUMP_DIALECTS.values(), key=lambda d: d["priority"])


def get_dialect_for_extension(path: str) -> Optional[str]:
    """Return the dialect ID claimed by a file extension, if any."""
    lowered = path.lower()
    for dialect in get_all_dialects():
        for ext in dialect["extensions"]:
            if lowered.endswith(ext):
                return dialect["id"]
    return None
