"""SQLite layout for the document store: one table, one row per document."""

from __future__ import annotations

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

_DOCUMENTS_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    PRIMARY KEY (collection, id)
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
"""


def _open(db_path: str | Path) -> sqlite3.Connection:
    if str(db_path) == ":memory:":
        return sqlite3.connect(":memory:")
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Connect to ``db_path`` (or ``":memory:"``), creating tables if needed.

    The layout version lives in ``PRAGMA user_version``.
    """
    conn = _open(db_path)
    conn.row_factory = sqlite3.Row

    (version,) = conn.execute("PRAGMA user_version").fetchone()
    if version < SCHEMA_VERSION:
        with conn:
            conn.executescript(_DOCUMENTS_DDL)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    return conn
