"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from datetime import timezone
from pathlib import Path
from typing import Any, Generator, Mapping, Optional, Tuple

import bson
from bson import ObjectId
from bson.codec_options import CodecOptions

from gridstore.config import DATABASE_PATH

CODEC_OPTIONS = CodecOptions(tz_aware=True, tzinfo=timezone.utc)

# Document fields mirrored into their own indexed columns
KEY_COLUMNS = ("files_id", "n")


def files_id_column(value: Any) -> Optional[bytes]:
    """Column value for ``files_id``; ObjectId bytes sort like the ObjectId."""
    return value.binary if isinstance(value, ObjectId) else None


def n_column(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def extract_key_columns(document: Mapping[str, Any]) -> Tuple[Optional[bytes], Optional[int]]:
    """
    Work out the key column values stored alongside a document.

    Args:
        document: Document being written

    Returns:
        (files_id, n) column values, None where the field is absent or not mappable
    """
    return files_id_column(document.get("files_id")), n_column(document.get("n"))


def _migrate_add_key_columns(cursor: sqlite3.Cursor) -> None:
    """
    Add the files_id / n key columns to databases created without them.
    """
    cursor.execute("PRAGMA table_info(documents)")
    columns = {row[1] for row in cursor.fetchall()}

    if columns and "files_id" not in columns:
        cursor.execute("ALTER TABLE documents ADD COLUMN files_id BLOB")
        cursor.execute("ALTER TABLE documents ADD COLUMN n INTEGER")

        cursor.execute("SELECT seq, body FROM documents")
        for row in cursor.fetchall():
            files_id, n = extract_key_columns(bson.decode(row["body"], codec_options=CODEC_OPTIONS))
            cursor.execute(
                "UPDATE documents SET files_id = ?, n = ? WHERE seq = ?",
                (files_id, n, row["seq"])
            )


def init_database(db_path: Optional[str] = None) -> None:
    """
    Initialize database and create tables if they don't exist.

    Args:
        db_path: Database file path. Defaults to DATABASE_PATH
    """
    path = Path(db_path or DATABASE_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(str(path)) as conn:
        cursor = conn.cursor()

        _migrate_add_key_columns(cursor)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                doc_key BLOB NOT NULL,
                files_id BLOB,
                n INTEGER,
                body BLOB NOT NULL,
                UNIQUE(collection, doc_key)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS indexes (
                collection TEXT NOT NULL,
                name TEXT NOT NULL,
                keys TEXT NOT NULL,
                is_unique INTEGER NOT NULL DEFAULT 0,
                background INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY(collection, name)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, seq)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_files_id_n ON documents(collection, files_id, n)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_n ON documents(collection, n)
        """)

        conn.commit()


@contextmanager
def get_db_connection(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(db_path or DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
