"""SQLite-backed document store; documents are kept as BSON blobs.

``files_id`` and ``n`` are mirrored into indexed columns, so equality
filters, sorts and skip/limit on those fields run in SQL and only the rows
actually returned are decoded.
"""

import json
import sqlite3
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import bson
from bson import ObjectId
from bson.errors import InvalidDocument

from common.logging_config import get_logger
from gridstore.config import DATABASE_PATH
from gridstore.database import (
    CODEC_OPTIONS,
    KEY_COLUMNS,
    extract_key_columns,
    files_id_column,
    get_db_connection,
    init_database,
    n_column,
)
from gridstore.store.base import (
    Collection,
    Cursor,
    Database,
    Document,
    DuplicateKeyError,
    Filter,
    IndexKeys,
    StoreError,
    apply_window,
    matches,
    sort_documents,
)

logger = get_logger(__name__)


def _encode_key(document_id: Any) -> bytes:
    return bson.encode({"_id": document_id})


def split_filter(filter: Filter) -> Tuple[List[str], List[Any], Dict[str, Any]]:
    """
    Split an equality filter into SQL conditions and a residual filter.

    Args:
        filter: Field/value pairs, or None

    Returns:
        (SQL conditions, their parameters, fields that must be matched in Python)
    """
    clauses: List[str] = []
    params: List[Any] = []
    residual: Dict[str, Any] = {}

    for field, value in (filter or {}).items():
        if field == "_id":
            try:
                params.append(_encode_key(value))
            except InvalidDocument:
                residual[field] = value
                continue
            clauses.append("doc_key = ?")
        elif field == "files_id" and files_id_column(value) is not None:
            clauses.append("files_id = ?")
            params.append(files_id_column(value))
        elif field == "n" and n_column(value) is not None:
            clauses.append("n = ?")
            params.append(value)
        else:
            residual[field] = value

    return clauses, params, residual


def order_by_clause(sort: Optional[IndexKeys]) -> Optional[str]:
    """ORDER BY expression for ``sort``, or None if a key has no column."""
    if not sort:
        return "seq"
    parts = []
    for field, direction in sort:
        if field not in KEY_COLUMNS:
            return None
        parts.append(f"{field} {'DESC' if direction < 0 else 'ASC'}")
    parts.append("seq")
    return ", ".join(parts)


class SQLiteCollection(Collection):
    def __init__(self, name: str, db_path: str):
        super().__init__(name)
        self.db_path = db_path

    def _select(
        self,
        conn: sqlite3.Connection,
        clauses: List[str],
        params: List[Any],
        order_by: str = "seq",
        skip: int = 0,
        limit: int = 0,
    ) -> List[sqlite3.Row]:
        query = "SELECT seq, body FROM documents WHERE " + " AND ".join(["collection = ?"] + clauses)
        query += f" ORDER BY {order_by}"
        query_params = [self.name] + params
        if skip or limit:
            query += " LIMIT ? OFFSET ?"
            query_params += [limit or -1, skip]

        cursor = conn.cursor()
        cursor.execute(query, query_params)
        return cursor.fetchall()

    def _decode(self, row: sqlite3.Row) -> Document:
        return bson.decode(row["body"], codec_options=CODEC_OPTIONS)

    def _unique_key_sets(self, conn: sqlite3.Connection) -> List[List[str]]:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT keys FROM indexes WHERE collection = ? AND is_unique = 1",
            (self.name,)
        )
        return [[field for field, _ in json.loads(row["keys"])] for row in cursor.fetchall()]

    def _check_unique(self, conn: sqlite3.Connection, document: Document) -> None:
        for fields in self._unique_key_sets(conn):
            present = {field: document[field] for field in fields if field in document}
            clauses, params, residual = split_filter(present)
            candidate = tuple(document.get(field) for field in fields)

            for row in self._select(conn, clauses, params):
                # every key column matched in SQL, nothing left to compare
                if not residual and len(present) == len(fields):
                    duplicate = True
                else:
                    other = self._decode(row)
                    duplicate = tuple(other.get(field) for field in fields) == candidate
                if duplicate:
                    raise DuplicateKeyError(
                        f"Duplicate key in {self.name} on {fields}: {candidate}"
                    )

    def insert(self, document: Mapping[str, Any]) -> Any:
        stored = dict(document)
        stored.setdefault("_id", ObjectId())
        files_id, n = extract_key_columns(stored)

        with get_db_connection(self.db_path) as conn:
            try:
                self._check_unique(conn, stored)
                conn.execute(
                    """
                    INSERT INTO documents (collection, doc_key, files_id, n, body)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (self.name, _encode_key(stored["_id"]), files_id, n, bson.encode(stored))
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise DuplicateKeyError(
                    f"Duplicate _id in {self.name}: {stored['_id']}"
                ) from e
            except sqlite3.Error as e:
                logger.error(f"Failed to insert into {self.name}: {e}", exc_info=True)
                raise StoreError(f"Insert into {self.name} failed: {e}") from e

        return stored["_id"]

    def remove(self, filter: Filter) -> int:
        clauses, params, residual = split_filter(filter)

        with get_db_connection(self.db_path) as conn:
            try:
                if residual:
                    doomed = [
                        row["seq"] for row in self._select(conn, clauses, params)
                        if matches(self._decode(row), residual)
                    ]
                    conn.executemany(
                        "DELETE FROM documents WHERE seq = ?",
                        [(seq,) for seq in doomed]
                    )
                    deleted = len(doomed)
                else:
                    cursor = conn.execute(
                        "DELETE FROM documents WHERE " + " AND ".join(["collection = ?"] + clauses),
                        [self.name] + params
                    )
                    deleted = cursor.rowcount
                conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to remove from {self.name}: {e}", exc_info=True)
                raise StoreError(f"Remove from {self.name} failed: {e}") from e

        logger.debug(f"Removed {deleted} documents from {self.name}")
        return deleted

    def _fetch(
        self,
        filter: Filter,
        sort: Optional[IndexKeys],
        skip: int,
        limit: int,
    ) -> Iterator[Document]:
        clauses, params, residual = split_filter(filter)
        order_by = order_by_clause(sort)
        in_sql = not residual and order_by is not None

        with get_db_connection(self.db_path) as conn:
            try:
                if in_sql:
                    rows = self._select(conn, clauses, params, order_by, skip, limit)
                else:
                    rows = self._select(conn, clauses, params)
            except sqlite3.Error as e:
                raise StoreError(f"Find in {self.name} failed: {e}") from e

        if in_sql:
            for row in rows:
                yield self._decode(row)
            return

        selected = [doc for doc in map(self._decode, rows) if matches(doc, residual)]
        if sort:
            selected = sort_documents(selected, sort)
        yield from apply_window(selected, skip, limit)

    def find(self, filter: Filter = None) -> Cursor:
        return Cursor(self._fetch, filter)

    def create_index(
        self,
        name: str,
        keys: IndexKeys,
        background: bool = False,
        unique: bool = False,
    ) -> None:
        with get_db_connection(self.db_path) as conn:
            try:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO indexes (collection, name, keys, is_unique, background)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (self.name, name, json.dumps([list(key) for key in keys]), int(unique), int(background))
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Creating index {name} on {self.name} failed: {e}") from e

        logger.debug(f"Ensured index {name} on {self.name}")

    def list_indexes(self) -> Dict[str, Dict[str, Any]]:
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name, keys, is_unique, background FROM indexes WHERE collection = ?",
                (self.name,)
            )
            return {
                row["name"]: {
                    "keys": [tuple(key) for key in json.loads(row["keys"])],
                    "unique": bool(row["is_unique"]),
                    "background": bool(row["background"]),
                }
                for row in cursor.fetchall()
            }

    def drop(self) -> None:
        with get_db_connection(self.db_path) as conn:
            try:
                conn.execute("DELETE FROM documents WHERE collection = ?", (self.name,))
                conn.execute("DELETE FROM indexes WHERE collection = ?", (self.name,))
                conn.commit()
            except sqlite3.Error as e:
                raise StoreError(f"Dropping {self.name} failed: {e}") from e

        logger.info(f"Dropped collection {self.name}")


class SQLiteDatabase(Database):
    """Database stored in a single SQLite file."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or DATABASE_PATH
        init_database(self.db_path)

    def __getitem__(self, name: str) -> SQLiteCollection:
        return SQLiteCollection(name, self.db_path)
