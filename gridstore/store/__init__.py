"""Document store contract and bundled backends."""

from gridstore.store.base import (
    Collection,
    Cursor,
    CursorStateError,
    Database,
    DuplicateKeyError,
    StoreError,
)
from gridstore.store.memory import MemoryCollection, MemoryDatabase
from gridstore.store.sqlite import SQLiteCollection, SQLiteDatabase

__all__ = [
    "Collection",
    "Cursor",
    "CursorStateError",
    "Database",
    "DuplicateKeyError",
    "StoreError",
    "MemoryCollection",
    "MemoryDatabase",
    "SQLiteCollection",
    "SQLiteDatabase",
]
