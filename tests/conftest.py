"""Shared pytest fixtures for all tests."""

import pytest

from gridstore.bucket import Bucket
from gridstore.store.memory import MemoryDatabase
from gridstore.store.sqlite import SQLiteDatabase


@pytest.fixture
def memory_db():
    """
    Create an empty in-memory document store.

    Returns:
        MemoryDatabase instance
    """
    return MemoryDatabase()


@pytest.fixture
def sqlite_db(tmp_path):
    """
    Create a SQLite document store in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        SQLiteDatabase instance
    """
    return SQLiteDatabase(str(tmp_path / "gridstore.db"))


@pytest.fixture
def bucket(memory_db):
    """Bucket named "fs" over the in-memory store."""
    return Bucket(memory_db)


@pytest.fixture
def payload():
    """
    Deterministic non-repeating payload.

    Returns:
        Callable producing ``size`` bytes
    """
    def make(size: int) -> bytes:
        return bytes((i * 31 + i // 251) % 256 for i in range(size))

    return make
