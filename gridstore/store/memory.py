"""In-process document store backend."""

import copy
from typing import Any, Dict, Iterator, List, Mapping, Optional

from bson import ObjectId

from common.logging_config import get_logger
from gridstore.store.base import (
    Collection,
    Cursor,
    Database,
    Document,
    DuplicateKeyError,
    Filter,
    IndexKeys,
    apply_window,
    matches,
    sort_documents,
)

logger = get_logger(__name__)


class MemoryCollection(Collection):
    """
    Collection kept in a Python list.

    Documents are deep-copied on the way in and out, so callers never share
    state with the stored copy.
    """

    def __init__(self, name: str):
        super().__init__(name)
        self._documents: List[Document] = []
        self.indexes: Dict[str, Dict[str, Any]] = {}

    def _unique_key_sets(self) -> List[List[str]]:
        key_sets = [["_id"]]
        for spec in self.indexes.values():
            if spec["unique"]:
                key_sets.append([field for field, _ in spec["keys"]])
        return key_sets

    def _check_unique(self, document: Document) -> None:
        for fields in self._unique_key_sets():
            candidate = tuple(document.get(field) for field in fields)
            for existing in self._documents:
                if tuple(existing.get(field) for field in fields) == candidate:
                    raise DuplicateKeyError(
                        f"Duplicate key in {self.name} on {fields}: {candidate}"
                    )

    def insert(self, document: Mapping[str, Any]) -> Any:
        stored = copy.deepcopy(dict(document))
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self._documents.append(stored)
        return stored["_id"]

    def remove(self, filter: Filter) -> int:
        before = len(self._documents)
        self._documents = [doc for doc in self._documents if not matches(doc, filter)]
        deleted = before - len(self._documents)
        logger.debug(f"Removed {deleted} documents from {self.name}")
        return deleted

    def _fetch(
        self,
        filter: Filter,
        sort: Optional[IndexKeys],
        skip: int,
        limit: int,
    ) -> Iterator[Document]:
        selected = [doc for doc in self._documents if matches(doc, filter)]
        if sort:
            selected = sort_documents(selected, sort)
        for doc in apply_window(selected, skip, limit):
            yield copy.deepcopy(doc)

    def find(self, filter: Filter = None) -> Cursor:
        return Cursor(self._fetch, filter)

    def create_index(
        self,
        name: str,
        keys: IndexKeys,
        background: bool = False,
        unique: bool = False,
    ) -> None:
        if name in self.indexes:
            return
        self.indexes[name] = {
            "keys": list(keys),
            "background": background,
            "unique": unique,
        }
        logger.debug(f"Created index {name} on {self.name}: {list(keys)}")

    def drop(self) -> None:
        self._documents = []
        self.indexes = {}

    def __len__(self) -> int:
        return len(self._documents)


class MemoryDatabase(Database):
    """Database holding MemoryCollection instances, created on first access."""

    def __init__(self):
        self.collections: Dict[str, MemoryCollection] = {}

    def __getitem__(self, name: str) -> MemoryCollection:
        if name not in self.collections:
            self.collections[name] = MemoryCollection(name)
        return self.collections[name]
