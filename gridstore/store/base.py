"""Document store contract the bucket layer is written against."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

Document = Dict[str, Any]
Filter = Optional[Mapping[str, Any]]
IndexKeys = Sequence[Tuple[str, int]]

# (filter, sort, skip, limit) -> documents
FetchFunction = Callable[[Filter, Optional[IndexKeys], int, int], Iterator[Document]]


class StoreError(Exception):
    """
    Base exception class for document store failures.
    """
    pass


class DuplicateKeyError(StoreError):
    """
    Raised when an insert violates a unique index.
    """
    pass


class CursorStateError(StoreError):
    """
    Raised when a cursor is modified after iteration has started.
    """
    pass


def matches(document: Mapping[str, Any], filter: Filter) -> bool:
    """
    Check a document against a top-level equality filter.

    Args:
        document: Stored document
        filter: Mapping of field name to expected value, or None to match all

    Returns:
        True if every filter field is present and equal
    """
    if not filter:
        return True
    for field, expected in filter.items():
        if field not in document or document[field] != expected:
            return False
    return True


def sort_documents(documents: List[Document], keys: IndexKeys) -> List[Document]:
    """Stable multi-key sort; documents missing a key sort first."""
    result = list(documents)
    for field, direction in reversed(list(keys)):
        result.sort(
            key=lambda doc: (field in doc, doc.get(field)),
            reverse=direction < 0,
        )
    return result


def apply_window(documents: List[Document], skip: int, limit: int) -> List[Document]:
    """Apply skip and limit (0 meaning unlimited)."""
    if skip:
        documents = documents[skip:]
    if limit:
        documents = documents[:limit]
    return documents


class Cursor:
    """
    Lazy, forward-only view over the result of a find.

    ``sort``, ``skip`` and ``limit`` may be chained until iteration starts;
    the underlying fetch only runs on the first ``next``.
    """

    def __init__(self, fetch: FetchFunction, filter: Filter = None):
        self._fetch = fetch
        self._filter = filter
        self._sort: Optional[IndexKeys] = None
        self._skip = 0
        self._limit = 0
        self._iterator: Optional[Iterator[Document]] = None

    def _check_not_started(self) -> None:
        if self._iterator is not None:
            raise CursorStateError("Cannot modify a cursor after iteration has started")

    def sort(self, keys: IndexKeys) -> "Cursor":
        self._check_not_started()
        self._sort = list(keys)
        return self

    def skip(self, count: int) -> "Cursor":
        self._check_not_started()
        if count < 0:
            raise ValueError(f"skip must be non-negative, got {count}")
        self._skip = count
        return self

    def limit(self, count: int) -> "Cursor":
        self._check_not_started()
        if count < 0:
            raise ValueError(f"limit must be non-negative, got {count}")
        self._limit = count
        return self

    def __iter__(self) -> "Cursor":
        return self

    def __next__(self) -> Document:
        if self._iterator is None:
            self._iterator = iter(self._fetch(self._filter, self._sort, self._skip, self._limit))
        return next(self._iterator)


class Collection(ABC):
    """A named, schema-less set of documents."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def insert(self, document: Mapping[str, Any]) -> Any:
        """
        Insert one document.

        Args:
            document: Document to store; an ``_id`` is assigned when missing

        Returns:
            The document's ``_id``

        Raises:
            DuplicateKeyError: If a unique index would be violated
        """

    @abstractmethod
    def remove(self, filter: Filter) -> int:
        """Delete all matching documents and return how many were deleted."""

    @abstractmethod
    def find(self, filter: Filter = None) -> Cursor:
        """Return a lazy cursor over the matching documents."""

    @abstractmethod
    def create_index(
        self,
        name: str,
        keys: IndexKeys,
        background: bool = False,
        unique: bool = False,
    ) -> None:
        """Create a compound index over ``keys`` if it does not already exist."""

    @abstractmethod
    def drop(self) -> None:
        """Delete the collection with all its documents and indexes."""

    def __repr__(self) -> str:
        return self.name


class Database(ABC):
    """Provides collections by name."""

    @abstractmethod
    def __getitem__(self, name: str) -> Collection:
        """Return the collection with the given name."""
