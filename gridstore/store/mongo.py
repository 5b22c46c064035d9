"""Adapter exposing a pymongo database through the document store contract."""

from typing import Any, Iterator, Mapping, Optional

from pymongo.collection import Collection as PyMongoCollection
from pymongo.database import Database as PyMongoDatabase

from common.logging_config import get_logger
from gridstore.store.base import Collection, Cursor, Database, Document, Filter, IndexKeys

logger = get_logger(__name__)


class MongoCollection(Collection):
    """Thin wrapper; driver errors propagate unchanged."""

    def __init__(self, collection: PyMongoCollection):
        super().__init__(collection.name)
        self.collection = collection

    def insert(self, document: Mapping[str, Any]) -> Any:
        return self.collection.insert_one(dict(document)).inserted_id

    def remove(self, filter: Filter) -> int:
        return self.collection.delete_many(dict(filter or {})).deleted_count

    def _fetch(
        self,
        filter: Filter,
        sort: Optional[IndexKeys],
        skip: int,
        limit: int,
    ) -> Iterator[Document]:
        cursor = self.collection.find(dict(filter or {}))
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return iter(cursor)

    def find(self, filter: Filter = None) -> Cursor:
        return Cursor(self._fetch, filter)

    def create_index(
        self,
        name: str,
        keys: IndexKeys,
        background: bool = False,
        unique: bool = False,
    ) -> None:
        self.collection.create_index(list(keys), name=name, background=background, unique=unique)
        logger.debug(f"Ensured index {name} on {self.name}")

    def drop(self) -> None:
        self.collection.drop()


class MongoDatabase(Database):
    def __init__(self, database: PyMongoDatabase):
        self.database = database

    def __getitem__(self, name: str) -> MongoCollection:
        return MongoCollection(self.database[name])
