"""File repository for the files collection."""

from typing import Any, Mapping

from bson import ObjectId

from common.constants import ASCENDING, FILES_INDEX_NAME
from common.logging_config import get_logger
from gridstore.store.base import Collection, Cursor, Filter

logger = get_logger(__name__)


class FileRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_index(self) -> None:
        self.collection.create_index(
            FILES_INDEX_NAME,
            [("uploadDate", ASCENDING), ("filesindex", ASCENDING)],
            background=True,
        )

    def insert_file(self, document: Mapping[str, Any]) -> ObjectId:
        file_id = self.collection.insert(document)
        logger.debug(f"Wrote files document [file_id={file_id}]")
        return file_id

    def find_documents(self, filter: Filter = None) -> Cursor:
        return self.collection.find(filter)

    def delete_file(self, file_id: ObjectId) -> int:
        deleted = self.collection.remove({"_id": file_id})
        logger.info(f"Deleted {deleted} files documents [file_id={file_id}]")
        return deleted
