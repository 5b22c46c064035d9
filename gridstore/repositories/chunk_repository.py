"""Chunk repository for the chunks collection."""

from typing import Iterator

from bson import Binary, ObjectId

from common.constants import ASCENDING, CHUNKS_INDEX_NAME
from common.logging_config import get_logger
from gridstore.models import Chunk
from gridstore.store.base import Collection

logger = get_logger(__name__)


class ChunkRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_index(self) -> None:
        self.collection.create_index(
            CHUNKS_INDEX_NAME,
            [("files_id", ASCENDING), ("n", ASCENDING)],
            background=True,
            unique=True,
        )

    def insert_chunk(self, files_id: ObjectId, n: int, data: bytes) -> ObjectId:
        logger.debug("Writing chunk %d [files_id=%s]: %s", n, files_id, data)
        return self.collection.insert({
            "files_id": files_id,
            "n": n,
            "data": Binary(bytes(data), 0),
        })

    def find_chunks(self, files_id: ObjectId, skip: int = 0, limit: int = 0) -> Iterator[Chunk]:
        """
        Yield the decodable chunks of a file in ascending ``n`` order.

        Args:
            files_id: Owning file id
            skip: Number of leading chunks to skip
            limit: Maximum number of chunks to return (0 for all)

        Yields:
            Chunk instances; undecodable documents are skipped
        """
        cursor = self.collection.find({"files_id": files_id}).sort([("n", ASCENDING)])
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)

        for document in cursor:
            chunk = Chunk.from_document(document)
            if chunk is not None:
                yield chunk

    def delete_chunks(self, files_id: ObjectId) -> int:
        logger.debug(f"Deleting chunks [files_id={files_id}]")
        deleted = self.collection.remove({"files_id": files_id})
        logger.info(f"Deleted {deleted} chunks [files_id={files_id}]")
        return deleted
