"""GridFS bucket: a files collection and a chunks collection under one name."""

from typing import Any, Iterator, List, Optional

from bson import ObjectId

from common.constants import (
    CHUNKS_COLLECTION_SUFFIX,
    DEFAULT_BUCKET_NAME,
    DEFAULT_CHUNK_SIZE_BYTES,
    FILES_COLLECTION_SUFFIX,
)
from common.logging_config import get_logger
from gridstore.models import FileRecord
from gridstore.repositories.chunk_repository import ChunkRepository
from gridstore.repositories.file_repository import FileRepository
from gridstore.store.base import Database, Filter
from gridstore.uploader import Payload, Uploader

logger = get_logger(__name__)


class Bucket:
    """
    Chunked file storage following the GridFS convention.

    Files are stored in ``{name}.files`` and their data in ``{name}.chunks``.
    Chunk and files writes are not transactional: a concurrent reader may see
    chunks without their files document while an upload or remove is in
    progress.
    """

    def __init__(self, database: Database, bucket_name: str = DEFAULT_BUCKET_NAME):
        """
        Open a bucket and ensure its indexes exist.

        Args:
            database: Document store holding the two collections
            bucket_name: Collection name prefix (default "fs")

        Raises:
            Whatever the store raises if an index cannot be created
        """
        self.name = bucket_name
        self.files = database[f"{bucket_name}.{FILES_COLLECTION_SUFFIX}"]
        self.chunks = database[f"{bucket_name}.{CHUNKS_COLLECTION_SUFFIX}"]

        self.file_repo = FileRepository(self.files)
        self.chunk_repo = ChunkRepository(self.chunks)
        self.uploader = Uploader(self.file_repo, self.chunk_repo)

        self.chunk_repo.ensure_index()
        self.file_repo.ensure_index()
        logger.debug(f"Opened bucket {bucket_name}")

    def drop(self) -> None:
        """Drop both collections. A failure may leave one of them dropped."""
        self.files.drop()
        self.chunks.drop()
        logger.info(f"Dropped bucket {self.name}")

    def find_one(self, file_id: ObjectId) -> Optional[FileRecord]:
        return next(self.find({"_id": file_id}), None)

    def find(self, filter: Filter = None) -> Iterator[FileRecord]:
        """
        Iterate over the files matching an equality filter.

        Args:
            filter: Field/value pairs to match, or None for every file

        Yields:
            FileRecord for each decodable files document
        """
        for document in self.file_repo.find_documents(filter):
            record = FileRecord.from_document(document, self.chunk_repo)
            if record is not None:
                yield record

    def remove(self, file_id: ObjectId) -> None:
        self.file_repo.delete_file(file_id)
        self.chunk_repo.delete_chunks(file_id)

    def store(
        self,
        data: Payload,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Any = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        aliases: Optional[List[str]] = None,
    ) -> ObjectId:
        """
        Store a payload as a new file.

        Args:
            data: Bytes-like object or readable binary stream
            filename: Optional file name
            content_type: Optional MIME type
            metadata: Optional value stored under ``metadata``
            chunk_size: Bytes per chunk, must be below 15,000,000
            aliases: Optional alternative names

        Returns:
            The new file's id
        """
        return self.uploader.upload(
            data,
            filename=filename,
            content_type=content_type,
            metadata=metadata,
            chunk_size=chunk_size,
            aliases=aliases,
        )

    def __repr__(self) -> str:
        return f"GridFSBucket<{self.files!r}, {self.chunks!r}>"
