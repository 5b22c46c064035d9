"""Immutable records for stored files and their chunks."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional, Tuple

from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from common.logging_config import get_logger
from gridstore.documents import ChunkDocument, FilesDocument
from gridstore.reader import assemble_range, compute_chunk_window
from gridstore.store.base import StoreError

if TYPE_CHECKING:
    from gridstore.repositories.chunk_repository import ChunkRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class Chunk:
    id: ObjectId
    files_id: ObjectId
    n: int
    data: bytes = field(repr=False)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Optional["Chunk"]:
        """
        Build a Chunk from a stored chunks document.

        Returns:
            The chunk, or None if ``_id``, ``files_id`` or ``data`` cannot be decoded
        """
        try:
            decoded = ChunkDocument.model_validate(document)
        except ValidationError as e:
            logger.debug(f"Skipping undecodable chunk document: {e.error_count()} errors")
            return None
        return cls(id=decoded.id, files_id=decoded.files_id, n=decoded.n, data=decoded.data)


@dataclass(frozen=True)
class FileRecord:
    """
    Metadata for one stored file.

    A record only exists once every chunk has been written, so reads through
    it see a complete chunk set unless the file was removed concurrently.
    """
    id: ObjectId
    length: int
    chunk_size: int
    upload_date: datetime
    md5: str
    chunk_repo: "ChunkRepository" = field(repr=False, compare=False)
    filename: Optional[str] = None
    content_type: Optional[str] = None
    aliases: Optional[Tuple[str, ...]] = None
    metadata: Any = None

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        chunk_repo: "ChunkRepository",
    ) -> Optional["FileRecord"]:
        """
        Build a FileRecord from a stored files document.

        Args:
            document: Raw document from the files collection
            chunk_repo: Repository used to fetch this file's chunks

        Returns:
            The record, or None if a required field cannot be decoded
        """
        try:
            decoded = FilesDocument.model_validate(document)
        except ValidationError as e:
            logger.debug(f"Skipping undecodable files document: {e.error_count()} errors")
            return None

        return cls(
            id=decoded.id,
            length=decoded.length,
            chunk_size=decoded.chunk_size,
            upload_date=decoded.upload_date,
            md5=decoded.md5,
            chunk_repo=chunk_repo,
            filename=decoded.filename,
            content_type=decoded.content_type,
            aliases=tuple(decoded.aliases) if decoded.aliases is not None else None,
            metadata=decoded.metadata,
        )

    def read(self, start: int = 0, end: Optional[int] = None) -> bytes:
        """
        Read the bytes in ``[start, end)``, fetching only the chunks that cover them.

        Args:
            start: First byte to return
            end: Byte to stop before; None reads to the end of the file

        Returns:
            Exactly ``end - start`` bytes (``length - start`` when end is None)

        Raises:
            NegativeByteRangeError: If start is negative or not before end
            ExcessiveRangeRequestedError: If the range exceeds the file or its chunks
            InternalInconsistencyError: If the store returns a chunk outside the range
        """
        window = compute_chunk_window(start, end, self.length, self.chunk_size)
        if window.chunk_count == 0:
            return b""

        chunks = self.chunk_repo.find_chunks(
            self.id,
            skip=window.skip_chunks,
            limit=window.chunk_count,
        )
        return assemble_range(window, chunks)

    def chunked(self) -> Iterator[Chunk]:
        """All chunks of this file, ascending ``n``; store errors propagate."""
        return self.chunk_repo.find_chunks(self.id)

    def __iter__(self) -> Iterator[Chunk]:
        chunks = self.chunked()
        try:
            first = next(chunks)
        except StopIteration:
            return
        except (StoreError, PyMongoError) as e:
            logger.warning(f"Could not fetch chunks for file {self.id}: {e}")
            return
        yield first
        yield from chunks
