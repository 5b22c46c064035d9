"""Splits a payload into chunks, hashes it and writes it to a bucket."""

import hashlib
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Union

from bson import ObjectId

from common.constants import DEFAULT_CHUNK_SIZE_BYTES, MAX_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from gridstore.exceptions import HashComputationError, InvalidChunkSizeError
from gridstore.repositories.chunk_repository import ChunkRepository
from gridstore.repositories.file_repository import FileRepository

logger = get_logger(__name__)

Payload = Union[bytes, bytearray, memoryview, BinaryIO]


class ContentDigest:
    """
    Calculate the MD5 content digest incrementally, in chunk write order.

    Usage:
        digest = ContentDigest()
        digest.update(chunk1)
        digest.update(chunk2)
        md5 = digest.finalize()
    """

    def __init__(self):
        try:
            self._hasher = hashlib.md5(usedforsecurity=False)
        except ValueError as e:
            raise HashComputationError("initialization") from e
        self._finalized = False

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise HashComputationError("update after finalization")
        try:
            self._hasher.update(data)
        except (TypeError, ValueError) as e:
            raise HashComputationError("update") from e

    def finalize(self) -> str:
        """
        Finalize the digest.

        Returns:
            Hexadecimal MD5 of everything passed to update
        """
        if self._finalized:
            raise HashComputationError("finalization")
        self._finalized = True
        return self._hasher.hexdigest()


def validate_chunk_size(chunk_size: int) -> None:
    if not 0 < chunk_size < MAX_CHUNK_SIZE_BYTES:
        raise InvalidChunkSizeError(chunk_size)


def _read_exactly(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, retrying short reads until EOF."""
    pieces: List[bytes] = []
    remaining = size
    while remaining > 0:
        piece = stream.read(remaining)
        if not piece:
            break
        pieces.append(piece)
        remaining -= len(piece)
    return b"".join(pieces)


def iter_windows(data: Payload, chunk_size: int) -> Iterator[bytes]:
    """
    Split a payload into consecutive ``chunk_size`` windows.

    Every window is exactly ``chunk_size`` bytes except possibly the last.
    An empty payload yields nothing.

    Args:
        data: Bytes-like object or readable binary stream
        chunk_size: Window size in bytes

    Yields:
        Window bytes, in payload order
    """
    if hasattr(data, "read"):
        while True:
            window = _read_exactly(data, chunk_size)
            if not window:
                break
            yield window
        return

    view = memoryview(data).cast("B")
    for offset in range(0, len(view), chunk_size):
        yield bytes(view[offset:offset + chunk_size])


def _upload_timestamp() -> datetime:
    # BSON datetimes carry millisecond precision
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class Uploader:
    def __init__(self, file_repo: FileRepository, chunk_repo: ChunkRepository):
        self.file_repo = file_repo
        self.chunk_repo = chunk_repo

    def upload(
        self,
        data: Payload,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Any = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        aliases: Optional[List[str]] = None,
    ) -> ObjectId:
        """
        Write the chunks and then the files document for one payload.

        On any failure after the id is assigned, every chunk already written
        for that id is deleted and the original error is re-raised.

        Returns:
            The new file id

        Raises:
            InvalidChunkSizeError: If chunk_size is not in (0, MAX_CHUNK_SIZE_BYTES)
            HashComputationError: If the content digest fails
        """
        validate_chunk_size(chunk_size)

        file_id = ObjectId()
        n = 0
        length = 0

        try:
            digest = ContentDigest()

            for window in iter_windows(data, chunk_size):
                digest.update(window)
                self.chunk_repo.insert_chunk(file_id, n, window)
                n += 1
                length += len(window)

            md5 = digest.finalize()

            document: Dict[str, Any] = {
                "_id": file_id,
                "length": length,
                "chunkSize": chunk_size,
                "uploadDate": _upload_timestamp(),
                "md5": md5,
            }
            if filename is not None:
                document["filename"] = filename
            if content_type is not None:
                document["contentType"] = content_type
            if metadata is not None:
                document["metadata"] = metadata
            if aliases is not None:
                document["aliases"] = list(aliases)

            self.file_repo.insert_file(document)
        except Exception as e:
            logger.error(f"Upload failed for file {file_id} after {n} chunks: {e}")
            self._cleanup_chunks(file_id)
            raise

        logger.info(f"Stored file {file_id} ({length} bytes, {n} chunks)")
        return file_id

    def _cleanup_chunks(self, file_id: ObjectId) -> None:
        try:
            self.chunk_repo.delete_chunks(file_id)
        except Exception:
            logger.error(f"Could not clean up chunks for file {file_id}", exc_info=True)
