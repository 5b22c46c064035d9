"""Byte-range arithmetic for reading a file back from its chunks."""

from dataclasses import dataclass
from typing import Iterable, Optional

from common.logging_config import get_logger
from gridstore.exceptions import (
    ExcessiveRangeRequestedError,
    InternalInconsistencyError,
    NegativeByteRangeError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChunkWindow:
    """
    The chunks needed to serve one byte range.

    Chunks with ``skip_chunks <= n < end_chunk`` are fetched; ``remainder`` is
    the offset of the first requested byte inside the first fetched chunk.
    """
    start: int
    last_byte: int
    chunk_size: int
    remainder: int
    skip_chunks: int
    end_chunk: int

    @property
    def bytes_requested(self) -> int:
        return self.last_byte - self.start

    @property
    def chunk_count(self) -> int:
        return max(self.end_chunk - self.skip_chunks, 0)


def compute_chunk_window(
    start: int,
    end: Optional[int],
    length: int,
    chunk_size: int,
) -> ChunkWindow:
    """
    Validate a requested byte range and work out which chunks cover it.

    Args:
        start: First byte to return
        end: Byte to stop before, or None to read to the end of the file
        length: Total file length in bytes
        chunk_size: Bytes per chunk

    Returns:
        ChunkWindow describing the chunks to fetch

    Raises:
        NegativeByteRangeError: If start is negative or not before end
        ExcessiveRangeRequestedError: If the range runs past the end of the file
    """
    if start < 0:
        raise NegativeByteRangeError(start)

    if end is not None:
        if start >= end:
            raise NegativeByteRangeError(start, end)
        if end > length:
            raise ExcessiveRangeRequestedError(contains=length, requested=end)
        bytes_requested = end - start
    else:
        if start > length:
            raise ExcessiveRangeRequestedError(contains=length, requested=start)
        bytes_requested = length - start

    remainder = start % chunk_size
    skip_chunks = (start - remainder) // chunk_size
    last_byte = start + bytes_requested
    end_chunk = -(-last_byte // chunk_size)

    return ChunkWindow(
        start=start,
        last_byte=last_byte,
        chunk_size=chunk_size,
        remainder=remainder,
        skip_chunks=skip_chunks,
        end_chunk=end_chunk,
    )


def slice_chunk(window: ChunkWindow, n: int, data: bytes) -> bytes:
    """
    Return the part of chunk ``n`` that falls inside the window.

    Raises:
        InternalInconsistencyError: If ``n`` is outside the window
        ExcessiveRangeRequestedError: If the final chunk holds too few bytes
    """
    if not window.skip_chunks <= n < window.end_chunk:
        raise InternalInconsistencyError(
            f"Chunk {n} outside window [{window.skip_chunks}, {window.end_chunk})"
        )

    chunk_offset = n * window.chunk_size
    end_index = window.last_byte - chunk_offset

    if n == window.skip_chunks:
        upper = min(window.chunk_size, len(data))
        if n == window.end_chunk - 1:
            upper = min(upper, end_index)
        return data[window.remainder:upper]

    if n == window.end_chunk - 1:
        if end_index < 0 or len(data) < end_index:
            raise ExcessiveRangeRequestedError(
                contains=chunk_offset + len(data),
                requested=window.last_byte,
            )
        return data[:end_index]

    return data


def assemble_range(window: ChunkWindow, chunks: Iterable) -> bytes:
    """
    Concatenate the windowed slices of ``chunks`` (ascending ``n``).

    Raises:
        ExcessiveRangeRequestedError: If the chunks do not cover the whole range
    """
    parts = [slice_chunk(window, chunk.n, chunk.data) for chunk in chunks]
    result = b"".join(parts)

    if len(result) != window.bytes_requested:
        logger.warning(
            f"Chunks returned {len(result)} of {window.bytes_requested} requested bytes"
        )
        raise ExcessiveRangeRequestedError(
            contains=window.start + len(result),
            requested=window.last_byte,
        )

    return result
