"""Custom exception classes for the GridFS bucket layer."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Discriminator carried by every GridFSError."""

    INVALID_CHUNK_SIZE = "invalid_chunk_size"
    HASH_COMPUTATION_FAILURE = "hash_computation_failure"
    NEGATIVE_BYTE_RANGE = "negative_byte_range"
    EXCESSIVE_RANGE_REQUESTED = "excessive_range_requested"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"


class GridFSError(Exception):
    """
    Base exception class for all bucket-level errors.

    Callers branch on ``kind`` rather than on the message text.
    """

    kind: ErrorKind


class InvalidChunkSizeError(GridFSError):
    """
    Raised when the requested chunk size is not below the maximum.
    """

    kind = ErrorKind.INVALID_CHUNK_SIZE

    def __init__(self, chunk_size: int):
        self.chunk_size = chunk_size
        super().__init__(f"Invalid chunk size: {chunk_size}")


class HashComputationError(GridFSError):
    """
    Raised when the content digest cannot be initialized, updated or finalized.
    """

    kind = ErrorKind.HASH_COMPUTATION_FAILURE

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Could not hash file data during {stage}")


class NegativeByteRangeError(GridFSError):
    """
    Raised when a read starts before byte 0 or does not end after its start.
    """

    kind = ErrorKind.NEGATIVE_BYTE_RANGE

    def __init__(self, start: int, end: Optional[int] = None):
        self.start = start
        self.end = end
        if end is None:
            message = f"Negative data requested: start={start}"
        else:
            message = f"Negative bytes requested: start={start}, end={end}"
        super().__init__(message)


class ExcessiveRangeRequestedError(GridFSError):
    """
    Raised when a read asks for more bytes than the file or its chunks contain.
    """

    kind = ErrorKind.EXCESSIVE_RANGE_REQUESTED

    def __init__(self, contains: int, requested: int):
        self.contains = contains
        self.requested = requested
        super().__init__(f"Too much data requested: contains {contains}, requested {requested}")


class InternalInconsistencyError(GridFSError):
    """
    Raised when a fetched chunk falls outside the requested chunk window.
    """

    kind = ErrorKind.INTERNAL_INCONSISTENCY
