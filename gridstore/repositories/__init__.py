"""Repository layer for the files and chunks collections."""

from gridstore.repositories.file_repository import FileRepository
from gridstore.repositories.chunk_repository import ChunkRepository

__all__ = [
    "FileRepository",
    "ChunkRepository",
]
