"""Project-wide constants (bucket naming, chunk sizes, index names)."""

DEFAULT_BUCKET_NAME: str = "fs"

FILES_COLLECTION_SUFFIX: str = "files"
CHUNKS_COLLECTION_SUFFIX: str = "chunks"

DEFAULT_CHUNK_SIZE_BYTES: int = 255_000  # 255 kB, fits a 16 MB BSON document with room to spare
MAX_CHUNK_SIZE_BYTES: int = 15_000_000

CHUNKS_INDEX_NAME: str = "chunksindex"
FILES_INDEX_NAME: str = "filename"

ASCENDING: int = 1
