"""Pydantic schemas for documents stored in the files and chunks collections."""

from datetime import datetime
from typing import Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class FilesDocument(BaseModel):
    """Document stored in ``{bucket}.files``."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True, frozen=True)

    id: ObjectId = Field(alias="_id")
    length: int = Field(ge=0)
    chunk_size: int = Field(alias="chunkSize", gt=0)
    upload_date: datetime = Field(alias="uploadDate")
    md5: StrictStr
    filename: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    aliases: Optional[List[str]] = None
    metadata: Any = None

    @field_validator("upload_date", mode="before")
    @classmethod
    def require_datetime(cls, value: Any) -> datetime:
        if not isinstance(value, datetime):
            raise ValueError("uploadDate must be a datetime")
        return value

    @field_validator("filename", "content_type", mode="before")
    @classmethod
    def drop_non_string(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("aliases", mode="before")
    @classmethod
    def keep_string_aliases(cls, value: Any) -> Optional[List[str]]:
        if not isinstance(value, (list, tuple)):
            return None
        return [alias for alias in value if isinstance(alias, str)]


class ChunkDocument(BaseModel):
    """Document stored in ``{bucket}.chunks``."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True, frozen=True)

    id: ObjectId = Field(alias="_id")
    files_id: ObjectId
    n: int = -1
    data: bytes

    @field_validator("n", mode="before")
    @classmethod
    def default_unreadable_index(cls, value: Any) -> int:
        # bool is an int subclass but never a valid chunk index
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return -1

    @field_validator("data", mode="before")
    @classmethod
    def require_binary(cls, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray)):
            raise ValueError("data must be binary")
        return bytes(value)
