"""Archive record and response schemas."""
from datetime import datetime, timezone

from pydantic import Field, field_validator

from file_archive.schemas.base import CamelModel, CamelORMModel

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_UPLOADER = "Anonymous"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ArchiveRecord(CamelORMModel):
    """Metadata for one archived file. Immutable once created."""
    id: str
    filename: str
    blob_key: str
    size: int = Field(ge=0)
    upload_date: datetime
    content_type: str = DEFAULT_CONTENT_TYPE
    description: str = ""
    category: str = DEFAULT_CATEGORY
    uploader: str = DEFAULT_UPLOADER

    @field_validator("upload_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Stores without timezone support hand back naive datetimes; they are UTC."""
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class ArchiveStats(CamelModel):
    total_archives: int = 0
    total_size: int = 0
    categories: int = 0


class UploadResponse(CamelModel):
    message: str
    filename: str
    url: str


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(CamelModel):
    error: str
