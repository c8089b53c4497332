"""Database and transfer models for hashgallery."""
import os
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

IMAGE_URL_PREFIX = "/image"
THUMB_URL_PREFIX = "/thumb"


class ImageRecord(SQLModel, table=True):
    """Metadata for one stored original and its thumbnail."""
    __tablename__ = "images"

    id: Optional[int] = Field(default=None, primary_key=True)
    filename: str
    thumbnail_filename: str
    width: int = 0
    height: int = 0
    sha256sum: str = Field(index=True, unique=True, max_length=64)
    upload_date: datetime = Field(default_factory=datetime.utcnow, index=True)


class ImageInfo(BaseModel):
    """Read model for the gallery page and the JSON listing."""
    id: int
    filename: str
    thumbnail_filename: str
    width: int
    height: int
    sha256sum: str
    upload_date: datetime
    thumbnail_path: str
    image_path: str

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImageInfo":
        return cls(
            id=record.id,
            filename=record.filename,
            thumbnail_filename=record.thumbnail_filename,
            width=record.width,
            height=record.height,
            sha256sum=record.sha256sum,
            upload_date=record.upload_date,
            thumbnail_path=f"{THUMB_URL_PREFIX}/{record.thumbnail_filename}",
            image_path=f"{IMAGE_URL_PREFIX}/{record.filename}",
        )


@dataclass
class UploadCandidate:
    """One uploaded file as read from a multipart request."""
    stream: BinaryIO
    filename: str
    size: int

    @classmethod
    def from_stream(cls, stream: BinaryIO, filename: Optional[str]) -> "UploadCandidate":
        """Wrap ``stream``, measuring its length without consuming it."""
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        return cls(stream=stream, filename=filename or "", size=size)
