"""Clipboard history record.

A record is an immutable snapshot of one clipboard change. Its payload is a
closed variant tagged by ``kind``:

- ``text``: the copied string, held inline.
- ``image``: the path of a staged PNG file; the bitmap itself is never held
  in the record.
- ``file_reference``: a pointer to a file owned by someone else, with the file
  name and extension derived from its path.

Pin state and tag are the only mutable attributes. They are changed with
``with_pinned`` / ``with_tag``, which return updated copies.
"""

import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import PurePath
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ulid import ULID

RECORD_FORMAT_VERSION = 1
PREVIEW_LENGTH = 100


class ClipboardKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE_REFERENCE = "file_reference"


_clock_lock = threading.Lock()
_last_timestamp: Optional[datetime] = None


def next_timestamp() -> datetime:
    """Return the current UTC time, strictly later than any previous call."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def new_record_id(created_at: Optional[datetime] = None) -> str:
    return f"i_{ULID.from_datetime(created_at or datetime.now(timezone.utc))}"


class TextPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class ImagePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    image_path: str


class FileReferencePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["file_reference"] = "file_reference"
    path: Optional[str] = None
    file_name: str = ""
    file_extension: str = ""

    @classmethod
    def from_path(cls, path: str) -> "FileReferencePayload":
        pure = PurePath(path)
        return cls(path=path, file_name=pure.name, file_extension=pure.suffix.lstrip("."))


Payload = Annotated[
    Union[TextPayload, ImagePayload, FileReferencePayload],
    Field(discriminator="kind"),
]


class ClipboardRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique record id")
    created_at: datetime = Field(..., description="Capture time, the only ordering key")
    payload: Payload
    pinned: bool = Field(False, description="Whether the record lives in the pinned set")
    tag: Optional[str] = Field(None, description="User-assigned search label")
    version: int = Field(RECORD_FORMAT_VERSION, description="Persisted format version")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # files without an offset were written in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    # ---------------------------------------------------------------------
    # Constructors
    # ---------------------------------------------------------------------
    @classmethod
    def _create(cls, payload: Payload) -> "ClipboardRecord":
        created_at = next_timestamp()
        return cls(id=new_record_id(created_at), created_at=created_at, payload=payload)

    @classmethod
    def text(cls, text: str) -> "ClipboardRecord":
        return cls._create(TextPayload(text=text))

    @classmethod
    def image(cls, image_path: str) -> "ClipboardRecord":
        return cls._create(ImagePayload(image_path=image_path))

    @classmethod
    def file_reference(cls, path: str) -> "ClipboardRecord":
        return cls._create(FileReferencePayload.from_path(path))

    # ---------------------------------------------------------------------
    # Derived values
    # ---------------------------------------------------------------------
    @property
    def kind(self) -> ClipboardKind:
        return ClipboardKind(self.payload.kind)

    @property
    def preview_text(self) -> str:
        if isinstance(self.payload, TextPayload):
            return self.payload.text[:PREVIEW_LENGTH]
        return ""

    @property
    def formatted_timestamp(self) -> str:
        """Short local date and time, e.g. ``10/18/26, 02:30 PM``."""
        return self.created_at.astimezone().strftime("%m/%d/%y, %I:%M %p")

    # ---------------------------------------------------------------------
    # Updates
    # ---------------------------------------------------------------------
    def with_pinned(self, pinned: bool) -> "ClipboardRecord":
        return self.model_copy(update={"pinned": pinned})

    def with_tag(self, tag: Optional[str]) -> "ClipboardRecord":
        if tag is not None:
            tag = tag.strip() or None
        return self.model_copy(update={"tag": tag})


    def __repr__(self) -> str:
        return f"<ClipboardRecord(id={self.id}, kind='{self.kind.value}', pinned={self.pinned})>"


__all__ = [
    "ClipboardKind",
    "ClipboardRecord",
    "FileReferencePayload",
    "ImagePayload",
    "TextPayload",
    "new_record_id",
    "next_timestamp",
]
