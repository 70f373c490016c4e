"""Content equality between clipboard records.

Pin state and tag never take part, so editing a tag cannot make a record look
new. Images compare by staged path, not by pixels: the same picture copied
twice is staged twice and yields two records.
"""

from typing import Iterable, Optional

from cliptrail.exceptions import DuplicateContent
from cliptrail.models import ClipboardRecord, FileReferencePayload, ImagePayload, TextPayload


def same_content(a: ClipboardRecord, b: ClipboardRecord) -> bool:
    if a.kind != b.kind:
        return False

    if isinstance(a.payload, TextPayload) and isinstance(b.payload, TextPayload):
        return a.payload.text == b.payload.text
    if isinstance(a.payload, ImagePayload) and isinstance(b.payload, ImagePayload):
        return a.payload.image_path == b.payload.image_path
    if isinstance(a.payload, FileReferencePayload) and isinstance(b.payload, FileReferencePayload):
        if a.payload.path and b.payload.path:
            return a.payload.path == b.payload.path
        return (a.payload.file_name, a.payload.file_extension) == (b.payload.file_name, b.payload.file_extension)
    return False


def find_duplicate(record: ClipboardRecord, candidates: Iterable[ClipboardRecord]) -> Optional[ClipboardRecord]:
    for existing in candidates:
        if existing.id != record.id and same_content(existing, record):
            return existing
    return None


def ensure_unique(record: ClipboardRecord, candidates: Iterable[ClipboardRecord]) -> None:
    """Raise ``DuplicateContent`` if ``record`` repeats one of ``candidates``."""
    existing = find_duplicate(record, candidates)
    if existing is not None:
        raise DuplicateContent(f"{record.kind.value} content already held by {existing.id}")
