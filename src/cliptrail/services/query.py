from typing import Iterable, List

from cliptrail.models import ClipboardRecord, FileReferencePayload, ImagePayload, TextPayload


def matches(record: ClipboardRecord, query: str) -> bool:
    """Case-insensitive substring search over a record's searchable fields.

    The tag is checked first and wins outright. Otherwise text records match on
    their content, file references on file name or extension, and images only
    on their formatted timestamp.
    """
    needle = (query or "").lower()
    if not needle.strip():
        return True

    if record.tag and needle in record.tag.lower():
        return True

    payload = record.payload
    if isinstance(payload, TextPayload):
        return needle in payload.text.lower()
    if isinstance(payload, FileReferencePayload):
        return needle in payload.file_name.lower() or needle in payload.file_extension.lower()
    if isinstance(payload, ImagePayload):
        return needle in record.formatted_timestamp.lower()
    return False


def filter_records(records: Iterable[ClipboardRecord], query: str) -> List[ClipboardRecord]:
    return [record for record in records if matches(record, query)]
