from cliptrail.models.clipboard_record import (
    ClipboardKind,
    ClipboardRecord,
    FileReferencePayload,
    ImagePayload,
    TextPayload,
)

__all__ = [
    'ClipboardKind',
    'ClipboardRecord',
    'FileReferencePayload',
    'ImagePayload',
    'TextPayload',
]
