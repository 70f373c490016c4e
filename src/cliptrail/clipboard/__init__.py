from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider
from cliptrail.clipboard.factory import get_clipboard_provider
from cliptrail.clipboard.memory import MemoryClipboard

__all__ = [
    'ClipboardContent',
    'ClipboardProvider',
    'MemoryClipboard',
    'get_clipboard_provider',
]
