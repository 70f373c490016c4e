import logging

try:
    from AppKit import (NSPasteboard, NSPasteboardTypePNG, NSPasteboardTypeString,
                        NSPasteboardTypeTIFF)
    from Foundation import NSURL, NSData
    HAS_APPKIT = True
except ImportError:
    HAS_APPKIT = False

from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider

logger = logging.getLogger(__name__)


class MacOSClipboard(ClipboardProvider):

    def __init__(self) -> None:
        if not HAS_APPKIT:
            raise RuntimeError("pyobjc (AppKit) is required for the macOS clipboard")
        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def read_content(self) -> ClipboardContent:
        pasteboard = self._pasteboard
        types = pasteboard.types() or []

        text = None
        if NSPasteboardTypeString in types:
            text = pasteboard.stringForType_(NSPasteboardTypeString)

        image = None
        for pb_type in (NSPasteboardTypePNG, NSPasteboardTypeTIFF):
            if pb_type in types:
                data = pasteboard.dataForType_(pb_type)
                if data:
                    image = bytes(data)
                    break

        file_urls = []
        urls = pasteboard.readObjectsForClasses_options_([NSURL], None) or []
        for url in urls:
            if url.isFileURL():
                file_urls.append(str(url.path()))

        return ClipboardContent(text=str(text) if text else None, image=image, file_urls=tuple(file_urls))

    def write_content(self, content: ClipboardContent) -> bool:
        pasteboard = self._pasteboard
        try:
            pasteboard.clearContents()
            if content.text is not None:
                return bool(pasteboard.setString_forType_(content.text, NSPasteboardTypeString))
            if content.image is not None:
                payload = bytes(content.image)
                ns_data = NSData.dataWithBytes_length_(payload, len(payload))
                return bool(pasteboard.setData_forType_(ns_data, NSPasteboardTypePNG))
            if content.file_urls:
                file_urls = [NSURL.fileURLWithPath_(path) for path in content.file_urls]
                return bool(pasteboard.writeObjects_(file_urls))
        except Exception:
            logger.exception("Failed to write macOS pasteboard")
            return False
        return False
