import io
import logging
import time
from typing import List, Optional

import win32clipboard as wc
import win32con
from PIL import Image, ImageGrab

from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider

logger = logging.getLogger(__name__)


class WindowsClipboard(ClipboardProvider):

    def change_count(self) -> int:
        return int(wc.GetClipboardSequenceNumber())

    def _open(self) -> bool:
        for _ in range(3):
            try:
                wc.OpenClipboard()
                return True
            except Exception:
                time.sleep(0.05)
        return False

    def read_content(self) -> ClipboardContent:
        image = None
        file_urls: List[str] = []
        try:
            grabbed = ImageGrab.grabclipboard()
        except Exception:
            grabbed = None
        if isinstance(grabbed, Image.Image):
            image = grabbed
        elif isinstance(grabbed, (list, tuple)):
            file_urls = [str(path) for path in grabbed if path]

        text: Optional[str] = None
        if not self._open():
            logger.debug("Clipboard busy, read skipped")
            return ClipboardContent(image=image, file_urls=tuple(file_urls))
        try:
            if wc.IsClipboardFormatAvailable(win32con.CF_UNICODETEXT):
                try:
                    text = wc.GetClipboardData(win32con.CF_UNICODETEXT)
                except Exception:
                    text = None
            if not file_urls and wc.IsClipboardFormatAvailable(win32con.CF_HDROP):
                try:
                    files = wc.GetClipboardData(win32con.CF_HDROP)
                except Exception:
                    files = ()
                if isinstance(files, str):
                    files = (files,)
                file_urls = [str(path) for path in files or ()]
        finally:
            try:
                wc.CloseClipboard()
            except Exception:
                pass

        return ClipboardContent(text=text or None, image=image, file_urls=tuple(file_urls))

    def write_content(self, content: ClipboardContent) -> bool:
        if not self._open():
            return False
        try:
            wc.EmptyClipboard()
            if content.text is not None:
                wc.SetClipboardData(win32con.CF_UNICODETEXT, content.text)
                return True
            if content.image is not None:
                image = Image.open(io.BytesIO(bytes(content.image))).convert("RGB")
                output = io.BytesIO()
                image.save(output, "BMP")
                # CF_DIB is the bitmap without its 14-byte file header
                wc.SetClipboardData(win32con.CF_DIB, output.getvalue()[14:])
                return True
            if content.file_urls:
                wc.SetClipboardData(win32con.CF_HDROP, list(content.file_urls))
                return True
            return False
        except Exception:
            logger.exception("Failed to write Windows clipboard")
            return False
        finally:
            try:
                wc.CloseClipboard()
            except Exception:
                pass
