import threading
from typing import Any, Iterable

from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider


class MemoryClipboard(ClipboardProvider):
    """In-process clipboard, used headless and in tests.

    ``copy_*`` helpers simulate an external application copying something;
    ``write_content`` is the path the history engine itself uses.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._content = ClipboardContent()
        self.writes = 0

    def change_count(self) -> int:
        with self._lock:
            return self._count

    def read_content(self) -> ClipboardContent:
        with self._lock:
            return self._content

    def write_content(self, content: ClipboardContent) -> bool:
        self._replace(content)
        self.writes += 1
        return True

    def _replace(self, content: ClipboardContent) -> None:
        with self._lock:
            self._content = content
            self._count += 1

    def copy_text(self, text: str) -> None:
        self._replace(ClipboardContent(text=text))

    def copy_image(self, image: Any) -> None:
        self._replace(ClipboardContent(image=image))

    def copy_files(self, paths: Iterable[str]) -> None:
        self._replace(ClipboardContent(file_urls=tuple(paths)))

    def copy_content(self, content: ClipboardContent) -> None:
        self._replace(content)
