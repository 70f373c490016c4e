from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class ClipboardContent:
    """Every representation the clipboard offered in one read.

    ``image`` is either encoded image bytes or a Pillow image; ``file_urls``
    holds paths or ``file://`` URLs in the order the platform listed them.
    """

    text: Optional[str] = None
    image: Optional[Any] = None
    file_urls: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.text and self.image is None and not self.file_urls


class ClipboardProvider(ABC):
    """Port onto a platform clipboard that exposes a change counter."""

    @abstractmethod
    def change_count(self) -> int:
        """Monotonically increasing counter, bumped on every content change."""

    @abstractmethod
    def read_content(self) -> ClipboardContent:
        pass

    @abstractmethod
    def write_content(self, content: ClipboardContent) -> bool:
        """Replace the clipboard content. Returns ``False`` on failure."""
