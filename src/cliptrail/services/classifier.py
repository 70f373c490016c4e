import logging
from typing import Optional
from urllib.parse import unquote, urlparse

from cliptrail.clipboard.base import ClipboardContent
from cliptrail.exceptions import UnrecognizedContent
from cliptrail.models import ClipboardRecord
from cliptrail.utils.file_manager import FileManager

logger = logging.getLogger(__name__)


def _url_to_path(url: str) -> Optional[str]:
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return unquote(parsed.path) or None
    return url


class ItemClassifier:
    """Turns one clipboard read into one typed record.

    When several representations are offered at once the precedence is plain
    text, then image data, then file URLs.
    """

    def __init__(self, file_manager: FileManager):
        self.file_manager = file_manager

    def classify(self, content: ClipboardContent) -> ClipboardRecord:
        if content.is_empty:
            raise UnrecognizedContent("Clipboard is empty")

        if content.text:
            return ClipboardRecord.text(content.text)

        if content.image is not None:
            staged = self.file_manager.stage_image(content.image)
            if staged is not None:
                return ClipboardRecord.image(str(staged))
            logger.debug("Ignoring clipboard image that could not be staged")

        if content.file_urls:
            path = _url_to_path(content.file_urls[0])
            if path:
                return ClipboardRecord.file_reference(path)

        raise UnrecognizedContent("Clipboard holds no text, image or file reference")
