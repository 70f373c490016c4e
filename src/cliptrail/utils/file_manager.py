import io
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError
from ulid import ULID

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a sibling temp file and a rename."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class FileManager:
    """Owns the staging directory that holds bitmaps of image records."""

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.home() / ".cliptrail" / "history" / "images"
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def stage_image(self, image: Union[Image.Image, bytes]) -> Optional[Path]:
        """Normalize ``image`` to PNG and write it under a fresh unique name.

        Returns ``None`` when the data is not a decodable image or the write
        fails.
        """
        try:
            if isinstance(image, (bytes, bytearray)):
                image = Image.open(io.BytesIO(image))
                image.load()
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.debug("Clipboard image data not decodable: %s", e)
            return None

        file_path = self.base_dir / f"{ULID()}.png"
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(file_path, buffer.getvalue())
        except OSError as e:
            logger.error("Failed to stage image %s: %s", file_path, e)
            return None

        logger.debug("Staged image to %s", file_path)
        return file_path

    def remove_file(self, file_path: Union[str, Path]) -> bool:
        path = Path(file_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Failed to remove %s: %s", path, e)
            return False
        logger.debug("Removed staged file %s", path)
        return True

    def cleanup_all_files(self) -> None:
        try:
            if self.base_dir.exists():
                shutil.rmtree(self.base_dir)
                logger.info("Cleaned up all files in %s", self.base_dir)
        except OSError as e:
            logger.error("Cleanup all error: %s", e)
        self.base_dir.mkdir(parents=True, exist_ok=True)
