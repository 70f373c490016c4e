"""
cliptrail.database.disk_store
Durable, file-per-record storage for clipboard history.

Layout:
- ``<root>/<id>.json``: every record, pinned or not.
- ``<root>/Pinned/<id>.json``: a mirror of each pinned record, so the pinned set
    loads without scanning the whole history.
- ``<root>/images/``: staged bitmaps owned by image records.

Ordering is by ``created_at`` descending with the id as tie breaker; file
modification times are never used for ordering.

Failure policy: I/O and decode errors are logged and the offending record is
skipped. A corrupt file never aborts a listing, and a failed save is not
retried.

Known gap: a record and its pinned mirror are two files written one after the
other. A crash between the two writes leaves them divergent until the record
is saved again; ``check_consistency`` reports such ids.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from cliptrail.exceptions import PersistenceFailure
from cliptrail.models import ClipboardRecord, ImagePayload
from cliptrail.utils.file_manager import FileManager, atomic_write_bytes

logger = logging.getLogger(__name__)

PINNED_DIR_NAME = "Pinned"
IMAGES_DIR_NAME = "images"
RECORD_SUFFIX = ".json"


class DiskStore:

    def __init__(self, storage_dir: Path, file_manager: Optional[FileManager] = None):
        self.root = Path(storage_dir)
        self.pinned_dir = self.root / PINNED_DIR_NAME
        self.root.mkdir(parents=True, exist_ok=True)
        self.pinned_dir.mkdir(parents=True, exist_ok=True)
        self.file_manager = file_manager or FileManager(self.root / IMAGES_DIR_NAME)

    # ---------------------------------------------------------------------
    # Paths and codec
    # ---------------------------------------------------------------------
    @staticmethod
    def _is_valid_id(record_id: str) -> bool:
        return bool(record_id) and not record_id.startswith(".") and "/" not in record_id and "\\" not in record_id

    def _record_path(self, record_id: str) -> Path:
        return self.root / f"{record_id}{RECORD_SUFFIX}"

    def _mirror_path(self, record_id: str) -> Path:
        return self.pinned_dir / f"{record_id}{RECORD_SUFFIX}"

    @staticmethod
    def _encode(record: ClipboardRecord) -> bytes:
        return record.model_dump_json(indent=2).encode("utf-8")

    @staticmethod
    def _decode(path: Path) -> ClipboardRecord:
        try:
            return ClipboardRecord.model_validate_json(path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            raise PersistenceFailure(f"Cannot read clipboard record {path.name}", e) from e

    def _read_directory(self, directory: Path) -> List[ClipboardRecord]:
        try:
            files = [p for p in directory.iterdir()
                     if p.suffix == RECORD_SUFFIX and not p.name.startswith(".") and p.is_file()]
        except OSError as e:
            logger.error("Error listing clipboard records in %s: %s", directory, e)
            return []

        records = []
        for file_path in files:
            try:
                records.append(self._decode(file_path))
            except PersistenceFailure as e:
                logger.warning("Skipping clipboard record: %s", e)
        return records

    @staticmethod
    def _newest_first(records: Iterable[ClipboardRecord]) -> List[ClipboardRecord]:
        return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)

    def _history(self, include_pinned: bool) -> List[ClipboardRecord]:
        records = self._read_directory(self.root)
        if not include_pinned:
            records = [r for r in records if not r.pinned]
        return self._newest_first(records)

    # ---------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------
    def list_recent(self, limit: int, offset: int = 0, include_pinned: bool = False) -> List[ClipboardRecord]:
        if limit <= 0:
            return []
        return self._history(include_pinned)[offset:offset + limit]

    def list_before(self, timestamp: datetime, limit: int, include_pinned: bool = False) -> List[ClipboardRecord]:
        """Records strictly older than ``timestamp``, newest first."""
        if limit <= 0:
            return []
        older = [r for r in self._history(include_pinned) if r.created_at < timestamp]
        return older[:limit]

    def list_older_than(self, cutoff: datetime, include_pinned: bool = False) -> List[ClipboardRecord]:
        return [r for r in self._history(include_pinned) if r.created_at < cutoff]

    def list_pinned(self) -> List[ClipboardRecord]:
        return self._newest_first(self._read_directory(self.pinned_dir))

    def load(self, record_id: str) -> Optional[ClipboardRecord]:
        if not self._is_valid_id(record_id):
            return None
        path = self._record_path(record_id)
        if not path.exists():
            return None
        try:
            return self._decode(path)
        except PersistenceFailure as e:
            logger.warning("%s", e)
            return None

    def check_consistency(self) -> List[str]:
        """Ids whose pinned mirror disagrees with the root record."""
        divergent = []
        for mirror in self._read_directory(self.pinned_dir):
            record = self.load(mirror.id)
            if record is None or record != mirror:
                divergent.append(mirror.id)
        if divergent:
            logger.warning("Pinned mirror diverges from history for %d record(s): %s",
                           len(divergent), ", ".join(divergent))
        return divergent

    # ---------------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------------
    def save(self, record: ClipboardRecord) -> bool:
        """Upsert ``record`` and bring its pinned mirror in line with ``pinned``."""
        try:
            data = self._encode(record)
            atomic_write_bytes(self._record_path(record.id), data)
            mirror = self._mirror_path(record.id)
            if record.pinned:
                self.pinned_dir.mkdir(parents=True, exist_ok=True)
                atomic_write_bytes(mirror, data)
            elif mirror.exists():
                mirror.unlink()
        except OSError as e:
            logger.error("Error saving clipboard record %s: %s", record.id, e)
            return False
        return True

    def _remove_owned_files(self, record: ClipboardRecord) -> None:
        if isinstance(record.payload, ImagePayload):
            self.file_manager.remove_file(record.payload.image_path)

    def delete(self, record_id: str) -> bool:
        if not self._is_valid_id(record_id):
            return False

        record = self.load(record_id)
        if record is None:
            mirror_path = self._mirror_path(record_id)
            if mirror_path.exists():
                try:
                    record = self._decode(mirror_path)
                except PersistenceFailure as e:
                    logger.warning("%s", e)

        removed = False
        for path in (self._record_path(record_id), self._mirror_path(record_id)):
            try:
                path.unlink()
                removed = True
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error("Error deleting %s: %s", path, e)

        if record is not None:
            self._remove_owned_files(record)
        return removed

    def delete_all(self) -> None:
        """Erase every record and mirror, then recreate the empty pinned directory.

        Best effort: a file that cannot be removed is logged and skipped.
        """
        for record in self._read_directory(self.root) + self._read_directory(self.pinned_dir):
            self._remove_owned_files(record)

        for directory in (self.root, self.pinned_dir):
            try:
                paths = [p for p in directory.iterdir() if p.is_file() and p.suffix == RECORD_SUFFIX]
            except OSError as e:
                logger.error("Error listing %s: %s", directory, e)
                continue
            for path in paths:
                try:
                    path.unlink()
                except OSError as e:
                    logger.error("Error clearing clipboard history file %s: %s", path, e)

        self.file_manager.cleanup_all_files()
        self.pinned_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Cleared clipboard history in %s", self.root)

