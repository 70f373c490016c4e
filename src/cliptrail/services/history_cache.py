"""In-memory clipboard history window.

``HistoryCache`` is the single owner of the records the presentation layer
sees: a bounded, newest-first window of unpinned records and the complete
pinned set. It is a view over ``DiskStore`` and never authoritative.

Every mutation of the two collections happens under one re-entrant lock.
The polling thread and the pagination worker both hand their results back
through that lock, so updates never interleave. ``load_more`` is the one
operation that reads disk outside the lock; it merges its page back in
afterwards.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Set, Tuple

from cliptrail.clipboard.base import ClipboardContent, ClipboardProvider
from cliptrail.database.disk_store import DiskStore
from cliptrail.exceptions import NotFound
from cliptrail.models import ClipboardRecord, FileReferencePayload, ImagePayload, TextPayload
from cliptrail.services.dedup import ensure_unique, find_duplicate
from cliptrail.services.query import filter_records
from cliptrail.services.suppression import InternalWriteGuard

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 50
DEFAULT_BATCH_SIZE = 20


class HistoryCache:

    def __init__(
        self,
        store: DiskStore,
        provider: Optional[ClipboardProvider] = None,
        write_guard: Optional[InternalWriteGuard] = None,
        max_items: int = DEFAULT_MAX_ITEMS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.store = store
        self.provider = provider
        self.write_guard = write_guard or InternalWriteGuard()
        self.max_items = max_items
        self.batch_size = batch_size

        self._lock = threading.RLock()
        self._unpinned: List[ClipboardRecord] = []
        self._pinned: List[ClipboardRecord] = []
        self._has_more = True
        self._is_loading = False
        self._cursor: Optional[datetime] = None
        # bumped by clear_all so an in-flight page is dropped
        self._generation = 0
        self._deleted_while_loading: Set[str] = set()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    # ---------------------------------------------------------------------
    # Read-only views
    # ---------------------------------------------------------------------
    @property
    def unpinned_items(self) -> List[ClipboardRecord]:
        with self._lock:
            return list(self._unpinned)

    @property
    def pinned_items(self) -> List[ClipboardRecord]:
        with self._lock:
            return list(self._pinned)

    @property
    def has_more(self) -> bool:
        with self._lock:
            return self._has_more

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._is_loading

    def unpinned_view(self, query: str = "") -> List[ClipboardRecord]:
        return filter_records(self.unpinned_items, query)

    def pinned_view(self, query: str = "") -> List[ClipboardRecord]:
        return filter_records(self.pinned_items, query)

    def get(self, record_id: str) -> Optional[ClipboardRecord]:
        with self._lock:
            try:
                collection, index = self._locate(record_id)
            except NotFound:
                return None
            return collection[index]

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------
    def load_initial(self) -> None:
        """Populate the pinned set and the first window page from disk."""
        pinned = self.store.list_pinned()
        recent = self.store.list_recent(self.max_items)
        self.store.check_consistency()

        with self._lock:
            self._pinned = pinned
            self._unpinned = []
            for record in recent:
                if find_duplicate(record, self._unpinned) is None:
                    self._unpinned.append(record)
            self._cursor = recent[-1].created_at if recent else None
            self._has_more = len(recent) >= self.max_items
            logger.info("Loaded %d pinned and %d recent clipboard records",
                        len(self._pinned), len(self._unpinned))

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    # ---------------------------------------------------------------------
    # Window mutations
    # ---------------------------------------------------------------------
    def capture(self, record: ClipboardRecord) -> ClipboardRecord:
        """Admit a freshly classified record.

        Raises ``DuplicateContent`` when an equal unpinned record is already
        resident; nothing is written in that case.
        """
        with self._lock:
            ensure_unique(record, self._unpinned)
            self.insert_new(record)
            self.store.save(record)
        return record

    def insert_new(self, record: ClipboardRecord) -> None:
        with self._lock:
            self._unpinned.insert(0, record)
            self._enforce_cap()

    def load_more(self) -> List[ClipboardRecord]:
        """Append the next page of older unpinned records to the window.

        Returns the records appended. A no-op while a load is in flight or once
        the end of history has been reached.
        """
        with self._lock:
            if self._closed or self._is_loading or not self._has_more:
                return []
            self._is_loading = True
            self._deleted_while_loading.clear()
            generation = self._generation
            cursor = self._cursor
            if cursor is None and self._unpinned:
                cursor = self._unpinned[-1].created_at

        try:
            if cursor is None:
                page = self.store.list_recent(self.batch_size)
            else:
                page = self.store.list_before(cursor, self.batch_size)
        except Exception:
            logger.exception("Failed to load older clipboard records")
            with self._lock:
                self._is_loading = False
            return []

        with self._lock:
            self._is_loading = False
            if generation != self._generation:
                return []

            resident = {r.id for r in self._unpinned} | {r.id for r in self._pinned}
            appended = []
            for record in page:
                if record.id in resident or record.id in self._deleted_while_loading:
                    continue
                if find_duplicate(record, self._unpinned) is not None:
                    continue
                self._unpinned.append(record)
                appended.append(record)
            if appended:
                self._unpinned.sort(key=lambda r: (r.created_at, r.id), reverse=True)

            if page:
                self._cursor = page[-1].created_at
            if len(page) < self.batch_size:
                self._has_more = False
            self._deleted_while_loading.clear()

        logger.debug("Loaded %d older clipboard records (end of history: %s)",
                     len(appended), not self._has_more)
        return appended

    def load_more_async(self) -> Optional["Future[List[ClipboardRecord]]"]:
        """Run ``load_more`` on the background pager thread."""
        with self._lock:
            if self._closed:
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cliptrail-pager")
            return self._executor.submit(self.load_more)

    def toggle_pin(self, record_id: str) -> Optional[ClipboardRecord]:
        """Move a record between the window and the pinned set.

        Returns the updated record, or ``None`` if no resident record has
        ``record_id``.
        """
        with self._lock:
            try:
                collection, index = self._locate(record_id)
            except NotFound:
                logger.debug("toggle_pin: %s is not resident", record_id)
                return None

            record = collection.pop(index)
            if collection is self._unpinned:
                updated = record.with_pinned(True)
                self._insert_sorted(self._pinned, updated)
            else:
                updated = record.with_pinned(False)
                duplicate = find_duplicate(updated, self._unpinned)
                if duplicate is not None:
                    # the later capture leaves the window but stays on disk
                    self._unpinned.remove(duplicate)
                    logger.info("Evicted %s, duplicate of unpinned %s", duplicate.id, updated.id)
                self._insert_sorted(self._unpinned, updated)
                self._enforce_cap()

            self.store.save(updated)
            return updated

    def delete(self, record_id: str) -> bool:
        with self._lock:
            try:
                collection, index = self._locate(record_id)
            except NotFound:
                logger.debug("delete: %s is not resident", record_id)
                return False
            del collection[index]
            if self._is_loading:
                self._deleted_while_loading.add(record_id)
            self.store.delete(record_id)
            return True

    def update_tag(self, record_id: str, new_tag: Optional[str]) -> Optional[ClipboardRecord]:
        with self._lock:
            try:
                collection, index = self._locate(record_id)
            except NotFound:
                logger.debug("update_tag: %s is not resident", record_id)
                return None
            updated = collection[index].with_tag(new_tag)
            collection[index] = updated
            self.store.save(updated)
            return updated

    def clear_all(self) -> None:
        with self._lock:
            self._unpinned.clear()
            self._pinned.clear()
            self._generation += 1
            self._cursor = None
            self._has_more = False
            self.store.delete_all()

    def cleanup_older_than(self, days: int) -> int:
        """Delete unpinned history older than ``days``; returns how many went."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        victims = self.store.list_older_than(cutoff)

        with self._lock:
            expired = {r.id for r in self._unpinned if r.created_at < cutoff}
            expired.update(r.id for r in victims)
            self._unpinned = [r for r in self._unpinned if r.id not in expired]
            if self._is_loading:
                self._deleted_while_loading.update(expired)
            for record_id in expired:
                self.store.delete(record_id)

        if expired:
            logger.info("Cleaned up %d clipboard records older than %d days", len(expired), days)
        return len(expired)

    # ---------------------------------------------------------------------
    # Clipboard write-back
    # ---------------------------------------------------------------------
    def copy_to_clipboard(self, record: ClipboardRecord) -> bool:
        payload = record.payload
        if isinstance(payload, TextPayload):
            content = ClipboardContent(text=payload.text)
        elif isinstance(payload, ImagePayload):
            try:
                content = ClipboardContent(image=Path(payload.image_path).read_bytes())
            except OSError as e:
                logger.error("Cannot read staged image %s: %s", payload.image_path, e)
                return False
        elif isinstance(payload, FileReferencePayload) and payload.path:
            content = ClipboardContent(file_urls=(payload.path,))
        else:
            return False

        if self.provider is None:
            logger.warning("No clipboard provider attached; cannot copy %s", record.id)
            return False

        self.write_guard.mark()
        ok = self.provider.write_content(content)
        if not ok:
            self.write_guard.clear()
            logger.warning("Clipboard provider rejected write of %s", record.id)
        return ok

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _enforce_cap(self) -> None:
        if len(self._unpinned) > self.max_items:
            # only the in-memory view shrinks; the tail stays on disk
            del self._unpinned[self.max_items:]
            self._cursor = self._unpinned[-1].created_at
            self._has_more = True

    def _locate(self, record_id: str) -> Tuple[List[ClipboardRecord], int]:
        for collection in (self._unpinned, self._pinned):
            for index, record in enumerate(collection):
                if record.id == record_id:
                    return collection, index
        raise NotFound(f"No resident clipboard record {record_id}")

    @staticmethod
    def _insert_sorted(collection: List[ClipboardRecord], record: ClipboardRecord) -> None:
        key = (record.created_at, record.id)
        for index, existing in enumerate(collection):
            if (existing.created_at, existing.id) < key:
                collection.insert(index, record)
                return
        collection.append(record)
