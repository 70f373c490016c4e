"""Clipboard monitor for ClipTrail.

Polls the provider's change counter on a background thread and feeds every
genuine external change through the classifier into the history cache.
"""

import logging
import threading
from typing import Callable, Optional

from cliptrail.clipboard.base import ClipboardProvider
from cliptrail.exceptions import DuplicateContent, UnrecognizedContent
from cliptrail.models import ClipboardRecord, ImagePayload
from cliptrail.services.classifier import ItemClassifier
from cliptrail.services.history_cache import HistoryCache
from cliptrail.services.suppression import InternalWriteGuard

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class ClipboardMonitor:
    """Polls the clipboard change counter and captures new content."""

    def __init__(
        self,
        provider: ClipboardProvider,
        classifier: ItemClassifier,
        cache: HistoryCache,
        write_guard: Optional[InternalWriteGuard] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_capture: Optional[Callable[[ClipboardRecord], None]] = None,
    ) -> None:
        """Initialise the monitor.

        Args:
            provider: Clipboard to watch.
            classifier: Turns a clipboard read into a record.
            cache: Receives every captured record.
            write_guard: Shared with the cache so its own writes are skipped.
            poll_interval: Seconds between two counter checks.
            on_capture: Optional callback invoked with each admitted record.
        """
        self.provider = provider
        self.classifier = classifier
        self.cache = cache
        self.write_guard = write_guard or cache.write_guard
        self.poll_interval = poll_interval
        self._on_capture = on_capture or self._default_handler
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._is_running = False
        self._last_seen_change_count: Optional[int] = None

    @property
    def last_seen_change_count(self) -> Optional[int]:
        return self._last_seen_change_count

    # ---------------------------------------------------------------------
    # Lifecycle management
    # ---------------------------------------------------------------------
    def start(self) -> None:
        """Start background polling of the clipboard.

        Whatever is on the clipboard at start-up is treated as already seen.
        """
        with self._lock:
            if self._is_running:
                logger.debug("ClipboardMonitor already running")
                return

            self.prime()
            logger.info("Starting ClipboardMonitor polling (interval=%ss)", self.poll_interval)
            self._stop_event.clear()
            self._is_running = True
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="cliptrail-monitor", daemon=True)
            self._poll_thread.start()

    def stop(self) -> None:
        """Stop the background polling thread."""
        with self._lock:
            if not self._is_running:
                return

            logger.info("Stopping ClipboardMonitor polling")
            self._is_running = False
            self._stop_event.set()

        # join thread outside the lock
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=max(1.0, self.poll_interval * 2))
            self._poll_thread = None

    def run_forever(self) -> None:
        """Run until ``stop()`` is called or Ctrl+C is pressed."""
        try:
            if not self._is_running:
                self.start()

            while not self._stop_event.wait(timeout=self.poll_interval):
                continue
        except KeyboardInterrupt:
            logger.info("ClipboardMonitor interrupted by user")
        finally:
            self.stop()

    # ---------------------------------------------------------------------
    # Polling
    # ---------------------------------------------------------------------
    def prime(self) -> None:
        self._last_seen_change_count = self.provider.change_count()

    def tick(self) -> Optional[ClipboardRecord]:
        """Check the change counter once.

        Returns the captured record, or ``None`` when nothing new was admitted.
        """
        current = self.provider.change_count()
        if self._last_seen_change_count is None:
            self._last_seen_change_count = current
            return None
        if current <= self._last_seen_change_count:
            return None

        # advance even if the change yields no record
        self._last_seen_change_count = current

        if self.write_guard.active:
            logger.debug("Skipping clipboard change %d caused by our own write", current)
            return None

        content = self.provider.read_content()
        try:
            record = self.classifier.classify(content)
        except UnrecognizedContent:
            logger.debug("Ignoring unsupported clipboard content (change %d)", current)
            return None

        try:
            self.cache.capture(record)
        except DuplicateContent as e:
            logger.debug("Ignoring duplicate clipboard content: %s", e)
            if isinstance(record.payload, ImagePayload):
                self.classifier.file_manager.remove_file(record.payload.image_path)
            return None

        logger.info("Clipboard captured: %s", record.kind.value)
        try:
            self._on_capture(record)
        except Exception:
            logger.exception("Error while calling on_capture")
        return record

    def _poll_loop(self) -> None:
        """Background polling loop."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Clipboard poll failed")
            self._stop_event.wait(self.poll_interval)

    @staticmethod
    def _default_handler(record: ClipboardRecord) -> None:
        logger.debug("Clipboard record %s @ %s | preview=%r",
                     record.id, record.created_at.isoformat(), record.preview_text[:60])

    # ---------------------------------------------------------------------
    # Context manager helpers
    # ---------------------------------------------------------------------
    def __enter__(self) -> "ClipboardMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
