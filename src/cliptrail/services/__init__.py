"""Service layer for ClipTrail."""

from cliptrail.services.classifier import ItemClassifier
from cliptrail.services.history_cache import HistoryCache
from cliptrail.services.monitor import ClipboardMonitor
from cliptrail.services.suppression import InternalWriteGuard

__all__ = ["ClipboardMonitor", "HistoryCache", "InternalWriteGuard", "ItemClassifier"]
