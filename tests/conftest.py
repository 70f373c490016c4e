import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Make src importable
REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"
sys.path.insert(0, str(SRC))

from cliptrail.clipboard import MemoryClipboard  # noqa: E402
from cliptrail.database import DiskStore  # noqa: E402
from cliptrail.models import ClipboardRecord, TextPayload  # noqa: E402
from cliptrail.models.clipboard_record import new_record_id  # noqa: E402
from cliptrail.services import ClipboardMonitor, HistoryCache, InternalWriteGuard, ItemClassifier  # noqa: E402
from cliptrail.utils import FileManager  # noqa: E402

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(payload, created_at=None, **fields) -> ClipboardRecord:
    created_at = created_at or BASE_TIME
    return ClipboardRecord(id=new_record_id(created_at), created_at=created_at, payload=payload, **fields)


def make_text(text: str, seconds: int = 0, **fields) -> ClipboardRecord:
    """Text record ``seconds`` after BASE_TIME."""
    return make_record(TextPayload(text=text), BASE_TIME + timedelta(seconds=seconds), **fields)


class FakeClock:

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "history"


@pytest.fixture
def file_manager(storage_dir):
    return FileManager(storage_dir / "images")


@pytest.fixture
def store(storage_dir, file_manager):
    return DiskStore(storage_dir, file_manager)


@pytest.fixture
def clipboard():
    return MemoryClipboard()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def write_guard(clock):
    return InternalWriteGuard(window=0.5, clock=clock)


@pytest.fixture
def cache(store, clipboard, write_guard):
    history = HistoryCache(store, clipboard, write_guard=write_guard, max_items=50, batch_size=20)
    history.load_initial()
    yield history
    history.shutdown()


@pytest.fixture
def classifier(file_manager):
    return ItemClassifier(file_manager)


@pytest.fixture
def monitor(clipboard, classifier, cache):
    watcher = ClipboardMonitor(clipboard, classifier, cache)
    watcher.prime()
    return watcher
