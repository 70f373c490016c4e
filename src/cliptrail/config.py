"""Runtime configuration for ClipTrail.

Values come from the process environment, optionally seeded from a ``.env``
file next to the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_storage_dir() -> Path:
    return Path.home() / ".cliptrail" / "history"


def _to_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _positive(name: str, value: float) -> float:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return value


@dataclass(frozen=True)
class HistoryConfig:
    storage_dir: Path = field(default_factory=_default_storage_dir)
    poll_interval: float = 0.5
    suppress_window: float = 0.5
    max_items: int = 50
    batch_size: int = 20
    auto_cleanup: bool = True
    max_history_days: int = 30

    @property
    def images_dir(self) -> Path:
        return self.storage_dir / "images"

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "HistoryConfig":
        load_dotenv(dotenv_path=env_path)

        storage_raw = os.getenv("CLIPTRAIL_STORAGE_DIR")
        storage_dir = Path(storage_raw).expanduser() if storage_raw else _default_storage_dir()

        poll_interval = _positive(
            "CLIPTRAIL_POLL_INTERVAL", float(os.getenv("CLIPTRAIL_POLL_INTERVAL", cls.poll_interval)))
        suppress_window = _positive(
            "CLIPTRAIL_SUPPRESS_WINDOW", float(os.getenv("CLIPTRAIL_SUPPRESS_WINDOW", cls.suppress_window)))
        max_items = int(_positive(
            "CLIPTRAIL_MAX_ITEMS", int(os.getenv("CLIPTRAIL_MAX_ITEMS", cls.max_items))))
        batch_size = int(_positive(
            "CLIPTRAIL_BATCH_SIZE", int(os.getenv("CLIPTRAIL_BATCH_SIZE", cls.batch_size))))
        max_history_days = int(_positive(
            "CLIPTRAIL_MAX_HISTORY_DAYS", int(os.getenv("CLIPTRAIL_MAX_HISTORY_DAYS", cls.max_history_days))))
        auto_cleanup = _to_bool(os.getenv("CLIPTRAIL_AUTO_CLEANUP"), default=cls.auto_cleanup)

        return cls(
            storage_dir=storage_dir,
            poll_interval=poll_interval,
            suppress_window=suppress_window,
            max_items=max_items,
            batch_size=batch_size,
            auto_cleanup=auto_cleanup,
            max_history_days=max_history_days,
        )
