import threading
import time
from typing import Callable


class InternalWriteGuard:
    """Time-bounded flag marking that the engine itself wrote the clipboard.

    While the flag is up, a change-counter bump is treated as our own echo
    rather than new external content. The flag drops by itself ``window``
    seconds after the last ``mark``.
    """

    def __init__(self, window: float = 0.5, clock: Callable[[], float] = time.monotonic) -> None:
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._until = float("-inf")

    def mark(self) -> None:
        with self._lock:
            self._until = self._clock() + self.window

    def clear(self) -> None:
        with self._lock:
            self._until = float("-inf")

    @property
    def active(self) -> bool:
        with self._lock:
            return self._clock() < self._until
