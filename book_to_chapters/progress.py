"""Throttled progress reporting."""

import time

from book_to_chapters.models import Progress, ProgressCallback

DEFAULT_INTERVAL = 0.1  # seconds


class ProgressThrottle:
    """Forward progress to a callback at most once per interval, unless forced."""

    def __init__(self, callback: ProgressCallback | None, interval: float = DEFAULT_INTERVAL):
        self.callback = callback
        self.interval = interval
        self._last_update = time.monotonic()

    def report(self, current: int, total: int, label: str, force: bool = False) -> bool:
        """Deliver a Progress event if forced or the interval has elapsed. Returns True if delivered."""
        if self.callback is None:
            return False
        now = time.monotonic()
        if not force and now - self._last_update < self.interval:
            return False
        self._last_update = now
        self.callback(Progress(current, total, label))
        return True
