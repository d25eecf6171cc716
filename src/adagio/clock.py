"""Clock sources. All values are integer epoch milliseconds."""

from __future__ import annotations

import time


class SystemClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to. Used for replay and tests."""

    def __init__(self, now_ms: int = 0):
        self._now_ms = int(now_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, seconds: float) -> int:
        self._now_ms += int(seconds * 1000)
        return self._now_ms

    def set(self, now_ms: int) -> None:
        self._now_ms = int(now_ms)
