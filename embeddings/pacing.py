"""
embeddings/pacing.py
--------------------
Cooperative pacing for calls to the embedding provider.

The pacer only spaces calls out; it never retries. Time already spent inside
the previous call counts toward the interval.
"""

from __future__ import annotations

import asyncio
import time


class RequestPacer:
    def __init__(self, min_interval: float = 0.15, clock=time.monotonic):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._last: float | None = None

    async def wait(self) -> float:
        """Sleep until the interval since the previous call has elapsed. Returns the pause taken."""
        pause = 0.0
        if self.min_interval and self._last is not None:
            pause = max(0.0, self.min_interval - (self._clock() - self._last))
            if pause:
                await asyncio.sleep(pause)
        self._last = self._clock()
        return pause

    def reset(self) -> None:
        self._last = None
