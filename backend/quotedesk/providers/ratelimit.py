from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


class RateLimiter:
    """Spaces out requests to one upstream by at least ``min_interval`` seconds.

    Each caller reserves the next free slot before it suspends, so grants
    follow arrival order on a single event loop without a lock. Callers are
    only ever delayed, never rejected.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self.last_request_at: float | None = None
        self._clock = clock
        self._sleep = sleep

    async def acquire(self) -> float:
        now = self._clock()
        if self.last_request_at is None:
            slot = now
        else:
            slot = max(now, self.last_request_at + self.min_interval)
        self.last_request_at = slot
        wait = slot - now
        if wait > 0:
            await self._sleep(wait)
        return slot
