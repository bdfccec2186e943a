"""Minimum-spacing rate limiter shared by all callers of one provider."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Serialize dispatches so consecutive ones are at least *min_interval* apart.

    Callers queue on an ``asyncio.Lock`` and are released in submission
    order.  *clock* and *sleep* are injectable so tests can drive time by
    hand.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float = -math.inf

    @property
    def last_call(self) -> float:
        return self._last_call

    async def acquire(self) -> None:
        async with self._lock:
            elapsed = self._clock() - self._last_call
            if elapsed < self.min_interval:
                wait = self.min_interval - elapsed
                logger.debug("Rate limit: waiting %.2fs", wait)
                await self._sleep(wait)
            self._last_call = self._clock()

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None
