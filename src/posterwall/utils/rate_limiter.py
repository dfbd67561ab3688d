"""Outbound request pacing."""

import asyncio
import time
from typing import Awaitable, Callable, Optional


class RequestPacer:
    """Fixed-interval pacing shared by every caller of one instance.

    Each ``wait()`` returns no earlier than ``min_interval`` seconds after the
    previous one returned, whatever the number of concurrent callers.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        """Initialize pacer.

        Args:
            min_interval: Minimum spacing between requests in seconds.
            clock: Monotonic clock.
            sleep: Coroutine used to wait; defaults to ``asyncio.sleep``.
        """
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self._last_release: Optional[float] = None

    @classmethod
    def per_second(cls, requests_per_second: float) -> "RequestPacer":
        """Create a pacer from a requests-per-second budget (0 disables pacing)."""
        if requests_per_second <= 0:
            return cls(0.0)
        return cls(1.0 / requests_per_second)

    @property
    def min_interval(self) -> float:
        """Minimum spacing between requests in seconds."""
        return self._min_interval

    async def wait(self) -> None:
        """Wait until the next request slot is available."""
        async with self._lock:
            if self._last_release is not None and self._min_interval > 0:
                delay = self._last_release + self._min_interval - self._clock()
                if delay > 0:
                    await self._sleep(delay)
            self._last_release = self._clock()
