"""
Request pacing gate

Guarantees a minimum interval between consecutive outbound requests made
through one gate, however many tasks call it concurrently.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RequestPacer:
    """
    Single-slot pacing gate shared by all requests of one client

    Waiters queue on an ``asyncio.Lock`` (FIFO), so requests are dispatched
    in submission order. The timestamp is taken at dispatch time, not when the
    response arrives, and the HTTP round-trip happens outside the gate.

    A task cancelled while waiting releases the gate without touching the
    timestamp.

    Usage:
        pacer = RequestPacer(min_interval=1.0)

        await pacer.wait()
        response = await http.get(url)
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            min_interval: Minimum seconds between two dispatches
            clock: Monotonic clock
            sleep: Coroutine used to suspend the caller
        """
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request_at: Optional[float] = None
        self._dispatched = 0

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_request_at(self) -> Optional[float]:
        return self._last_request_at

    @property
    def dispatched(self) -> int:
        """Number of requests let through so far"""
        return self._dispatched

    def time_until_ready(self) -> float:
        """Seconds a new request would wait right now (ignoring queued waiters)"""
        if self._last_request_at is None:
            return 0.0
        return max(0.0, self._min_interval - (self._clock() - self._last_request_at))

    async def wait(self) -> float:
        """
        Suspend until the next request may be dispatched, then claim the slot

        Returns:
            The dispatch timestamp recorded for this request
        """
        async with self._lock:
            delay = self.time_until_ready()
            if delay > 0:
                logger.debug(f"Pacing: waiting {delay * 1000:.0f}ms before next request")
                await self._sleep(delay)
            now = self._clock()
            self._last_request_at = now
            self._dispatched += 1
            return now
