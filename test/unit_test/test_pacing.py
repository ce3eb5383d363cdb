"""
Unit tests for the request pacing gate
"""

import asyncio
import sys
import unittest
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from oneinch_gateway.infra import RequestPacer


class FakeClock:
    """Manual clock whose sleep advances time instead of waiting"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []
        self.block = None

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float):
        self.sleeps.append(delay)
        if self.block is not None:
            await self.block.wait()
        await asyncio.sleep(0)
        self.now += delay


class TestRequestPacer(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.pacer = RequestPacer(1.0, clock=self.clock, sleep=self.clock.sleep)

    async def test_first_request_is_immediate(self):
        self.assertEqual(self.pacer.time_until_ready(), 0.0)
        dispatched_at = await self.pacer.wait()

        self.assertEqual(dispatched_at, 0.0)
        self.assertEqual(self.clock.sleeps, [])
        self.assertEqual(self.pacer.last_request_at, 0.0)
        self.assertEqual(self.pacer.dispatched, 1)

    async def test_back_to_back_requests_are_spaced(self):
        await self.pacer.wait()
        self.clock.now = 0.25
        dispatched_at = await self.pacer.wait()

        self.assertEqual(self.clock.sleeps, [0.75])
        self.assertEqual(dispatched_at, 1.0)

    async def test_no_wait_after_interval_elapsed(self):
        await self.pacer.wait()
        self.clock.now = 5.0
        await self.pacer.wait()

        self.assertEqual(self.clock.sleeps, [])
        self.assertEqual(self.pacer.last_request_at, 5.0)

    async def test_concurrent_waiters_dispatch_in_order(self):
        """The Kth dispatch happens no earlier than (K-1) intervals after the first"""
        order = []

        async def request(n):
            dispatched_at = await self.pacer.wait()
            order.append((n, dispatched_at))

        await asyncio.gather(*(request(n) for n in range(4)))

        self.assertEqual(order, [(0, 0.0), (1, 1.0), (2, 2.0), (3, 3.0)])
        self.assertEqual(self.pacer.dispatched, 4)

    async def test_cancelled_waiter_releases_gate(self):
        await self.pacer.wait()

        self.clock.block = asyncio.Event()
        waiter = asyncio.create_task(self.pacer.wait())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter

        # Timestamp untouched by the cancelled request
        self.assertEqual(self.pacer.last_request_at, 0.0)
        self.assertEqual(self.pacer.dispatched, 1)

        self.clock.block = None
        dispatched_at = await self.pacer.wait()
        self.assertEqual(dispatched_at, 1.0)
        self.assertEqual(self.pacer.dispatched, 2)

    async def test_zero_interval_never_waits(self):
        pacer = RequestPacer(0.0, clock=self.clock, sleep=self.clock.sleep)
        for _ in range(3):
            await pacer.wait()
        self.assertEqual(self.clock.sleeps, [])

    def test_negative_interval_rejected(self):
        with self.assertRaises(ValueError):
            RequestPacer(-1)


class TestRequestPacerRealClock(unittest.IsolatedAsyncioTestCase):
    """Same guarantee against the real event loop clock"""

    async def test_real_spacing(self):
        pacer = RequestPacer(0.05)
        loop = asyncio.get_running_loop()

        stamps = []

        async def request():
            await pacer.wait()
            stamps.append(loop.time())

        await asyncio.gather(request(), request(), request())

        for earlier, later in zip(stamps, stamps[1:]):
            # Small tolerance for timer resolution
            self.assertGreaterEqual(later - earlier, 0.045)


if __name__ == "__main__":
    unittest.main()
