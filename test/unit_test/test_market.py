"""
Test Market Module

Tests for PriceMonitor with a mocked gateway client.
"""

import sys
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from oneinch_gateway.errors import InvalidParameters, NetworkError
from oneinch_gateway.modules import PriceAlert, PriceMonitor
from oneinch_gateway.types import Quote

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
AMOUNT = "1000000"


def quote(destination_amount):
    return Quote(source=WETH, destination=USDC, source_amount=AMOUNT, destination_amount=destination_amount)


def scripted_client(*outcomes):
    client = MagicMock()
    client.get_quote = AsyncMock(side_effect=list(outcomes))
    return client


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestPriceMonitor(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.sleep = SleepRecorder()

    def monitor(self, client, **kwargs):
        settings = dict(alert_threshold=0.05, check_interval=10.0, max_checks=3, sleep=self.sleep)
        settings.update(kwargs)
        return PriceMonitor(client, WETH, USDC, AMOUNT, **settings)

    async def test_alert_on_threshold_move(self):
        client = scripted_client(quote("2000"), quote("2050"), quote("1900"))
        monitor = self.monitor(client)

        alerts = await monitor.run()

        # +2.5% is below threshold, then -7.3% triggers
        self.assertEqual(len(alerts), 1)
        alert = alerts[0]
        self.assertIsInstance(alert, PriceAlert)
        self.assertEqual(alert.previous_rate, Decimal("2050") / Decimal(AMOUNT))
        self.assertEqual(alert.current_rate, Decimal("1900") / Decimal(AMOUNT))
        self.assertLess(alert.change, 0)
        self.assertEqual(alert.quote.destination_amount, "1900")
        self.assertEqual(monitor.checks, 3)
        self.assertEqual(self.sleep.delays, [10.0, 10.0])
        self.assertFalse(monitor.running)

    async def test_exact_threshold_triggers(self):
        client = scripted_client(quote("100"), quote("105"))
        alerts = await self.monitor(client, max_checks=2).run()
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0].change, Decimal("0.05"))
        self.assertEqual(alerts[0].change_percent, Decimal("5.00"))

    async def test_sync_and_async_callbacks(self):
        received = []

        async def on_alert(alert):
            received.append(alert)

        client = scripted_client(quote("100"), quote("200"))
        await self.monitor(client, max_checks=2, on_alert=on_alert).run()
        self.assertEqual(len(received), 1)

        client = scripted_client(quote("100"), quote("50"))
        await self.monitor(client, max_checks=2, on_alert=received.append).run()
        self.assertEqual(len(received), 2)

    async def test_errors_double_the_wait(self):
        client = scripted_client(
            quote("100"),
            NetworkError.timeout("quote", 30),
            quote("100"),
        )
        monitor = self.monitor(client)

        alerts = await monitor.run()

        self.assertEqual(alerts, [])
        self.assertEqual(self.sleep.delays, [10.0, 20.0])
        self.assertEqual(monitor.checks, 3)
        self.assertEqual(monitor.last_rate, Decimal("100") / Decimal(AMOUNT))

    async def test_stop_ends_loop(self):
        monitor = None

        def stop_on_alert(alert):
            monitor.stop()

        client = scripted_client(quote("100"), quote("300"), quote("100"))
        monitor = self.monitor(client, max_checks=10, on_alert=stop_on_alert)

        alerts = await monitor.run()

        self.assertEqual(len(alerts), 1)
        self.assertEqual(monitor.checks, 2)
        self.assertEqual(client.get_quote.await_count, 2)

    async def test_stop_before_run_skips_polling(self):
        client = scripted_client(quote("100"), quote("100"))
        monitor = self.monitor(client, max_checks=2)

        monitor.stop()
        self.assertEqual(await monitor.run(), [])
        client.get_quote.assert_not_awaited()
        self.assertFalse(monitor.running)

        # The request is consumed; the next run polls normally
        await monitor.run()
        self.assertEqual(client.get_quote.await_count, 2)

    async def test_non_gateway_errors_propagate(self):
        client = scripted_client(quote("100"), KeyError("dstAmount"))
        monitor = self.monitor(client)

        with self.assertRaises(KeyError):
            await monitor.run()
        self.assertFalse(monitor.running)

    def test_invalid_pair_rejected(self):
        with self.assertRaises(InvalidParameters):
            PriceMonitor(MagicMock(), WETH, WETH, AMOUNT)
        with self.assertRaises(InvalidParameters):
            PriceMonitor(MagicMock(), WETH, USDC, "0")


if __name__ == "__main__":
    unittest.main()
