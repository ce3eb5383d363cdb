"""
Market Module

Polls quotes for one pair and reports rate moves.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..api import AggregatorClient

from ..config import get_config
from ..errors import GatewayError
from ..types import Quote, QuoteOptions
from ..validation import validate_amount, validate_pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceAlert:
    """
    Rate moved by at least the alert threshold between two polls

    Attributes:
        previous_rate: Rate at the previous successful poll
        current_rate: Rate at this poll
        change: Signed relative change, (current - previous) / previous
        quote: Quote the current rate was taken from
    """
    previous_rate: Decimal
    current_rate: Decimal
    change: Decimal
    quote: Quote

    @property
    def change_percent(self) -> Decimal:
        return self.change * 100


AlertCallback = Callable[[PriceAlert], Union[None, Awaitable[None]]]


class PriceMonitor:
    """
    Quote poller with threshold alerts

    Every poll goes through the client, so monitoring shares the client's
    pacing gate with any other traffic.

    Usage:
        monitor = PriceMonitor(client, WETH, USDC, "1000000000000000000",
                               alert_threshold=0.02, on_alert=print)
        alerts = await monitor.run()
    """

    def __init__(
        self,
        client: "AggregatorClient",
        source: str,
        destination: str,
        amount: Union[str, int],
        alert_threshold: Optional[float] = None,
        check_interval: Optional[float] = None,
        max_checks: Optional[int] = None,
        on_alert: Optional[AlertCallback] = None,
        options: Optional[QuoteOptions] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            client: AggregatorClient instance
            source: Source token address
            destination: Destination token address
            amount: Probe amount in atomic units
            alert_threshold: Relative move that triggers an alert (0.05 = 5%)
            check_interval: Seconds between polls
            max_checks: Polls before run() returns
            on_alert: Sync or async callback for each alert
            options: Quote options for each poll
            sleep: Coroutine used between polls
        """
        monitor_config = get_config().monitor
        self._client = client
        self._source = source
        self._destination = destination
        self._amount = validate_amount(amount)
        validate_pair(source, destination)

        self._threshold = Decimal(str(
            monitor_config.alert_threshold if alert_threshold is None else alert_threshold
        ))
        self._interval = monitor_config.check_interval if check_interval is None else check_interval
        self._max_checks = monitor_config.max_checks if max_checks is None else max_checks
        self._on_alert = on_alert
        self._options = options
        self._sleep = sleep

        self._running = False
        self._stop_requested = False
        self._last_rate: Optional[Decimal] = None
        self._checks = 0

    @property
    def last_rate(self) -> Optional[Decimal]:
        return self._last_rate

    @property
    def checks(self) -> int:
        """Completed polls, successful or not"""
        return self._checks

    @property
    def running(self) -> bool:
        return self._running

    def stop(self):
        """
        Stop after the current poll

        Called before run(), the next run() returns without polling.
        """
        self._stop_requested = True

    async def check(self) -> Optional[PriceAlert]:
        """
        Poll once

        Returns:
            PriceAlert if the rate moved by at least the threshold, else None

        Raises:
            GatewayError: Quote failed
        """
        quote = await self._client.get_quote(self._source, self._destination, self._amount, self._options)
        rate = quote.rate
        previous = self._last_rate
        self._last_rate = rate

        if previous is None or previous == 0:
            logger.info(f"Initial rate: {rate}")
            return None

        change = (rate - previous) / previous
        if abs(change) < self._threshold:
            logger.debug(f"Rate {rate} ({change * 100:+.4f}%)")
            return None

        alert = PriceAlert(previous_rate=previous, current_rate=rate, change=change, quote=quote)
        logger.warning(f"Price alert: {previous} -> {rate} ({alert.change_percent:+.2f}%)")
        if self._on_alert is not None:
            result = self._on_alert(alert)
            if inspect.isawaitable(result):
                await result
        return alert

    async def run(self) -> List[PriceAlert]:
        """
        Poll until stop() or max_checks

        A pending stop() request is consumed when the run ends.

        Gateway errors are logged and the next poll waits twice the interval.

        Returns:
            Alerts raised during the run
        """
        alerts: List[PriceAlert] = []
        if self._stop_requested:
            self._stop_requested = False
            logger.info("Monitoring stopped before the first check")
            return alerts
        self._running = True
        logger.info(
            f"Monitoring {self._source} -> {self._destination} "
            f"every {self._interval}s (threshold {self._threshold * 100}%)"
        )

        try:
            while not self._stop_requested and self._checks < self._max_checks:
                delay = self._interval
                try:
                    alert = await self.check()
                    if alert is not None:
                        alerts.append(alert)
                except GatewayError as e:
                    logger.error(f"Price check failed: {e}")
                    delay = self._interval * 2
                self._checks += 1

                if not self._stop_requested and self._checks < self._max_checks:
                    await self._sleep(delay)
        finally:
            self._running = False
            self._stop_requested = False

        logger.info(f"Monitoring finished after {self._checks} checks, {len(alerts)} alerts")
        return alerts
