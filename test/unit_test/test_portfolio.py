"""
Test Portfolio Module

Tests for PortfolioTracker with a mocked gateway client and an in-memory
balance source, plus Web3BalanceProvider against a mocked Web3.
"""

import sys
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from oneinch_gateway.errors import ConfigurationError, InvalidParameters, NetworkError
from oneinch_gateway.modules import (
    BalanceProvider,
    Portfolio,
    PortfolioTracker,
    Web3BalanceProvider,
)
from oneinch_gateway.types import ETH_TOKEN_ADDRESSES, NATIVE_TOKEN_ADDRESS, Quote, Token

WETH = ETH_TOKEN_ADDRESSES["WETH"]
USDC = ETH_TOKEN_ADDRESSES["USDC"]
DAI = ETH_TOKEN_ADDRESSES["DAI"]
NATIVE = NATIVE_TOKEN_ADDRESS.lower()
WALLET = "0x" + "11" * 20


class StaticBalances:
    """Balances keyed by lowercase token address; an Exception value is raised"""

    def __init__(self, balances):
        self.balances = balances
        self.reads = []

    async def get_balance(self, owner, token):
        self.reads.append((owner, token))
        value = self.balances.get(token, 0)
        if isinstance(value, Exception):
            raise value
        return value


def make_client(prices=None, chain_id=1):
    """prices maps source token -> USDC atomic output (or an exception)"""
    prices = prices or {}

    async def get_quote(src, dst, amount, options=None):
        outcome = prices[src]
        if isinstance(outcome, Exception):
            raise outcome
        return Quote(source=src, destination=dst, source_amount=str(amount), destination_amount=outcome)

    client = MagicMock()
    client.chain_id = chain_id
    client.get_quote = AsyncMock(side_effect=get_quote)
    client.get_token = AsyncMock(return_value=Token(address=USDC, symbol="USDC", name="USD Coin", decimals=6))
    return client


class TestPortfolioTracker(unittest.IsolatedAsyncioTestCase):

    def test_balance_source_protocol(self):
        self.assertIsInstance(StaticBalances({}), BalanceProvider)

    async def test_values_non_zero_balances(self):
        client = make_client({NATIVE: "3868650000", WETH: "1934325000"})
        balances = StaticBalances({
            NATIVE: 10 ** 18,
            WETH: 5 * 10 ** 17,
            USDC: 2_500_000,
        })
        tracker = PortfolioTracker(client, balances)

        portfolio = await tracker.value(WALLET)

        self.assertIsInstance(portfolio, Portfolio)
        self.assertEqual(set(portfolio.positions), {NATIVE, WETH, USDC})
        self.assertEqual(portfolio.positions[NATIVE].value, Decimal("3868.65"))
        self.assertEqual(portfolio.positions[WETH].balance, 5 * 10 ** 17)
        # The quote token is valued at face, without a quote
        self.assertEqual(portfolio.positions[USDC].value, Decimal("2.5"))
        self.assertEqual(portfolio.total_value, Decimal("3868.65") + Decimal("1934.325") + Decimal("2.5"))
        quoted = {call.args[0] for call in client.get_quote.await_args_list}
        self.assertEqual(quoted, {NATIVE, WETH})
        # Every well-known ETH token was read
        self.assertEqual(len(balances.reads), len(ETH_TOKEN_ADDRESSES))

    async def test_balance_failures_are_skipped(self):
        client = make_client({WETH: "1000000"})
        balances = StaticBalances({DAI: ConnectionError("rpc down"), WETH: 1})
        tracker = PortfolioTracker(client, balances)

        portfolio = await tracker.value(WALLET, [DAI, WETH])

        self.assertEqual(list(portfolio.positions), [WETH])
        self.assertEqual(portfolio.total_value, Decimal(1))

    async def test_quote_failures_leave_position_unpriced(self):
        client = make_client({DAI: NetworkError.timeout("quote", 30), WETH: "2000000"})
        balances = StaticBalances({DAI: 10 ** 18, WETH: 10 ** 15})
        tracker = PortfolioTracker(client, balances)

        portfolio = await tracker.value(WALLET, [DAI, WETH])

        self.assertIsNone(portfolio.positions[DAI].value)
        self.assertEqual(set(portfolio.unpriced), {DAI})
        self.assertEqual(portfolio.total_value, Decimal(2))

    async def test_explicit_quote_token_and_decimals(self):
        client = make_client({WETH: "1500000000000000000"})
        tracker = PortfolioTracker(client, StaticBalances({WETH: 10 ** 18}), quote_token=DAI, quote_decimals=18)

        portfolio = await tracker.value(WALLET, [WETH.upper().replace("0X", "0x")])

        self.assertEqual(portfolio.quote_token, DAI)
        self.assertEqual(portfolio.total_value, Decimal("1.5"))
        client.get_token.assert_not_awaited()
        self.assertEqual(client.get_quote.await_args.args[:3], (WETH, DAI, 10 ** 18))

    async def test_unknown_quote_token_decimals(self):
        client = make_client()
        client.get_token.return_value = None
        tracker = PortfolioTracker(client, StaticBalances({}))

        with self.assertRaises(ConfigurationError):
            await tracker.value(WALLET)

    def test_no_default_quote_token_on_unknown_chain(self):
        with self.assertRaises(ConfigurationError):
            PortfolioTracker(make_client(chain_id=137), StaticBalances({}))

    async def test_invalid_wallet_rejected(self):
        client = make_client()
        balances = StaticBalances({})
        with self.assertRaises(InvalidParameters):
            await PortfolioTracker(client, balances).value("wallet")
        self.assertEqual(balances.reads, [])


class TestWeb3BalanceProvider(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.web3 = MagicMock()
        self.web3.eth.get_balance.return_value = 7
        self.web3.eth.contract.return_value.functions.balanceOf.return_value.call.return_value = 42
        self.provider = Web3BalanceProvider(web3=self.web3)

    async def test_native_balance(self):
        self.assertEqual(await self.provider.get_balance(WALLET, NATIVE), 7)
        self.web3.eth.contract.assert_not_called()

    async def test_erc20_balance(self):
        self.assertEqual(await self.provider.get_balance(WALLET, USDC), 42)
        kwargs = self.web3.eth.contract.call_args.kwargs
        self.assertEqual(kwargs["address"].lower(), USDC)
        self.assertEqual(kwargs["abi"][0]["name"], "balanceOf")

    def test_rpc_url_required(self):
        with patch("oneinch_gateway.modules.portfolio.get_config") as get_config:
            get_config.return_value.gateway.rpc_url = ""
            with self.assertRaises(ConfigurationError):
                Web3BalanceProvider()


if __name__ == "__main__":
    unittest.main()
