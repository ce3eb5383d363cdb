"""
Portfolio Module

Values a wallet's token balances in a quote token (USDC by default) using
aggregator quotes.

Balances come from a BalanceProvider; Web3BalanceProvider reads them from an
EVM JSON-RPC node. Per-token failures are logged and skipped, so one bad
token never sinks the whole valuation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from web3 import Web3

if TYPE_CHECKING:
    from ..api import AggregatorClient

from ..config import get_config
from ..errors import ConfigurationError, GatewayError
from ..types import from_atomic, get_chain_tokens, get_token_address, is_native_token
from ..validation import validate_address

logger = logging.getLogger(__name__)


ERC20_BALANCE_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    }
]


@runtime_checkable
class BalanceProvider(Protocol):
    """Reads a wallet's balance of one token in atomic units"""

    async def get_balance(self, owner: str, token: str) -> int:
        ...


class Web3BalanceProvider:
    """
    BalanceProvider backed by an EVM JSON-RPC node

    Native balances use eth_getBalance; ERC20 balances call balanceOf.
    Blocking web3 calls run in a worker thread.
    """

    def __init__(self, rpc_url: Optional[str] = None, web3: Optional[Web3] = None, timeout: float = 30.0):
        if web3 is None:
            rpc_url = rpc_url or get_config().gateway.rpc_url
            if not rpc_url:
                raise ConfigurationError.missing("ONEINCH_RPC_URL", "RPC URL is required for balance reads")
            web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self._web3 = web3

    @property
    def web3(self) -> Web3:
        return self._web3

    def _read_balance(self, owner: str, token: str) -> int:
        owner = Web3.to_checksum_address(owner)
        if is_native_token(token):
            return self._web3.eth.get_balance(owner)

        contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(token),
            abi=ERC20_BALANCE_ABI,
        )
        return contract.functions.balanceOf(owner).call()

    async def get_balance(self, owner: str, token: str) -> int:
        return int(await asyncio.to_thread(self._read_balance, owner, token))


@dataclass(frozen=True)
class PortfolioPosition:
    """
    One non-zero holding

    Attributes:
        token: Token address (lowercase)
        balance: Balance in atomic units
        value: Value in quote-token units, None if no quote was available
    """
    token: str
    balance: int
    value: Optional[Decimal] = None


@dataclass(frozen=True)
class Portfolio:
    """Valuation snapshot of a wallet"""
    wallet: str
    quote_token: str
    positions: Dict[str, PortfolioPosition] = field(default_factory=dict)
    total_value: Decimal = Decimal(0)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def unpriced(self) -> Dict[str, PortfolioPosition]:
        """Positions held but left out of total_value"""
        return {k: v for k, v in self.positions.items() if v.value is None}


class PortfolioTracker:
    """
    Wallet valuation through aggregator quotes

    Usage:
        tracker = PortfolioTracker(client, Web3BalanceProvider(rpc_url))
        portfolio = await tracker.value(wallet)
        print(portfolio.total_value)
    """

    def __init__(
        self,
        client: "AggregatorClient",
        balances: BalanceProvider,
        quote_token: Optional[str] = None,
        quote_decimals: Optional[int] = None,
    ):
        """
        Initialize portfolio tracker

        Args:
            client: AggregatorClient instance
            balances: Balance source
            quote_token: Token to value holdings in (default: USDC on the client's chain)
            quote_decimals: Decimals of quote_token (default: looked up in the token list)
        """
        quote_token = quote_token or get_token_address("USDC", client.chain_id)
        if quote_token is None:
            raise ConfigurationError.invalid(
                "quote_token", f"no default quote token for chain {client.chain_id}"
            )
        self._client = client
        self._balances = balances
        self._quote_token = validate_address(quote_token, "quote_token").lower()
        self._quote_decimals = quote_decimals

    @property
    def quote_token(self) -> str:
        return self._quote_token

    def default_tokens(self) -> Iterable[str]:
        """Well-known tokens of the client's chain"""
        return get_chain_tokens(self._client.chain_id).values()

    async def _resolve_quote_decimals(self) -> int:
        if self._quote_decimals is None:
            token = await self._client.get_token(self._quote_token)
            if token is None:
                raise ConfigurationError.invalid(
                    "quote_token", f"{self._quote_token} not in the token list; pass quote_decimals"
                )
            self._quote_decimals = token.decimals
        return self._quote_decimals

    async def _quote_value(self, token: str, balance: int) -> Optional[int]:
        if token == self._quote_token:
            return balance
        try:
            quote = await self._client.get_quote(token, self._quote_token, balance)
        except GatewayError as e:
            logger.warning(f"Could not value {token}: {e}")
            return None
        try:
            return int(quote.destination_amount)
        except ValueError:
            logger.warning(f"Unusable quote for {token}: {quote.destination_amount!r}")
            return None

    async def value(self, wallet_address: str, tokens: Optional[Iterable[str]] = None) -> Portfolio:
        """
        Value a wallet's holdings

        Args:
            wallet_address: Wallet to value
            tokens: Token addresses to check (default: well-known tokens of the chain)

        Returns:
            Portfolio with one position per non-zero balance
        """
        validate_address(wallet_address, "wallet_address")
        decimals = await self._resolve_quote_decimals()
        tokens = list(self.default_tokens() if tokens is None else tokens)

        logger.info(f"Calculating portfolio value for {wallet_address} over {len(tokens)} tokens")

        positions: Dict[str, PortfolioPosition] = {}
        total = Decimal(0)
        for token in tokens:
            token = token.lower()
            try:
                balance = await self._balances.get_balance(wallet_address, token)
            except Exception as e:
                logger.warning(f"Error getting balance for {token}: {e}")
                continue
            if balance <= 0:
                continue

            atomic_value = await self._quote_value(token, balance)
            value = None if atomic_value is None else from_atomic(atomic_value, decimals)
            positions[token] = PortfolioPosition(token=token, balance=balance, value=value)
            if value is not None:
                total += value

        logger.info(f"Portfolio of {wallet_address}: {len(positions)} positions, total {total}")
        return Portfolio(
            wallet=wallet_address,
            quote_token=self._quote_token,
            positions=positions,
            total_value=total,
        )
