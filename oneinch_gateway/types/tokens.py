"""
Token definitions for the 1inch gateway

Provides the Token record decoded from the aggregator's token list, a small
registry of well-known addresses on Ethereum and BSC, and conversion between
human-readable and atomic amounts.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..errors import ConfigurationError, InvalidParameters


class EVMChain(Enum):
    """Chains with a built-in token registry"""
    ETH = 1
    BSC = 56


# 1inch uses this address for the native token (ETH/BNB)
NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"


@dataclass(frozen=True)
class Token:
    """
    Token entry from the aggregator token list

    Attributes:
        address: Token contract address (lowercase)
        symbol: Ticker symbol
        name: Display name
        decimals: Number of decimals between atomic and human units
        logo_uri: Optional logo URL
        tags: Upstream classification tags
    """
    address: str
    symbol: str
    name: str
    decimals: int
    logo_uri: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.decimals < 0:
            raise ValueError(f"Token decimals must be non-negative, got {self.decimals}")

    def __str__(self) -> str:
        return self.symbol

    @property
    def is_native(self) -> bool:
        return is_native_token(self.address)

    @classmethod
    def from_api(cls, address: str, data: Dict[str, Any]) -> "Token":
        """Build a Token from one value of the /tokens response mapping"""
        return cls(
            address=(data.get("address") or address).lower(),
            symbol=data.get("symbol", ""),
            name=data.get("name", ""),
            decimals=int(data.get("decimals", 0)),
            logo_uri=data.get("logoURI"),
            tags=tuple(data.get("tags") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the upstream field names"""
        data: Dict[str, Any] = {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
        }
        if self.logo_uri:
            data["logoURI"] = self.logo_uri
        if self.tags:
            data["tags"] = list(self.tags)
        return data

    def to_atomic(self, amount: Union[Decimal, str, int]) -> str:
        return to_atomic(amount, self.decimals)

    def from_atomic(self, amount_atomic: Union[str, int]) -> Decimal:
        return from_atomic(amount_atomic, self.decimals)


@dataclass(frozen=True)
class TokenCatalog:
    """
    One /tokens download

    Attributes:
        tokens: Parsed tokens keyed by lowercase address (read-only)
        body: The upstream JSON body, every field kept as sent (read-only)
    """
    tokens: Mapping[str, Token]
    body: Mapping[str, Any]


# =============================================================================
# Well-known tokens
# =============================================================================

ETH_TOKEN_ADDRESSES: Dict[str, str] = {
    "ETH": NATIVE_TOKEN_ADDRESS,
    "WETH": "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
    "USDC": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
    "USDT": "0xdac17f958d2ee523a2206206994597c13d831ec7",
    "DAI": "0x6b175474e89094c44da98b954eedeac495271d0f",
    "WBTC": "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",
}

BSC_TOKEN_ADDRESSES: Dict[str, str] = {
    "BNB": NATIVE_TOKEN_ADDRESS,
    "WBNB": "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c",
    "USDC": "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d",
    "USDT": "0x55d398326f99059ff775485246999027b3197955",
    "BUSD": "0xe9e7cea3dedca5984780bafc599bd69add087d56",
}

_REGISTRY: Dict[int, Dict[str, str]] = {
    EVMChain.ETH.value: ETH_TOKEN_ADDRESSES,
    EVMChain.BSC.value: BSC_TOKEN_ADDRESSES,
}


def get_token_address(symbol: str, chain_id: int) -> Optional[str]:
    """
    Get a well-known token address for a symbol

    Returns:
        Token address if found, None otherwise
    """
    return _REGISTRY.get(chain_id, {}).get(symbol.upper())


def get_chain_tokens(chain_id: int) -> Dict[str, str]:
    """Well-known symbol -> address map for a chain (empty if unknown)"""
    return dict(_REGISTRY.get(chain_id, {}))


def resolve_token_address(token: str, chain_id: int) -> str:
    """
    Resolve token symbol or address to address

    Args:
        token: Token symbol (e.g., "ETH", "USDC") or address (0x...)
        chain_id: Chain ID

    Raises:
        ConfigurationError: If the symbol is unknown and not an address
    """
    if token.startswith("0x") and len(token) == 42:
        return token

    address = get_token_address(token, chain_id)
    if address:
        return address

    raise ConfigurationError.invalid("token", f"Unknown token: {token} on chain {chain_id}")


def is_native_token(address: str) -> bool:
    """Check if address is the native token placeholder"""
    return address.lower() == NATIVE_TOKEN_ADDRESS.lower()


# =============================================================================
# Amount conversion
# =============================================================================

def to_atomic(amount: Union[Decimal, str, int], decimals: int) -> str:
    """
    Convert a human-readable amount to atomic units

    Args:
        amount: Amount in UI units (e.g., Decimal("1.5") ETH)
        decimals: Token decimals

    Returns:
        Atomic amount as an integer string

    Raises:
        InvalidParameters: If the amount is negative, not a number, or has
            more fractional digits than the token supports
    """
    if isinstance(amount, float):
        raise InvalidParameters.invalid("amount", amount, "use Decimal or str, not float")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidParameters.invalid("amount", amount, "not a number")
    if not value.is_finite() or value < 0:
        raise InvalidParameters.invalid("amount", amount, "must be a non-negative finite number")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidParameters.invalid("amount", amount, f"more precise than {decimals} decimals")
        return str(int(scaled))


def from_atomic(amount_atomic: Union[str, int], decimals: int) -> Decimal:
    """Convert an atomic amount to a Decimal in UI units"""
    try:
        atomic = int(amount_atomic)
    except (TypeError, ValueError):
        raise InvalidParameters.invalid("amount", amount_atomic, "not an integer amount")
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(atomic).scaleb(-decimals)
