"""
Type definitions for the 1inch gateway
"""

from .tokens import (
    EVMChain,
    Token,
    TokenCatalog,
    NATIVE_TOKEN_ADDRESS,
    ETH_TOKEN_ADDRESSES,
    BSC_TOKEN_ADDRESSES,
    get_token_address,
    get_chain_tokens,
    resolve_token_address,
    is_native_token,
    to_atomic,
    from_atomic,
)
from .result import (
    RouteStep,
    Quote,
    SwapTransaction,
    LiquiditySource,
    SwapPlan,
    SwapPlanStatus,
    parse_route,
)
from .request import QuoteOptions, SwapOptions, DEFAULT_SWAP_SLIPPAGE_PERCENT

__all__ = [
    # Tokens
    "EVMChain",
    "Token",
    "TokenCatalog",
    "NATIVE_TOKEN_ADDRESS",
    "ETH_TOKEN_ADDRESSES",
    "BSC_TOKEN_ADDRESSES",
    "get_token_address",
    "get_chain_tokens",
    "resolve_token_address",
    "is_native_token",
    "to_atomic",
    "from_atomic",
    # Results
    "RouteStep",
    "Quote",
    "SwapTransaction",
    "LiquiditySource",
    "SwapPlan",
    "SwapPlanStatus",
    "parse_route",
    # Requests
    "QuoteOptions",
    "SwapOptions",
    "DEFAULT_SWAP_SLIPPAGE_PERCENT",
]
