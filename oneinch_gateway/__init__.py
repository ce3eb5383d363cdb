"""
1inch Gateway - Rate-limited, cached client for the 1inch swap aggregator

Provides:
- AggregatorClient: paced, retried, cached access to the aggregator REST API
- SwapWorkflow: allowance-aware swap preparation for an external signer
- PriceMonitor: quote polling with rate alerts
- A local REST proxy (``python -m oneinch_gateway.proxy``)
"""

__version__ = "0.1.0"

from .api import AggregatorClient, ENDPOINTS
from .config import (
    Config,
    GatewayConfig,
    ProxyConfig,
    MonitorConfig,
    LoggingConfig,
    config,
    get_config,
    reload_config,
    setup_logging,
)
from .errors import (
    ErrorCode,
    GatewayError,
    InvalidParameters,
    UpstreamError,
    RateLimited,
    NetworkError,
    SignerError,
    ConfigurationError,
    StaleCacheServed,
)
from .types import (
    EVMChain,
    Token,
    TokenCatalog,
    NATIVE_TOKEN_ADDRESS,
    Quote,
    RouteStep,
    SwapTransaction,
    LiquiditySource,
    SwapPlan,
    SwapPlanStatus,
    QuoteOptions,
    SwapOptions,
    to_atomic,
    from_atomic,
    resolve_token_address,
)
from .modules import (
    SwapWorkflow,
    TransactionSigner,
    PriceMonitor,
    PriceAlert,
    PortfolioTracker,
    Web3BalanceProvider,
)

__all__ = [
    "__version__",
    # Client
    "AggregatorClient",
    "ENDPOINTS",
    # Config
    "Config",
    "GatewayConfig",
    "ProxyConfig",
    "MonitorConfig",
    "LoggingConfig",
    "config",
    "get_config",
    "reload_config",
    "setup_logging",
    # Errors
    "ErrorCode",
    "GatewayError",
    "InvalidParameters",
    "UpstreamError",
    "RateLimited",
    "NetworkError",
    "SignerError",
    "ConfigurationError",
    "StaleCacheServed",
    # Types
    "EVMChain",
    "Token",
    "TokenCatalog",
    "NATIVE_TOKEN_ADDRESS",
    "Quote",
    "RouteStep",
    "SwapTransaction",
    "LiquiditySource",
    "SwapPlan",
    "SwapPlanStatus",
    "QuoteOptions",
    "SwapOptions",
    "to_atomic",
    "from_atomic",
    "resolve_token_address",
    # Modules
    "SwapWorkflow",
    "TransactionSigner",
    "PriceMonitor",
    "PriceAlert",
    "PortfolioTracker",
    "Web3BalanceProvider",
]
