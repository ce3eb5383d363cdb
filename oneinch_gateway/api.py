"""
1inch Aggregator Gateway Client

Async REST client for the 1inch swap aggregator (v6.0).
Owns API-key injection, request pacing, caching of the token and
liquidity-source lists, retries, and typed decoding of responses.
"""

import logging
import time
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .config import GatewayConfig, get_config
from .errors import ConfigurationError, InvalidParameters, NetworkError, UpstreamError
from .infra import CorrelationContext, RequestPacer, RetryPolicy, TTLCache, execute_with_retry
from .types import (
    LiquiditySource,
    Quote,
    QuoteOptions,
    SwapOptions,
    SwapTransaction,
    Token,
    TokenCatalog,
)
from .validation import (
    validate_address,
    validate_amount,
    validate_options,
    validate_pair,
)

logger = logging.getLogger(__name__)

# Mapping, or key/value pairs when a key repeats
QueryParams = Union[Mapping[str, str], Sequence[Tuple[str, str]]]

# Upstream resources this client (and the proxy) may call
ENDPOINTS = frozenset({
    "tokens",
    "quote",
    "swap",
    "approve/allowance",
    "approve/transaction",
    "approve/spender",
    "liquidity-sources",
})


class AggregatorClient:
    """
    1inch aggregator gateway client (v6.0)

    Provides:
    - Token and liquidity-source lists (cached)
    - Swap quotes
    - Swap transaction building
    - Token allowance checks and approvals

    All outbound requests of one instance share a pacing gate, so concurrent
    callers are serialized at ``min_request_interval_ms``. Use one instance
    per API key.

    Usage:
        async with AggregatorClient(api_key="...", chain_id=1) as client:
            tokens = await client.list_tokens()
            quote = await client.get_quote(src, dst, "1000000000000000000")
            tx = await client.build_swap(src, dst, "1000000000000000000", wallet)

    Note:
        Requires a 1inch API key. Set ONEINCH_API_KEY or pass api_key.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        base_url: Optional[str] = None,
        min_request_interval_ms: Optional[int] = None,
        cache_ttl_ms: Optional[int] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        serve_stale_on_error: Optional[bool] = None,
        gateway_config: Optional[GatewayConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the gateway client

        Explicit arguments take precedence over ``gateway_config``, which
        defaults to the environment-backed global config.

        Args:
            api_key: 1inch API key (or set ONEINCH_API_KEY env var)
            chain_id: Chain ID (1 for ETH, 56 for BSC, ...)
            base_url: Base URL template containing ``{chain_id}``
            min_request_interval_ms: Minimum gap between outbound requests
            cache_ttl_ms: TTL of the token and liquidity-source caches
            timeout: Request timeout in seconds
            max_retries: Retries for 429 / 5xx / transport failures
            retry_base_delay: First backoff delay in seconds
            serve_stale_on_error: Serve expired cache entries if a refresh fails
            gateway_config: Configuration to resolve missing arguments from
            transport: Optional httpx transport (mocking, proxies)
            clock: Monotonic clock used by the cache
        """
        cfg = gateway_config or get_config().gateway

        def pick(value, default):
            return default if value is None else value

        self._api_key = pick(api_key, cfg.api_key)
        self._chain_id = pick(chain_id, cfg.chain_id)
        self._timeout = pick(timeout, cfg.timeout)
        self._serve_stale_on_error = pick(serve_stale_on_error, cfg.serve_stale_on_error)
        interval_ms = pick(min_request_interval_ms, cfg.min_request_interval_ms)
        ttl_ms = pick(cache_ttl_ms, cfg.cache_ttl_ms)

        if not self._api_key:
            raise ConfigurationError.missing(
                "ONEINCH_API_KEY",
                "1inch API key is required. Set ONEINCH_API_KEY environment variable."
            )
        if interval_ms < 0:
            raise ConfigurationError.invalid("min_request_interval_ms", f"must be >= 0, got {interval_ms}")
        if ttl_ms < 0:
            raise ConfigurationError.invalid("cache_ttl_ms", f"must be >= 0, got {ttl_ms}")

        self._base_url = cfg.resolve_base_url(self._chain_id, pick(base_url, cfg.base_url))

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._pacer = RequestPacer(interval_ms / 1000.0)
        self._cache = TTLCache(ttl_ms / 1000.0, clock=clock)
        self._retry_policy = RetryPolicy(
            max_retries=pick(max_retries, cfg.max_retries),
            base_delay=pick(retry_base_delay, cfg.retry_base_delay),
        )

        logger.info(
            f"Initialized AggregatorClient for chain {self._chain_id} "
            f"(interval={interval_ms}ms, cache_ttl={ttl_ms}ms)"
        )

    @property
    def chain_id(self) -> int:
        """Chain ID this client is configured for"""
        return self._chain_id

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def pacer(self) -> RequestPacer:
        return self._pacer

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    # =========================================================================
    # Transport
    # =========================================================================

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with auth headers"""
        if self._client is None:
            headers = {
                "Accept": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            }
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL"""
        return f"{self._base_url}/{endpoint}"

    async def _send(self, endpoint: str, params: Optional[QueryParams]) -> Any:
        """
        One paced attempt

        Raises:
            UpstreamError: Non-2xx response or non-JSON body
            NetworkError: Transport failure or timeout
        """
        client = self._get_client()
        url = self._build_url(endpoint)

        await self._pacer.wait()
        logger.debug(f"GET {url} params={params}")
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError.timeout(endpoint, self._timeout, e) from e
        except httpx.RequestError as e:
            raise NetworkError.connection_failed(endpoint, e) from e

        if not response.is_success:
            raise UpstreamError.from_status(response.status_code, response.text, endpoint)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError.invalid_response(endpoint, "body is not JSON", response.text[:500]) from e

    async def _request(self, endpoint: str, params: Optional[QueryParams] = None) -> Any:
        """Paced request with retries"""
        with CorrelationContext(endpoint.replace("/", "_")):
            return await execute_with_retry(
                lambda: self._send(endpoint, params),
                endpoint,
                self._retry_policy,
            )

    @staticmethod
    def _expect_dict(endpoint: str, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise UpstreamError.invalid_response(endpoint, f"expected JSON object, got {type(data).__name__}")
        return data

    # =========================================================================
    # Cached resources
    # =========================================================================

    async def list_tokens(self) -> Mapping[str, Token]:
        """
        Get the supported token list, keyed by lowercase address

        Served from cache while fresh. A failed refresh raises and keeps the
        previous entry, unless serve_stale_on_error is enabled.

        Returns:
            Read-only mapping of address -> Token
        """
        catalog = await self.token_catalog()
        return catalog.tokens

    async def token_catalog(self) -> TokenCatalog:
        """
        Get the cached /tokens download: parsed tokens plus the upstream body

        Same cache entry as list_tokens(); the proxy relays ``body`` unchanged.
        """
        return await self._cache.get_or_load(
            ("tokens", self._chain_id),
            self._fetch_tokens,
            serve_stale_on_error=self._serve_stale_on_error,
        )

    async def _fetch_tokens(self) -> TokenCatalog:
        data = self._expect_dict("tokens", await self._request("tokens"))
        raw = data.get("tokens")
        if not isinstance(raw, dict):
            raise UpstreamError.invalid_response("tokens", "missing 'tokens' mapping")

        try:
            tokens = {address.lower(): Token.from_api(address, info) for address, info in raw.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise UpstreamError.invalid_response("tokens", f"malformed token entry: {e}") from e

        logger.info(f"Loaded {len(tokens)} tokens for chain {self._chain_id}")
        return TokenCatalog(tokens=MappingProxyType(tokens), body=MappingProxyType(data))

    async def get_token(self, address: str) -> Optional[Token]:
        """Look up one token by address (case-insensitive)"""
        tokens = await self.list_tokens()
        return tokens.get(address.lower())

    async def list_liquidity_sources(self) -> Tuple[LiquiditySource, ...]:
        """
        Get the liquidity sources (protocols) the aggregator routes through

        Cached with the same TTL and stale policy as the token list.
        """
        return await self._cache.get_or_load(
            ("liquidity-sources", self._chain_id),
            self._fetch_liquidity_sources,
            serve_stale_on_error=self._serve_stale_on_error,
        )

    async def _fetch_liquidity_sources(self) -> Tuple[LiquiditySource, ...]:
        data = self._expect_dict("liquidity-sources", await self._request("liquidity-sources"))
        try:
            sources = tuple(LiquiditySource.from_api(item) for item in data.get("protocols", []))
        except (KeyError, TypeError) as e:
            raise UpstreamError.invalid_response("liquidity-sources", f"malformed protocol entry: {e}") from e

        logger.info(f"Loaded {len(sources)} liquidity sources for chain {self._chain_id}")
        return sources

    # =========================================================================
    # Live operations (never cached)
    # =========================================================================

    async def get_quote(
        self,
        source: str,
        destination: str,
        amount: Union[str, int],
        options: Optional[QuoteOptions] = None,
    ) -> Quote:
        """
        Get a swap quote

        Args:
            source: Source token address
            destination: Destination token address
            amount: Amount in atomic units (positive integer string)
            options: Optional quote parameters

        Returns:
            Quote with destination_amount exactly as returned upstream

        Raises:
            InvalidParameters: Local validation failed (no request sent)
            RateLimited / UpstreamError / NetworkError: Request failed
        """
        options = options or QuoteOptions()
        amount = validate_amount(amount)
        validate_pair(source, destination)
        validate_options(options)

        params = {"src": source, "dst": destination, "amount": amount}
        params.update(options.to_params())

        data = self._expect_dict("quote", await self._request("quote", params))
        try:
            quote = Quote.from_api(source, destination, amount, data)
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError.invalid_response("quote", f"missing or malformed field {e}") from e

        logger.info(f"Quote {source[:10]}.. -> {destination[:10]}..: {amount} -> {quote.destination_amount}")
        return quote

    async def build_swap(
        self,
        source: str,
        destination: str,
        amount: Union[str, int],
        from_address: str,
        options: Optional[SwapOptions] = None,
    ) -> SwapTransaction:
        """
        Build an unsigned swap transaction

        The descriptor is only valid against current chain state; build it
        right before signing and never replay it.

        Args:
            source: Source token address
            destination: Destination token address
            amount: Amount in atomic units
            from_address: Wallet that will sign and send the transaction
            options: Optional swap parameters (slippage defaults to 1%)

        Returns:
            SwapTransaction carrying the expected destination amount
        """
        options = options or SwapOptions()
        amount = validate_amount(amount)
        validate_pair(source, destination)
        validate_address(from_address, "from_address")
        validate_options(options)

        params = {"src": source, "dst": destination, "amount": amount, "from": from_address}
        params.update(options.to_params())

        data = self._expect_dict("swap", await self._request("swap", params))
        try:
            tx = SwapTransaction.from_api(
                data["tx"],
                destination_amount=data.get("dstAmount", data.get("toAmount", data.get("toTokenAmount"))),
            )
        except (KeyError, TypeError) as e:
            raise UpstreamError.invalid_response("swap", f"missing or malformed field {e}") from e

        logger.info(f"Built swap transaction to {tx.to} (gas={tx.gas}, expected out={tx.destination_amount})")
        return tx

    async def get_allowance(self, token_address: str, owner_address: str) -> int:
        """
        Get the amount of a token the aggregator router may spend for owner

        Never cached: approvals can change out of band.

        Returns:
            Allowance in atomic units
        """
        validate_address(token_address, "token_address")
        validate_address(owner_address, "owner_address")

        params = {"tokenAddress": token_address, "walletAddress": owner_address}
        data = self._expect_dict("approve/allowance", await self._request("approve/allowance", params))
        try:
            return int(data["allowance"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError.invalid_response("approve/allowance", f"missing or malformed allowance {e}") from e

    async def build_approval(
        self,
        token_address: str,
        amount: Optional[Union[str, int]] = None,
    ) -> SwapTransaction:
        """
        Build an unsigned approval transaction for the aggregator router

        Args:
            token_address: Token to approve
            amount: Atomic amount to approve. None omits the parameter, which
                the aggregator treats as unlimited.
        """
        validate_address(token_address, "token_address")
        params = {"tokenAddress": token_address}
        if amount is not None:
            params["amount"] = validate_amount(amount)

        data = self._expect_dict("approve/transaction", await self._request("approve/transaction", params))
        try:
            return SwapTransaction.from_api(data)
        except (KeyError, TypeError) as e:
            raise UpstreamError.invalid_response("approve/transaction", f"missing or malformed field {e}") from e

    async def get_spender(self) -> str:
        """Get the aggregator router address that approvals must target"""
        data = self._expect_dict("approve/spender", await self._request("approve/spender"))
        address = data.get("address")
        if not address:
            raise UpstreamError.invalid_response("approve/spender", "missing 'address'")
        return address

    async def forward(self, endpoint: str, params: Optional[QueryParams] = None) -> Any:
        """
        Paced, retried GET of a whitelisted endpoint with verbatim parameters

        Used by the local proxy. Empty parameter values are dropped; repeated
        keys are kept in order when params is a sequence of pairs.

        Returns:
            Decoded JSON body
        """
        if endpoint not in ENDPOINTS:
            raise InvalidParameters.invalid("endpoint", endpoint, f"must be one of {sorted(ENDPOINTS)}")
        pairs = params.items() if isinstance(params, Mapping) else (params or ())
        clean: List[Tuple[str, str]] = [(key, value) for key, value in pairs if value not in (None, "")]
        return await self._request(endpoint, clean or None)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AggregatorClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"AggregatorClient(chain_id={self._chain_id}, base_url={self._base_url!r})"
