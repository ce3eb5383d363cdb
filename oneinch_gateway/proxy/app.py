"""
Local REST proxy for browser front-ends

Exposes the aggregator endpoints under /api/* so a browser app never sees the
API key. Every call goes through one AggregatorClient, so the proxy inherits
its pacing, retries and token cache.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..api import AggregatorClient
from ..config import ProxyConfig, get_config
from ..errors import GatewayError, InvalidParameters, NetworkError, RateLimited, UpstreamError

logger = logging.getLogger(__name__)

# Route path -> (upstream endpoint, error summary)
FORWARDED_ROUTES = {
    "/api/quote": ("quote", "Failed to get quote"),
    "/api/swap": ("swap", "Failed to build swap"),
    "/api/approve/allowance": ("approve/allowance", "Failed to check allowance"),
    "/api/approve/transaction": ("approve/transaction", "Failed to build approval"),
    "/api/approve/spender": ("approve/spender", "Failed to get spender"),
    "/api/liquidity-sources": ("liquidity-sources", "Failed to fetch liquidity sources"),
}


def error_status(error: GatewayError) -> int:
    """Map a gateway error to the proxy's HTTP status"""
    if isinstance(error, RateLimited):
        return 429
    if isinstance(error, NetworkError):
        return 502
    if isinstance(error, InvalidParameters):
        return 400
    if isinstance(error, UpstreamError):
        # 200 here means the upstream answered with an undecodable body
        return error.status if error.status >= 400 else 502
    return 500


def error_response(summary: str, error: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=error_status(error),
        content={"error": summary, "details": str(error)},
    )


def create_app(
    client: Optional[AggregatorClient] = None,
    proxy_config: Optional[ProxyConfig] = None,
) -> FastAPI:
    """
    Create the proxy application

    Args:
        client: Gateway client to serve from (built from env config if None)
        proxy_config: CORS and bind settings (global config if None)

    Returns:
        Configured FastAPI application. The client is closed on shutdown.
    """
    proxy_config = proxy_config or get_config().proxy
    client = client or AggregatorClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"1inch proxy started for chain {client.chain_id}, CORS origin {proxy_config.cors_origin}")
        try:
            yield
        finally:
            await client.close()
            logger.info("1inch proxy stopped")

    app = FastAPI(title="1inch Gateway Proxy", version=__version__, lifespan=lifespan)
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[proxy_config.cors_origin],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        """Liveness probe; never touches the upstream"""
        return {
            "status": "OK",
            "message": "1inch API Proxy Server is running",
            "chain_id": client.chain_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/tokens")
    async def tokens():
        try:
            catalog = await client.token_catalog()
        except GatewayError as e:
            logger.error(f"Tokens request failed: {e}")
            return error_response("Failed to fetch tokens", e)
        logger.info(f"Returned {len(catalog.tokens)} tokens")
        # Upstream body as sent, served from the client cache
        return dict(catalog.body)

    for path, (endpoint, summary) in FORWARDED_ROUTES.items():
        app.add_api_route(path, _forwarding_route(client, endpoint, summary), methods=["GET"])

    return app


def _forwarding_route(client: AggregatorClient, endpoint: str, summary: str):
    async def route(request: Request):
        params = request.query_params.multi_items()
        logger.info(f"Proxying {endpoint} request: {params}")
        try:
            return await client.forward(endpoint, params)
        except GatewayError as e:
            logger.error(f"{summary}: {e}")
            return error_response(summary, e)

    route.__name__ = f"proxy_{endpoint.replace('/', '_').replace('-', '_')}"
    return route
