"""
Proxy entry point

Settings come from the environment (or a .env file) and can be overridden on
the command line:
    PROXY_PORT=3002 python -m oneinch_gateway.proxy --log-level DEBUG
"""

import argparse
import logging
from typing import List, Optional

import uvicorn

from ..config import get_config, setup_logging
from ..errors import ConfigurationError
from .app import create_app

logger = logging.getLogger("oneinch_gateway.proxy")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="python -m oneinch_gateway.proxy",
        description="Local REST proxy for the 1inch swap aggregator",
    )
    parser.add_argument("--host", default=config.proxy.host, help="Bind address (PROXY_HOST)")
    parser.add_argument("--port", type=int, default=config.proxy.port, help="Bind port (PROXY_PORT)")
    parser.add_argument(
        "--log-level",
        default=config.logging.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    log_config = get_config().logging
    log_config.log_level = args.log_level
    setup_logging(log_config)

    try:
        app = create_app()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Serving 1inch proxy on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
