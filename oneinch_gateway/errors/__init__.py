"""
Error definitions for the 1inch gateway
"""

from .exceptions import (
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

__all__ = [
    "ErrorCode",
    "GatewayError",
    "InvalidParameters",
    "UpstreamError",
    "RateLimited",
    "NetworkError",
    "SignerError",
    "ConfigurationError",
    "StaleCacheServed",
]
