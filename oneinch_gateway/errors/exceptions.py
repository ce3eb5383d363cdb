"""
Exception definitions for the 1inch gateway
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for gateway operations

    1xxx - Local validation errors
    2xxx - Upstream HTTP errors
    3xxx - Transport errors
    6xxx - Signer errors
    9xxx - Configuration errors
    """
    # Validation errors (never retried)
    INVALID_PARAMETERS = "1001"

    # Upstream errors
    UPSTREAM_RATE_LIMITED = "2001"
    UPSTREAM_CLIENT_ERROR = "2002"
    UPSTREAM_SERVER_ERROR = "2003"
    UPSTREAM_INVALID_RESPONSE = "2004"

    # Transport errors (recoverable)
    NETWORK_FAILED = "3001"
    NETWORK_TIMEOUT = "3002"

    # Signer errors
    SIGNER_FAILED = "6001"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class GatewayError(Exception):
    """
    Base exception for all gateway errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class InvalidParameters(GatewayError):
    """
    Local validation failure - never reaches the network

    Raised when:
    - Amount is not a positive integer string
    - Source and destination tokens are the same
    - An address is malformed
    - Slippage, fee or route parts are out of range
    """

    def __init__(self, message: str, field: Optional[str] = None, value: object = None):
        super().__init__(
            message,
            ErrorCode.INVALID_PARAMETERS,
            recoverable=False,
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value

    @classmethod
    def invalid(cls, field: str, value: object, reason: str) -> "InvalidParameters":
        return cls(f"Invalid {field} {value!r}: {reason}", field=field, value=value)


class UpstreamError(GatewayError):
    """
    Non-2xx response from the aggregator

    The body is kept verbatim as diagnostic text; it is never parsed.
    5xx responses are recoverable, 4xx responses are not.
    """

    def __init__(
        self,
        message: str,
        status: int,
        body: str = "",
        code: Optional[ErrorCode] = None,
        endpoint: Optional[str] = None,
    ):
        if code is None:
            code = ErrorCode.UPSTREAM_SERVER_ERROR if status >= 500 else ErrorCode.UPSTREAM_CLIENT_ERROR
        super().__init__(
            message,
            code,
            recoverable=status >= 500,
            details={"status": status, "body": body, "endpoint": endpoint},
        )
        self.status = status
        self.body = body
        self.endpoint = endpoint

    @classmethod
    def from_status(cls, status: int, body: str, endpoint: Optional[str] = None) -> "UpstreamError":
        return cls(
            f"HTTP {status} from /{endpoint}: {body[:200]}" if endpoint else f"HTTP {status}: {body[:200]}",
            status=status,
            body=body,
            endpoint=endpoint,
        )

    @classmethod
    def invalid_response(cls, endpoint: str, reason: str, body: str = "") -> "UpstreamError":
        return cls(
            f"Invalid response from /{endpoint}: {reason}",
            status=200,
            body=body,
            code=ErrorCode.UPSTREAM_INVALID_RESPONSE,
            endpoint=endpoint,
        )


class RateLimited(UpstreamError):
    """
    HTTP 429 persisted after all backoff retries
    """

    def __init__(self, message: str, body: str = "", endpoint: Optional[str] = None, attempts: int = 0):
        super().__init__(
            message,
            status=429,
            body=body,
            code=ErrorCode.UPSTREAM_RATE_LIMITED,
            endpoint=endpoint,
        )
        self.recoverable = True
        self.attempts = attempts
        self.details["attempts"] = attempts

    @classmethod
    def exhausted(cls, endpoint: str, attempts: int, body: str = "") -> "RateLimited":
        return cls(
            f"Rate limited on /{endpoint} after {attempts} attempts",
            body=body,
            endpoint=endpoint,
            attempts=attempts,
        )


class NetworkError(GatewayError):
    """
    Transport-level failure - typically recoverable

    Raised when:
    - Connection fails or is reset
    - DNS resolution fails
    - Request times out
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "NetworkError":
        return cls(
            f"Request to /{endpoint} failed: {error}",
            ErrorCode.NETWORK_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float, error: Exception = None) -> "NetworkError":
        return cls(
            f"Request to /{endpoint} timed out after {timeout_seconds}s",
            ErrorCode.NETWORK_TIMEOUT,
            original_error=error,
            endpoint=endpoint,
        )


class SignerError(GatewayError):
    """
    The external signing collaborator failed to sign or broadcast
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorCode.SIGNER_FAILED, original_error=original_error)

    @classmethod
    def failed(cls, reason: str, error: Exception = None) -> "SignerError":
        return cls(f"Signing failed: {reason}", original_error=error)


class ConfigurationError(GatewayError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str, hint: Optional[str] = None) -> "ConfigurationError":
        message = f"Missing required configuration: {param}"
        if hint:
            message = f"{message}. {hint}"
        return cls(message, ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)


class StaleCacheServed(UserWarning):
    """
    Informational: an expired cache entry was served after a refresh failed

    Emitted through ``warnings.warn`` only when the client is configured to
    serve stale data on error. Never raised.
    """

    def __init__(self, key: object, age_seconds: float, error: GatewayError):
        super().__init__(f"Serving stale cache entry {key!r} ({age_seconds:.1f}s old) after refresh failed: {error}")
        self.key = key
        self.age_seconds = age_seconds
        self.error = error
