"""
Retry Logic Helper Module

Retries aggregator requests according to the upstream failure class:
- HTTP 429: exponential backoff (1s, 2s, 4s ...), then RateLimited
- HTTP 5xx and transport failures: linear backoff (1s, 2s, 3s ...)
- other HTTP 4xx and local validation errors: no retry

Includes structured logging with correlation IDs for request tracing.
"""

import asyncio
import contextvars
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import GatewayError, NetworkError, RateLimited, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (task-local)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("quote") as cid:
            logger.info(f"[{cid}] Starting operation")
            data = await execute_with_retry(...)
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Args:
            prefix: Optional prefix for the correlation ID (e.g., "quote", "swap")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def _log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_attempts: Total attempts allowed
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_attempts is not None:
        parts.append(f"[{attempt}/{max_attempts}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


class RetryDecision(Enum):
    """How a failed attempt should be handled"""
    RATE_LIMITED = "rate_limited"  # exponential backoff
    TRANSIENT = "transient"        # linear backoff
    FATAL = "fatal"                # surface immediately


def classify_error(error: Exception) -> RetryDecision:
    """
    Classify an error raised by one request attempt

    Args:
        error: The exception to classify

    Returns:
        RetryDecision for the error
    """
    if isinstance(error, UpstreamError):
        if error.status == 429:
            return RetryDecision.RATE_LIMITED
        if error.status >= 500:
            return RetryDecision.TRANSIENT
        return RetryDecision.FATAL
    if isinstance(error, NetworkError):
        return RetryDecision.TRANSIENT
    return RetryDecision.FATAL


@dataclass(frozen=True)
class RetryPolicy:
    """
    Backoff parameters

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: First backoff delay in seconds
    """
    max_retries: int = 3
    base_delay: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, decision: RetryDecision, retry_number: int) -> float:
        """
        Backoff before the given retry (1-indexed)

        Exponential for rate limiting, linear for transient failures.
        """
        if decision == RetryDecision.RATE_LIMITED:
            return self.base_delay * (2 ** (retry_number - 1))
        return self.base_delay * retry_number


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Execute a request with automatic retry for recoverable upstream errors.

    Each call to ``operation`` is one attempt and must raise UpstreamError for
    non-2xx responses and NetworkError for transport failures. Pacing is the
    operation's concern, so every retry is paced like a fresh request.

    Args:
        operation: Coroutine factory performing one attempt
        operation_name: Name for logging purposes
        policy: Backoff parameters (defaults to RetryPolicy())
        sleep: Coroutine used for backoff delays

    Returns:
        The operation's result

    Raises:
        RateLimited: 429 persisted through every retry
        UpstreamError: 4xx (immediately) or 5xx (after retries)
        NetworkError: Transport failure persisted through every retry
    """
    policy = policy or RetryPolicy()
    max_attempts = policy.max_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            if attempt > 1:
                _log_with_correlation(
                    logging.INFO,
                    f"Succeeded after {attempt} attempts",
                    operation_name,
                    attempt,
                    max_attempts,
                )
            return result

        except GatewayError as e:
            decision = classify_error(e)

            if decision == RetryDecision.FATAL:
                _log_with_correlation(
                    logging.ERROR,
                    f"Failed: {e}",
                    operation_name,
                    attempt,
                    max_attempts,
                    error_type="fatal",
                )
                raise

            if attempt >= max_attempts:
                _log_with_correlation(
                    logging.ERROR,
                    f"Max retries ({policy.max_retries}) exceeded. Last error: {e}",
                    operation_name,
                    attempt,
                    max_attempts,
                    error_type=decision.value,
                )
                if decision == RetryDecision.RATE_LIMITED:
                    raise RateLimited.exhausted(
                        getattr(e, "endpoint", None) or operation_name,
                        attempts=attempt,
                        body=getattr(e, "body", ""),
                    ) from e
                raise

            delay = policy.delay_for(decision, attempt)
            _log_with_correlation(
                logging.WARNING,
                f"Recoverable error, retrying in {delay:.2f}s: {e}",
                operation_name,
                attempt,
                max_attempts,
                error_type=decision.value,
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{operation_name}: retry loop exited without result")
