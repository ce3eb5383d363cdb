"""
Unit tests for retry logic module
"""

import sys
import unittest
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from oneinch_gateway.errors import (
    InvalidParameters,
    NetworkError,
    RateLimited,
    UpstreamError,
)
from oneinch_gateway.infra.retry import (
    CorrelationContext,
    RetryDecision,
    RetryPolicy,
    classify_error,
    execute_with_retry,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class ScriptedOperation:
    """Raises the scripted errors in order, then returns the result"""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def http(status):
    return UpstreamError.from_status(status, f"status {status}", "quote")


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_429_is_rate_limited(self):
        self.assertEqual(classify_error(http(429)), RetryDecision.RATE_LIMITED)

    def test_5xx_is_transient(self):
        for status in (500, 502, 503, 504):
            self.assertEqual(classify_error(http(status)), RetryDecision.TRANSIENT)

    def test_other_4xx_is_fatal(self):
        for status in (400, 401, 403, 404):
            self.assertEqual(classify_error(http(status)), RetryDecision.FATAL)

    def test_network_error_is_transient(self):
        self.assertEqual(classify_error(NetworkError.connection_failed("quote")), RetryDecision.TRANSIENT)
        self.assertEqual(classify_error(NetworkError.timeout("quote", 30)), RetryDecision.TRANSIENT)

    def test_validation_and_unknown_errors_are_fatal(self):
        self.assertEqual(classify_error(InvalidParameters("bad")), RetryDecision.FATAL)
        self.assertEqual(classify_error(ValueError("bug")), RetryDecision.FATAL)


class TestRetryPolicy(unittest.TestCase):

    def test_exponential_for_rate_limits(self):
        policy = RetryPolicy(max_retries=4, base_delay=1.0)
        delays = [policy.delay_for(RetryDecision.RATE_LIMITED, n) for n in range(1, 5)]
        self.assertEqual(delays, [1.0, 2.0, 4.0, 8.0])

    def test_linear_for_transient(self):
        policy = RetryPolicy(max_retries=3, base_delay=0.5)
        delays = [policy.delay_for(RetryDecision.TRANSIENT, n) for n in range(1, 4)]
        self.assertEqual(delays, [0.5, 1.0, 1.5])

    def test_max_attempts(self):
        self.assertEqual(RetryPolicy(max_retries=3).max_attempts, 4)
        self.assertEqual(RetryPolicy(max_retries=0).max_attempts, 1)


class TestExecuteWithRetry(unittest.IsolatedAsyncioTestCase):
    """Tests for execute_with_retry function"""

    def setUp(self):
        self.sleep = SleepRecorder()
        self.policy = RetryPolicy(max_retries=3, base_delay=1.0)

    async def run_op(self, operation):
        return await execute_with_retry(operation, "quote", self.policy, sleep=self.sleep)

    async def test_success_on_first_attempt(self):
        operation = ScriptedOperation()
        self.assertEqual(await self.run_op(operation), "ok")
        self.assertEqual(operation.calls, 1)
        self.assertEqual(self.sleep.delays, [])

    async def test_429_then_success(self):
        operation = ScriptedOperation(http(429))
        self.assertEqual(await self.run_op(operation), "ok")
        self.assertEqual(operation.calls, 2)
        self.assertEqual(self.sleep.delays, [1.0])

    async def test_429_exhausted_raises_rate_limited(self):
        operation = ScriptedOperation(*(http(429) for _ in range(4)))

        with self.assertRaises(RateLimited) as ctx:
            await self.run_op(operation)

        self.assertEqual(operation.calls, 4)
        self.assertEqual(self.sleep.delays, [1.0, 2.0, 4.0])
        self.assertEqual(ctx.exception.attempts, 4)
        self.assertEqual(ctx.exception.endpoint, "quote")
        self.assertEqual(ctx.exception.body, "status 429")
        self.assertIsInstance(ctx.exception.__cause__, UpstreamError)

    async def test_5xx_exhausted_raises_upstream_error(self):
        operation = ScriptedOperation(*(http(503) for _ in range(4)))

        with self.assertRaises(UpstreamError) as ctx:
            await self.run_op(operation)

        self.assertNotIsInstance(ctx.exception, RateLimited)
        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(operation.calls, 4)
        self.assertEqual(self.sleep.delays, [1.0, 2.0, 3.0])

    async def test_401_is_not_retried(self):
        operation = ScriptedOperation(http(401))

        with self.assertRaises(UpstreamError) as ctx:
            await self.run_op(operation)

        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(operation.calls, 1)
        self.assertEqual(self.sleep.delays, [])

    async def test_network_error_retried_linearly(self):
        operation = ScriptedOperation(NetworkError.timeout("quote", 30), NetworkError.connection_failed("quote"))
        self.assertEqual(await self.run_op(operation), "ok")
        self.assertEqual(self.sleep.delays, [1.0, 2.0])

    async def test_mixed_failures_use_their_own_backoff(self):
        operation = ScriptedOperation(http(502), http(429), http(429))
        self.assertEqual(await self.run_op(operation), "ok")
        # linear for retry 1, exponential for retries 2 and 3
        self.assertEqual(self.sleep.delays, [1.0, 2.0, 4.0])

    async def test_zero_retries(self):
        self.policy = RetryPolicy(max_retries=0)
        with self.assertRaises(RateLimited) as ctx:
            await self.run_op(ScriptedOperation(http(429)))
        self.assertEqual(ctx.exception.attempts, 1)

    async def test_non_gateway_errors_propagate(self):
        operation = ScriptedOperation(KeyError("dstAmount"))
        with self.assertRaises(KeyError):
            await self.run_op(operation)
        self.assertEqual(operation.calls, 1)


class TestCorrelationId(unittest.TestCase):
    """Tests for correlation ID functionality"""

    def test_generate_correlation_id(self):
        cid1 = generate_correlation_id()
        cid2 = generate_correlation_id()

        self.assertEqual(len(cid1), 12)
        self.assertNotEqual(cid1, cid2)

    def test_correlation_context_sets_and_resets(self):
        self.assertIsNone(get_correlation_id())

        with CorrelationContext("quote") as cid:
            self.assertTrue(cid.startswith("quote_"))
            self.assertEqual(get_correlation_id(), cid)

        self.assertIsNone(get_correlation_id())

    def test_nested_contexts(self):
        with CorrelationContext("outer") as outer:
            with CorrelationContext("inner") as inner:
                self.assertEqual(get_correlation_id(), inner)
            self.assertEqual(get_correlation_id(), outer)

    def test_set_correlation_id_token(self):
        token = set_correlation_id("manual")
        try:
            self.assertEqual(get_correlation_id(), "manual")
        finally:
            token.var.reset(token)
        self.assertIsNone(get_correlation_id())


if __name__ == "__main__":
    unittest.main()
