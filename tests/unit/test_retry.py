"""
Unit tests for the retry policy executor.
"""

import random

import pytest

from applyflow.models.config import RetryPolicy
from applyflow.utils.errors import (
    SchemaValidationError,
    ServiceError,
    ServiceTimeoutError,
    TransientServiceError,
)
from applyflow.utils.retry import backoff_delay, is_transient, run_with_retry


class CountingWork:
    """Zero-argument async work that fails a fixed number of times."""

    def __init__(self, failures: int, error: Exception, result: str = "ok"):
        self.failures = failures
        self.error = error
        self.result = result
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return self.result


class TestBackoffDelay:
    def test_exponential_schedule_without_jitter(self):
        policy = RetryPolicy(base_delay=2.0, multiplier=2.0, max_jitter=0.0)

        assert [backoff_delay(policy, n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_jitter_stays_within_window(self):
        policy = RetryPolicy(base_delay=2.0, multiplier=2.0, max_jitter=0.5)
        rng = random.Random(7)

        for attempt, base in ((1, 2.0), (2, 4.0), (3, 8.0)):
            for _ in range(50):
                delay = backoff_delay(policy, attempt, rng)
                assert base - 0.5 <= delay <= base + 0.5

    def test_delay_never_negative(self):
        policy = RetryPolicy(base_delay=0.1, multiplier=1.0, max_jitter=5.0)
        rng = random.Random(1)

        assert all(backoff_delay(policy, 1, rng) >= 0.0 for _ in range(100))


class TestIsTransient:
    def test_only_transient_service_errors_are_retried(self):
        assert is_transient(TransientServiceError("429"))
        assert not is_transient(ServiceError("boom"))
        assert not is_transient(ServiceTimeoutError("slow"))
        assert not is_transient(SchemaValidationError("bad json"))


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_always_transient_makes_max_retries_plus_one_attempts(
        self, sleep_recorder
    ):
        policy = RetryPolicy(max_retries=3, max_jitter=0.0)
        work = CountingWork(failures=100, error=TransientServiceError("rate limit"))

        with pytest.raises(TransientServiceError):
            await run_with_retry(work, policy, sleep=sleep_recorder)

        assert work.attempts == 4
        assert sleep_recorder.delays == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_non_transient_makes_exactly_one_attempt(self, sleep_recorder):
        work = CountingWork(failures=100, error=SchemaValidationError("missing name"))

        with pytest.raises(SchemaValidationError):
            await run_with_retry(work, RetryPolicy(), sleep=sleep_recorder)

        assert work.attempts == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, sleep_recorder):
        policy = RetryPolicy(max_retries=3, max_jitter=0.0)
        work = CountingWork(failures=2, error=TransientServiceError("quota"))

        result = await run_with_retry(work, policy, sleep=sleep_recorder)

        assert result == "ok"
        assert work.attempts == 3
        assert sleep_recorder.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_failure_propagates_unchanged(self, sleep_recorder):
        error = TransientServiceError("quota exhausted")
        work = CountingWork(failures=100, error=error)

        with pytest.raises(TransientServiceError) as exc_info:
            await run_with_retry(work, RetryPolicy(max_retries=1), sleep=sleep_recorder)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, sleep_recorder):
        work = CountingWork(failures=100, error=TransientServiceError("429"))

        with pytest.raises(TransientServiceError):
            await run_with_retry(work, RetryPolicy(max_retries=0), sleep=sleep_recorder)

        assert work.attempts == 1

    @pytest.mark.asyncio
    async def test_custom_classifier(self, sleep_recorder):
        work = CountingWork(failures=1, error=ServiceTimeoutError("slow"))

        result = await run_with_retry(
            work,
            RetryPolicy(max_jitter=0.0),
            classifier=lambda e: isinstance(e, ServiceTimeoutError),
            sleep=sleep_recorder,
        )

        assert result == "ok"
        assert work.attempts == 2
