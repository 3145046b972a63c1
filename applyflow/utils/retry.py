"""
Retry Policy Executor

Wraps a unit of asynchronous work with exponential backoff plus jitter.
Only failures the classifier labels transient are retried; everything else
propagates unchanged after a single attempt.

Example Usage:
    from applyflow.utils.retry import run_with_retry

    response = await run_with_retry(
        lambda: service.generate(request),
        policy=params.retry,
        operation="profile_extraction",
    )

Note:
    Calls to a generative service are not deterministic, so a retried call may
    return different output than the failed one would have. Callers must not
    depend on output being stable across attempts.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from applyflow.models.config import RetryPolicy
from applyflow.utils.errors import TransientServiceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def is_transient(exc: BaseException) -> bool:
    """Default failure classifier: only TransientServiceError is retried."""
    return isinstance(exc, TransientServiceError)


def backoff_delay(
    policy: RetryPolicy, attempt_number: int, rng: Optional[random.Random] = None
) -> float:
    """
    Compute the wait before the next attempt.

    Args:
        policy: Retry policy supplying base delay, multiplier and jitter window
        attempt_number: 1-based number of the attempt that just failed
        rng: Optional random source (module-level random when omitted)

    Returns:
        base_delay * multiplier ** (attempt_number - 1), shifted by a uniform
        jitter in [-max_jitter, +max_jitter], never negative

    Example:
        With base_delay=2.0, multiplier=2.0, max_jitter=0.5:
        attempt 1 -> 1.5..2.5s, attempt 2 -> 3.5..4.5s, attempt 3 -> 7.5..8.5s
    """
    source = rng or random
    delay = policy.base_delay * (policy.multiplier ** (attempt_number - 1))
    if policy.max_jitter:
        delay += source.uniform(-policy.max_jitter, policy.max_jitter)
    return max(0.0, delay)


class BackoffWithJitter(wait_base):
    """tenacity wait strategy delegating to backoff_delay."""

    def __init__(self, policy: RetryPolicy, rng: Optional[random.Random] = None):
        self.policy = policy
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        return backoff_delay(self.policy, retry_state.attempt_number, self.rng)


async def run_with_retry(
    work: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    classifier: Callable[[BaseException], bool] = is_transient,
    sleep: Sleep = asyncio.sleep,
    operation: str = "service_call",
    correlation_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> T:
    """
    Execute work, retrying transient failures with exponential backoff.

    Args:
        work: Zero-argument callable returning a fresh awaitable per attempt
        policy: Attempt budget and delay schedule
        classifier: Returns True for failures worth retrying
        sleep: Awaitable sleep used between attempts (injectable for tests)
        operation: Name used in log events
        correlation_id: Optional correlation ID for logging
        rng: Optional random source for jitter

    Returns:
        Result of the first successful attempt

    Raises:
        The last exception raised by work, unchanged, once it is classified
        non-transient or the attempt budget (max_retries + 1) is spent
    """
    log = logger.bind(operation=operation, correlation_id=correlation_id)

    def _log_before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        log.warning(
            "Transient failure, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=policy.max_attempts,
            delay=round(retry_state.next_action.sleep, 2)
            if retry_state.next_action
            else None,
            error=str(exc),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=BackoffWithJitter(policy, rng),
        retry=retry_if_exception(classifier),
        before_sleep=_log_before_sleep,
        reraise=True,
        sleep=sleep,
    )

    attempts = 0
    try:
        async for attempt in retrying:
            attempts = attempt.retry_state.attempt_number
            with attempt:
                result = await work()
    except Exception as e:
        log.warning(
            "Operation failed",
            attempts=attempts,
            transient=classifier(e),
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    if attempts > 1:
        log.info("Operation succeeded after retry", attempts=attempts)
    return result
