"""
Unit tests for the service rate limiter.
"""

import pytest

from applyflow.utils.rate_limiter import ServiceRateLimiter


@pytest.mark.asyncio
async def test_one_limiter_per_model():
    limiter = ServiceRateLimiter(requests_per_minute=30)

    await limiter.acquire()
    await limiter.acquire("claude-sonnet-4-5")
    await limiter.acquire("claude-sonnet-4-5")

    assert set(limiter.limiters) == {"default", "claude-sonnet-4-5"}
    assert limiter.limiters["default"].max_rate == 30


@pytest.mark.asyncio
async def test_acquire_waits_on_limiter(mocker):
    limiter = ServiceRateLimiter(requests_per_minute=5, time_period=1.0)
    await limiter.acquire("model")
    acquire = mocker.patch.object(limiter.limiters["model"], "acquire")

    await limiter.acquire("model")

    acquire.assert_awaited_once()
