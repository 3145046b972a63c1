"""Client-side rate limiting for generative service calls.

Throttling before the request is issued keeps bursts (retries plus a search
immediately after onboarding) under the service quota, so fewer calls come
back with rate-limit errors in the first place.
"""

from aiolimiter import AsyncLimiter


class ServiceRateLimiter:
    """Per-model request throttle.

    Uses aiolimiter AsyncLimiter; each model name gets its own limiter since
    quotas are tracked per model.
    """

    def __init__(self, requests_per_minute: float = 15.0, time_period: float = 60.0):
        """Initialize the service rate limiter.

        Args:
            requests_per_minute: Maximum requests per time_period
            time_period: Time period in seconds (default: 60 seconds)
        """
        self.limiters: dict[str, AsyncLimiter] = {}
        self.max_rate = requests_per_minute
        self.time_period = time_period

    async def acquire(self, model: str | None = None) -> None:
        """Wait for a request slot for the given model.

        Args:
            model: Model name (None = service default model)
        """
        key = model or "default"

        if key not in self.limiters:
            self.limiters[key] = AsyncLimiter(
                max_rate=self.max_rate, time_period=self.time_period
            )

        await self.limiters[key].acquire()
