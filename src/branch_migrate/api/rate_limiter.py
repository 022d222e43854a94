"""Rate limiting for GitHub API calls."""

import asyncio
import time


class RateLimiter:
    """Token bucket limiter that also honours GitHub back-off hints."""

    def __init__(self, requests_per_second: float = 10.0):
        """Initialize rate limiter.

        Args:
            requests_per_second: Sustained request rate and bucket size
        """
        self.requests_per_second = requests_per_second
        self.tokens = requests_per_second
        self.last_update = time.monotonic()
        self.blocked_until = 0.0
        self._lock = asyncio.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self.last_update
        self.tokens = min(
            self.requests_per_second,
            self.tokens + elapsed * self.requests_per_second,
        )
        self.last_update = now

    def _reserve(self) -> float:
        """Take a token and return how long the caller must wait first."""
        now = time.monotonic()
        self._refill(now)

        wait = max(0.0, self.blocked_until - now)
        if self.tokens < 1:
            wait = max(wait, (1 - self.tokens) / self.requests_per_second)
        # Balance may go negative; tokens earned while waiting are already spent
        self.tokens -= 1
        return wait

    async def acquire(self) -> None:
        """Wait until a request may be sent."""
        async with self._lock:
            wait = self._reserve()
            if wait > 0:
                await asyncio.sleep(wait)

    def acquire_sync(self) -> None:
        """Blocking variant of :meth:`acquire`."""
        wait = self._reserve()
        if wait > 0:
            time.sleep(wait)

    def defer(self, seconds: float) -> None:
        """Hold back every request for ``seconds`` (from Retry-After)."""
        if seconds <= 0:
            return
        self.blocked_until = max(self.blocked_until, time.monotonic() + seconds)
