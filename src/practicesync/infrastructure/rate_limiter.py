"""
Token bucket rate limiter for remote API calls.

Hey future me – the remote workspace allows an average of about 3 requests per
second per integration and answers 429 with a Retry-After header when we go
over. A burst of creates on a big save is exactly how that happens.

ALGORITHM: Token Bucket
- Bucket holds max_tokens
- Tokens refill at refill_rate per second
- Every request consumes one token
- Empty bucket: wait until a token is available

ADAPTIVE BACKOFF on 429:
- First 429: initial_backoff_seconds (or Retry-After when sent)
- Every further 429 doubles the wait
- A successful request resets the backoff

USAGE:
    limiter = RateLimiter.for_notion()

    async with limiter:
        response = await client.post(url, json=body)

    # on 429:
    await limiter.handle_rate_limit_response(retry_after=2)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    max_tokens: int = 3  # Bucket size
    refill_rate: float = 3.0  # Tokens per second
    max_backoff_seconds: float = 60.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class RateLimiter:
    """Token Bucket Rate Limiter with adaptive backoff.

    Use it as an async context manager around each request. Create one per
    client instance: the internal asyncio.Lock belongs to the loop that first
    uses it.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        """Initialize tokens to max capacity."""
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def for_notion(cls) -> "RateLimiter":
        """Create rate limiter for the Notion API (about 3 requests/second)."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=3,
                refill_rate=3.0,
                max_backoff_seconds=60.0,
                initial_backoff_seconds=1.0,
            ),
            name="notion",
        )

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(
            float(self.config.max_tokens), self._tokens + elapsed * self.config.refill_rate
        )
        self._last_refill = now

    async def acquire(self) -> None:
        """Acquire one token, waiting if necessary."""
        async with self._lock:
            self._refill_tokens()

            while self._tokens < 1.0:
                wait_time = (1.0 - self._tokens) / self.config.refill_rate
                logger.debug(
                    "RateLimiter[%s]: No tokens available, waiting %.2fs",
                    self.name,
                    wait_time,
                )
                # Hold the lock while sleeping so waiters are served in order
                await asyncio.sleep(wait_time)
                self._refill_tokens()

            self._tokens -= 1.0

    async def handle_rate_limit_response(self, retry_after: float | None = None) -> float:
        """Handle a 429 response with adaptive backoff.

        Args:
            retry_after: Retry-After header value in seconds, if the API sent one

        Returns:
            The wait time actually used
        """
        async with self._lock:
            wait_time = float(retry_after) if retry_after is not None else self._current_backoff
            wait_time = min(wait_time, self.config.max_backoff_seconds)

            logger.warning(
                "RateLimiter[%s]: 429 Rate Limited! Waiting %.1fs before retry "
                "(backoff level: %.1fs)",
                self.name,
                wait_time,
                self._current_backoff,
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            # Drain the bucket so queued requests wait too
            self._tokens = 0.0

        await asyncio.sleep(wait_time)
        return wait_time

    def reset_backoff(self) -> None:
        """Reset backoff after a successful request."""
        self._current_backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        if exc_type is None:
            self.reset_backoff()

    @property
    def current_backoff(self) -> float:
        return self._current_backoff

    @property
    def available_tokens(self) -> float:
        """Current available tokens (for debugging)."""
        self._refill_tokens()
        return self._tokens


__all__ = ["RateLimiter", "RateLimiterConfig"]
