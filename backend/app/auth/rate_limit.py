"""Login rate limiting: a fixed window of attempts per client IP.

The counter store is injected, so tests use the in-memory store with a fake
clock and multi-process deployments point every worker at the same Redis.
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

import redis.asyncio as redis
from fastapi import Request

from app.config import settings
from app.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class CounterStore(Protocol):
    async def increment(self, key: str, window_seconds: int) -> tuple[int, int]:
        """Count one hit on ``key``; return ``(hits in window, seconds until reset)``."""
        ...

    async def reset(self, key: str) -> None: ...


class MemoryCounterStore:
    """Process-local counters with expiry. Expired keys are dropped lazily."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._counters: dict[str, tuple[int, float]] = {}

    async def increment(self, key: str, window_seconds: int) -> tuple[int, int]:
        now = self._clock()
        self._purge(now)
        count, expires_at = self._counters.get(key, (0, now + window_seconds))
        count += 1
        self._counters[key] = (count, expires_at)
        return count, max(int(expires_at - now), 0)

    async def reset(self, key: str) -> None:
        self._counters.pop(key, None)

    def _purge(self, now: float) -> None:
        for key in [k for k, (_, expires_at) in self._counters.items() if expires_at <= now]:
            del self._counters[key]


class RedisCounterStore:
    """Counters shared across workers via ``INCR`` and ``EXPIRE NX`` in one transaction."""

    def __init__(self, client: redis.Redis, prefix: str = "ratelimit:") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        return cls(redis.from_url(url, decode_responses=True))

    async def increment(self, key: str, window_seconds: int) -> tuple[int, int]:
        full_key = self._prefix + key
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(full_key)
            # NX keeps the window anchored at the first hit.
            pipe.expire(full_key, window_seconds, nx=True)
            pipe.ttl(full_key)
            count, _, ttl = await pipe.execute()
        return int(count), int(ttl)

    async def reset(self, key: str) -> None:
        await self._client.delete(self._prefix + key)


class LoginRateLimiter:
    """Allows ``max_attempts`` login attempts per client in each window.

    Every attempt counts, successful or not.
    """

    def __init__(self, store: CounterStore, max_attempts: int, window_seconds: int) -> None:
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds

    async def hit(self, client_key: str) -> None:
        count, retry_after = await self.store.increment(f"login:{client_key}", self.window_seconds)
        if count > self.max_attempts:
            logger.warning("Login rate limit exceeded for %s (%d attempts)", client_key, count)
            raise RateLimitExceeded(retry_after=retry_after)

    async def reset(self, client_key: str) -> None:
        await self.store.reset(f"login:{client_key}")


def build_login_rate_limiter() -> LoginRateLimiter:
    if settings.rate_limit_backend == "redis":
        store: CounterStore = RedisCounterStore.from_url(settings.redis_url)
    else:
        store = MemoryCounterStore()
    return LoginRateLimiter(
        store,
        max_attempts=settings.login_rate_limit_attempts,
        window_seconds=settings.login_rate_limit_window_seconds,
    )


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_rate_limiter
