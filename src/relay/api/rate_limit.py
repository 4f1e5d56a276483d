"""Fixed-window admission control, applied before any authorization work.

Requests are counted per presented API key (client address when no key is
sent) in fixed windows, with a separate budget per route family. Health
probes are never limited. Over-limit requests get 429 with ``Retry-After``.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import redis.asyncio as aioredis
import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from relay.config import RelaySettings

logger = structlog.get_logger(__name__)

_EXEMPT_PATHS = ("/health", "/health/ready", "/health/live")


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class FixedWindowLimiter(ABC):
    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Count one request against ``key`` and decide whether it is admitted."""
        ...


def _decide(count: int, limit: int, now: float, window_seconds: int) -> RateLimitDecision:
    retry_after = max(1, int(window_seconds - (now % window_seconds)))
    return RateLimitDecision(
        allowed=count <= limit,
        limit=limit,
        remaining=max(0, limit - count),
        retry_after=retry_after,
    )


class InMemoryFixedWindowLimiter(FixedWindowLimiter):
    """Per-process counters. Suitable for a single worker and for tests.

    Counters whose window has closed are swept on the first hit after the
    sweep deadline, so one-off keys do not accumulate.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        # key -> (window index, count, window end)
        self._counters: dict[str, tuple[int, int, float]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def _sweep(self, now: float) -> None:
        self._counters = {key: entry for key, entry in self._counters.items() if entry[2] > now}

    async def hit(self, key, limit, window_seconds):
        now = self._clock()
        window = int(now // window_seconds)
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_seconds
            current_window, count, _ = self._counters.get(key, (window, 0, 0.0))
            if current_window != window:
                count = 0
            count += 1
            self._counters[key] = (window, count, (window + 1) * window_seconds)
        return _decide(count, limit, now, window_seconds)

    def reset(self):
        with self._lock:
            self._counters.clear()


class RedisFixedWindowLimiter(FixedWindowLimiter):
    """Counters shared by every worker through Redis (INCR + EXPIRE per window)."""

    def __init__(self, client: aioredis.Redis, clock=time.time, prefix: str = "relay:ratelimit"):
        self.client = client
        self._clock = clock
        self.prefix = prefix

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "RedisFixedWindowLimiter":
        client = aioredis.Redis.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_timeout_seconds,
            socket_connect_timeout=settings.redis_timeout_seconds,
        )
        return cls(client)

    async def hit(self, key, limit, window_seconds):
        now = self._clock()
        window = int(now // window_seconds)
        redis_key = f"{self.prefix}:{key}:{window}"

        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds + 1)
            count, _ = await pipe.execute()

        return _decide(int(count), limit, now, window_seconds)


def build_limiter(settings: RelaySettings) -> FixedWindowLimiter:
    if settings.rate_limit_backend == "redis":
        return RedisFixedWindowLimiter.from_settings(settings)
    if settings.rate_limit_backend == "memory":
        return InMemoryFixedWindowLimiter()
    raise ValueError(f"Unknown rate limit backend: {settings.rate_limit_backend}")


def limit_for(path: str, settings: RelaySettings) -> tuple[str, int]:
    """Return the budget name and request limit for a request path."""
    if path.endswith("/notifications/send"):
        return "send", settings.rate_limit_send
    if "/subscriptions" in path:
        return "subscriptions", settings.rate_limit_subscriptions
    return "default", settings.rate_limit_default


def client_key(request: Request) -> str:
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer ") and authorization[7:].strip():
        return f"api:{authorization[7:].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def rate_limit_middleware(limiter: FixedWindowLimiter, settings: RelaySettings):
    """Build the HTTP middleware enforcing ``limiter``."""

    async def enforce_rate_limit(request: Request, call_next):
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        budget, limit = limit_for(request.url.path, settings)
        key = f"{budget}:{client_key(request)}"

        try:
            decision = await limiter.hit(key, limit, settings.rate_limit_window_seconds)
        except RedisError:
            # Admission control unavailable: admit rather than fail every request
            logger.exception("Rate limiter unavailable, admitting request", path=request.url.path)
            return await call_next(request)

        if not decision.allowed:
            logger.warning("Rate limit exceeded", budget=budget, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too Many Requests",
                    "message": "Too many requests from this API key, please try again later.",
                    "code": "rate_limited",
                    "retryAfter": decision.retry_after,
                },
                headers={"Retry-After": str(decision.retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response

    return enforce_rate_limit
