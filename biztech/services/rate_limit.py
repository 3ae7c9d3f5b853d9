from __future__ import annotations
import time
from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import Request

from biztech.core.config import settings
from biztech.core.errors import RateLimitedError

@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_seconds: int

class TokenRateLimiter:
    def __init__(self, redis_url: str | None = None, *, client=None):
        self.r = client if client is not None else redis.from_url(redis_url, decode_responses=True)

    async def allow(self, *, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = int(time.time())
        window = now // window_seconds
        rkey = f"rl:{key}:{window}"

        # INCR with expiry
        val = await self.r.incr(rkey)
        if val == 1:
            await self.r.expire(rkey, window_seconds)

        remaining = max(0, limit - val)
        reset = window_seconds - (now % window_seconds)
        return RateLimitResult(allowed=val <= limit, remaining=remaining, reset_seconds=reset)


_limiter: TokenRateLimiter | None = None


def get_rate_limiter() -> TokenRateLimiter | None:
    global _limiter
    if not settings.rate_limit_enabled:
        return None
    if _limiter is None:
        _limiter = TokenRateLimiter(settings.redis_url)
    return _limiter


def rate_limit(scope: str, *, limit: int, window_seconds: int):
    """Per-client-IP throttle for unauthenticated auth endpoints."""

    async def _dependency(request: Request) -> None:
        limiter = get_rate_limiter()
        if limiter is None:
            return
        client_ip = request.client.host if request.client else "unknown"
        res = await limiter.allow(key=f"{scope}:{client_ip}", limit=limit, window_seconds=window_seconds)
        if not res.allowed:
            raise RateLimitedError(
                "Too many attempts, try again later",
                details=[{"retry_after_seconds": res.reset_seconds}],
            )

    return _dependency
