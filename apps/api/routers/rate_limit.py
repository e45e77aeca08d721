"""Per-client request quotas backed by Redis, with an in-process fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


class LocalQuota:
    """Fixed-window counters used when Redis is unreachable."""

    def __init__(self):
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def consume(self, key: str, limit: int, window_seconds: int) -> bool:
        now = time.time()
        async with self._lock:
            count, reset_at = self._counters.get(key, (0, now + window_seconds))
            if now >= reset_at:
                count = 0
                reset_at = now + window_seconds
            count += 1
            self._counters[key] = (count, reset_at)
            return count <= limit

    def clear(self) -> None:
        self._counters.clear()


local_quota = LocalQuota()


def _client_identifier(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return "unknown"


async def _consume_redis_quota(redis_client, key: str, window_seconds: int) -> int:
    current = await redis_client.incr(key)
    if current == 1:
        await redis_client.expire(key, window_seconds)
    return int(current)


def rate_limit(prefix: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Return a FastAPI dependency that enforces per-client request quotas."""

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        key = f"audit:rate:{prefix}:{_client_identifier(request)}"
        redis_client = getattr(request.app.state, "redis", None)

        allowed = None
        if redis_client is not None:
            try:
                allowed = await _consume_redis_quota(redis_client, key, window_seconds) <= limit
            except Exception as exc:
                logger.warning("Redis rate limit unavailable, using local counters: %s", exc)
        if allowed is None:
            allowed = await local_quota.consume(key, limit, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {prefix}. Try again later.",
            )

    return _dependency
