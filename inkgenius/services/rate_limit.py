"""Request rate limit: fixed window per client IP via Redis."""

import time

import redis.asyncio as aioredis

from inkgenius.core.config import get_settings
from inkgenius.core.logging import get_logger

log = get_logger(__name__)

KEY_PREFIX = "ratelimit"

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(get_settings().redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def _key(client_id: str, window_seconds: int) -> str:
    window = int(time.time()) // window_seconds
    return f"{KEY_PREFIX}:{client_id}:{window}"


async def hit(redis, client_id: str, limit: int, window_seconds: int) -> tuple[bool, int]:
    """
    Count one request; return (allowed, retry_after_seconds).
    Redis errors let the request through.
    """
    key = _key(client_id, window_seconds)
    try:
        n = await redis.incr(key)
        if n == 1:
            await redis.expire(key, window_seconds)
    except Exception as e:
        log.warning("rate_limit_unavailable", error=str(e))
        return True, 0
    if n > limit:
        return False, window_seconds - int(time.time()) % window_seconds
    return True, 0
