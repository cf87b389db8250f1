"""Redis connection pool.

Redis backs rate limiting and the cross-worker distributor nonce lock. Outside
production the API runs without it: both features degrade to pass-through and
an in-process lock.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str, *, required: bool = True) -> None:
    """
    Connect and ping.

    Raises:
        RedisError: If Redis is unreachable and ``required`` is set.
    """
    global _pool  # noqa: PLW0603
    client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    try:
        await client.ping()
    except RedisError as e:
        await client.aclose()
        if required:
            raise
        logger.warning("redis_unavailable", error=str(e))
        return
    _pool = client


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client, raising if it was never connected."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_optional() -> redis.Redis | None:
    return _pool
