"""Redis connection pool."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis

from trademind.config import get_settings

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    timeout = get_settings().redis_socket_timeout_seconds
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def get_redis_dep() -> AsyncGenerator[redis.Redis | None, None]:
    """Yield the Redis client, or None when Redis is not initialized.

    Redis only backs caching and notifications, so endpoints keep working without it.
    """
    yield _pool
