# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: it only backs the entitlement decision cache. When it is
unreachable the application runs with ``get_redis() -> None`` and every
access check goes to Cassandra.
"""

import redis.asyncio as redis

from edupass.config import get_settings
from edupass.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize the Redis connection pool and verify it with a PING."""
    global _redis_client

    settings = get_settings()

    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance (``None`` when running without Redis)."""
    return _redis_client


def access_cache_key(student_id: object, kind: str, target_id: object) -> str:
    """Cache key for a positive entitlement decision."""
    return f"access:{student_id}:{kind}:{target_id}"


def access_cache_pattern(student_id: object) -> str:
    """Pattern matching every cached decision of one student."""
    return f"access:{student_id}:*"


async def invalidate_access_cache(client: redis.Redis | None, student_ids) -> int:
    """Drop cached access decisions of the given students.

    Cache failures are logged and ignored; the cache only ever holds
    positive decisions bounded by the granting batch's expiration.
    """
    if client is None:
        return 0
    removed = 0
    try:
        for student_id in student_ids:
            keys = [key async for key in client.scan_iter(match=access_cache_pattern(student_id))]
            if keys:
                removed += await client.delete(*keys)
    except redis.RedisError as e:
        logger.warning("access_cache_invalidation_failed", error=str(e))
    return removed
