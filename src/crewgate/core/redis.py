"""Optional Redis client shared by the quota counters.

If Redis is not configured or unreachable, callers get ``None`` and are
expected to degrade to in-process state.
"""

from redis.asyncio import ConnectionPool, Redis

from src.crewgate.core.config import get_settings
from src.crewgate.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_connection_attempted: bool = False


async def get_redis() -> Redis | None:
    """Get the Redis client, connecting lazily on first use.

    A failed connection is not retried until ``close_redis`` resets the state.
    """
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        return _redis
    if _connection_attempted:
        return None

    _connection_attempted = True
    settings = get_settings()

    if not settings.redis_url:
        logger.info("Redis not configured (REDIS_URL not set)")
        return None

    try:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        _redis = Redis(connection_pool=_pool)
        await _redis.ping()  # type: ignore[misc]
        logger.info("Redis connected")
        return _redis
    except Exception as e:
        logger.warning("Redis connection failed, using in-process counters", error=str(e))
        if _redis is not None:
            await _redis.aclose()
            _redis = None
        if _pool is not None:
            await _pool.disconnect()
            _pool = None
        return None


async def close_redis() -> None:
    """Close the connection pool. Called on application shutdown."""
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        await _redis.aclose()
        logger.info("Redis connection closed")
    if _pool is not None:
        await _pool.disconnect()

    _redis = None
    _pool = None
    _connection_attempted = False


def reset_redis_state() -> None:
    """Forget the cached client so tests can reconnect on a fresh event loop."""
    global _pool, _redis, _connection_attempted
    _redis = None
    _pool = None
    _connection_attempted = False
