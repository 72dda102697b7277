"""
Redis connection.

Only used for rate limiting and the detailed health check; every caller
degrades gracefully when Redis is unavailable. Progression state never
lives here.
"""
import logging
from typing import Optional
import redis
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from core.config import settings

logger = logging.getLogger(__name__)

# Redis connection pool (singleton)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client with connection pooling. Returns None if Redis unavailable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        client.ping()
        logger.info("Redis connection established")
        _redis_client = client
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Rate limiting disabled.")
        return None


def reset_redis_client() -> None:
    """Drop the cached client (tests, reconnect after failover)."""
    global _redis_client
    _redis_client = None
