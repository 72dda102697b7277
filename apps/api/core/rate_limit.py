"""
Completion rate limiting.

Fixed-window counters in Redis keyed per (acting profile, client): a coach
hammering one client's pickup console never uses up the budget for their
other clients, and a client's own app is counted apart from their coach.

The window is opened and counted in one MULTI/EXEC round trip
(SET NX EX, then INCR), so concurrent requests cannot all read the same
count and slip past the limit. Fails open: if Redis is down, requests go
through.
"""
import time
import logging
from typing import NamedTuple
from uuid import UUID

from core.cache import get_redis_client
from core.config import settings
from core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimitState(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    reset_at: int


def completion_key(actor_id: UUID, client_id: UUID) -> str:
    return f"rate_limit:complete:{actor_id}:{client_id}"


def hit(key: str, limit: int, window: int = WINDOW_SECONDS) -> RateLimitState:
    """Count one request against `key` and report whether it is within `limit`."""
    now = int(time.time())
    redis_client = get_redis_client()

    if not redis_client:
        logger.warning("Redis unavailable, skipping rate limit check")
        return RateLimitState(True, limit, limit, now + window)

    try:
        pipe = redis_client.pipeline()
        pipe.set(key, 0, nx=True, ex=window)
        pipe.incr(key)
        pipe.ttl(key)
        _, count, ttl = pipe.execute()
    except Exception as e:
        # On error, allow request (fail open)
        logger.error(f"Rate limit check error: {e}")
        return RateLimitState(True, limit, limit, now + window)

    reset_at = now + (ttl if ttl and ttl > 0 else window)
    return RateLimitState(count <= limit, limit, max(0, limit - count), reset_at)


def enforce_completion_limit(actor_id: UUID, client_id: UUID) -> None:
    """Raise 429 once `actor_id` exceeds the completion budget for `client_id`."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    state = hit(completion_key(actor_id, client_id), settings.COMPLETION_RATE_LIMIT_PER_MINUTE)
    if state.allowed:
        return

    logger.warning(
        f"Completion rate limit exceeded for client {client_id}",
        extra={"extra_fields": {"actor_id": str(actor_id), "client_id": str(client_id)}},
    )
    raise RateLimitError(
        limit=state.limit,
        reset_at=state.reset_at,
        retry_after=max(0, state.reset_at - int(time.time())),
    )
