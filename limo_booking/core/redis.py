import redis
from redis.exceptions import RedisError

from limo_booking.core.config import REDIS_URL
from limo_booking.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def get_redis_client():
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not REDIS_URL:
        return None

    try:
        client = redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        client.ping()
        logger.info("Redis connected")
        _redis_client = client
        return _redis_client
    except RedisError as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


def claim_key(key: str, ttl: int = 60) -> bool:
    """Set ``key`` only if absent. True when this caller claimed it.

    Without Redis every claim succeeds, so callers must stay idempotent.
    """
    client = get_redis_client()
    if not client:
        return True
    try:
        return bool(client.set(key, "1", nx=True, ex=ttl))
    except RedisError as e:
        logger.warning(f"Redis claim failed for {key}: {e}")
        return True


def release_key(key: str):
    client = get_redis_client()
    if not client:
        return
    try:
        client.delete(key)
    except RedisError as e:
        logger.warning(f"Redis release failed for {key}: {e}")
