"""
Redis client utilities for appcore.
"""

import redis


def create_redis_client(url: str) -> redis.Redis:
    """
    Create a Redis client for a URL.

    Responses are decoded to str; callers store JSON text.
    """
    return redis.from_url(url, decode_responses=True)


def ping(client: redis.Redis) -> bool:
    """Return True if Redis answers, False on any connection error."""
    try:
        return bool(client.ping())
    except redis.RedisError:
        return False
