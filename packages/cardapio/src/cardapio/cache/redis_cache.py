"""
Redis Cache Backend

Entries are JSON strings with an expiry. Each tag is a Redis set holding the
keys indexed under it, plus a generation counter; invalidating a tag bumps
the counter and deletes those keys and the set.
"""

import json
import logging
from typing import Any, Iterable

import redis

from cardapio.cache.base import CacheBackend, CacheError

logger = logging.getLogger(__name__)


class RedisCache(CacheBackend):
    """Production cache backed by Redis."""

    def __init__(self, client: redis.Redis, prefix: str = "cardapio"):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:cache:{key}"

    def _tag(self, tag: str) -> str:
        return f"{self.prefix}:tag:{tag}"

    def _generation(self, tag: str) -> str:
        return f"{self.prefix}:gen:{tag}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheError(str(e)) from e

        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int, tags: Iterable[str] = ()) -> None:
        full_key = self._key(key)
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.set(full_key, json.dumps(value), ex=ttl)
            for tag in tags:
                tag_key = self._tag(tag)
                pipe.sadd(tag_key, full_key)
                # Tag index lives at least as long as its newest entry
                pipe.expire(tag_key, ttl)
            pipe.execute()
        except redis.RedisError as e:
            raise CacheError(str(e)) from e

    def generations(self, tags: list[str]) -> list[int]:
        if not tags:
            return []
        try:
            values = self.client.mget([self._generation(tag) for tag in tags])
        except redis.RedisError as e:
            raise CacheError(str(e)) from e
        return [int(v) if v is not None else 0 for v in values]

    def invalidate_tags(self, *tags: str) -> int:
        removed = 0
        try:
            for tag in tags:
                tag_key = self._tag(tag)
                # Bump, snapshot and clear the index in one MULTI; keys added
                # afterwards land in a fresh set
                pipe = self.client.pipeline(transaction=True)
                pipe.incr(self._generation(tag))
                pipe.smembers(tag_key)
                pipe.delete(tag_key)
                _, members, _ = pipe.execute()
                if members:
                    removed += int(self.client.delete(*members))
        except redis.RedisError as e:
            raise CacheError(str(e)) from e

        logger.debug("Invalidated cache tags", extra={"tags": list(tags), "removed": removed})
        return removed
