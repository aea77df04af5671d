"""
Cache Backend Base

Abstract interface for the read cache.
Implementations: Redis (production), InMemory (development and tests).

Contract:
- Reads are memoized for a bounded time, keyed by an explicit key
- One write can invalidate every read sharing a tag
- Rendered pages are invalidated by path

Every tag carries a generation counter bumped on invalidation. Memoized
entries record the generations seen before their loader ran and are
discarded when any of them moved, so a fill that races an invalidation can
never be served afterwards.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable

from cardapio.cache.keys import path_tag

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """The cache backend could not be reached or answered with an error."""


class CacheBackend(ABC):
    """Abstract cache backend. Values must be JSON-serializable."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int, tags: Iterable[str] = ()) -> None:
        """Store a value for `ttl` seconds, indexed under each tag."""

    @abstractmethod
    def generations(self, tags: list[str]) -> list[int]:
        """Current generation of each tag (0 for a tag never invalidated)."""

    @abstractmethod
    def invalidate_tags(self, *tags: str) -> int:
        """
        Bump the generation of each tag and drop every entry indexed under it.

        Returns:
            Number of entries removed
        """

    def invalidate_path(self, *paths: str) -> int:
        """Drop every entry registered for the rendered page paths."""
        return self.invalidate_tags(*(path_tag(p) for p in paths))

    def remember(
        self,
        key: str,
        ttl: int,
        tags: Iterable[str],
        loader: Callable[[], Any],
    ) -> Any:
        """
        Memoized read.

        Cache errors never fail a read: the loader result is served directly.
        None results are not cached.
        """
        tags = list(tags)
        try:
            cached = self.get(key)
            seen = self.generations(tags)
        except CacheError as e:
            logger.warning(f"Cache read failed for {key}, reading from store: {e}")
            return loader()

        if isinstance(cached, dict) and cached.get("generations") == seen:
            return cached["value"]

        value = loader()
        if value is None:
            return None

        try:
            self.set(key, {"value": value, "generations": seen}, ttl, tags)
        except CacheError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

        return value
