"""
In-Memory Cache Backend

Development backend with the same contract as RedisCache, without a server.
Useful for local development and testing.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Iterable

from cardapio.cache.base import CacheBackend

logger = logging.getLogger(__name__)


class InMemoryCache(CacheBackend):
    """
    In-process cache for development and testing.

    - Values are stored as JSON copies, like Redis would
    - Expiry follows an injectable monotonic clock
    - Every invalidated tag and path is recorded for inspection
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._tags: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()
        self.invalidated_tags: list[str] = []
        self.invalidated_paths: list[str] = []

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            raw, expires_at = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None

        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int, tags: Iterable[str] = ()) -> None:
        raw = json.dumps(value)
        with self._lock:
            self._entries[key] = (raw, self.clock() + ttl)
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)

    def generations(self, tags: list[str]) -> list[int]:
        with self._lock:
            return [self._generations.get(tag, 0) for tag in tags]

    def invalidate_tags(self, *tags: str) -> int:
        removed = 0
        with self._lock:
            for tag in tags:
                self.invalidated_tags.append(tag)
                self._generations[tag] = self._generations.get(tag, 0) + 1
                for key in self._tags.pop(tag, set()):
                    if self._entries.pop(key, None) is not None:
                        removed += 1

        logger.debug("[STUB] Invalidated cache tags", extra={"tags": list(tags), "removed": removed})
        return removed

    def invalidate_path(self, *paths: str) -> int:
        self.invalidated_paths.extend(paths)
        return super().invalidate_path(*paths)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
