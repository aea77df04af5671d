"""
Cardapio Cache

Time-bounded memoized reads with tag-based and path-based invalidation.
Supports Redis (production) and InMemory (development).
"""

from cardapio.cache.base import CacheBackend, CacheError
from cardapio.cache.redis_cache import RedisCache
from cardapio.cache.stub import InMemoryCache

__all__ = [
    "CacheBackend",
    "CacheError",
    "RedisCache",
    "InMemoryCache",
]
