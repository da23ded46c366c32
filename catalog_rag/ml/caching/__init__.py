"""
Caching Module
Index bookkeeping for the vector store, in-process or Redis-backed.
"""

from .index_cache import IndexEntry, RedisVectorIndexCache, VectorIndexCache
from .redis_cache import RedisCache, RedisCacheError, get_redis_cache

__all__ = [
    "IndexEntry",
    "RedisCache",
    "RedisCacheError",
    "RedisVectorIndexCache",
    "VectorIndexCache",
    "get_redis_cache",
]
