"""
Redis Cache Client
Thread-safe Redis client with connection pooling.
"""

import logging
import pickle
import threading
from typing import Any, Optional

import redis
from redis.connection import ConnectionPool

from ...config import Settings, get_settings

logger = logging.getLogger(__name__)


class RedisCacheError(Exception):
    """Exception raised for Redis cache errors."""

    pass


class RedisCache:
    """
    Redis cache client with connection pooling.

    Values are pickled. Read errors are logged and reported as cache
    misses; write errors are logged and reported as ``False``.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[redis.Redis] = None):
        """
        Initialize Redis cache client.

        Args:
            settings: Service settings (host, port, db, timeouts)
            client: Pre-built Redis client (skips pool creation)
        """
        self.settings = settings or get_settings()
        self.client: Optional[redis.Redis] = client
        self._client_lock = threading.Lock()

        if client is None:
            self.pool = ConnectionPool(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password,
                decode_responses=False,  # Pickled binary payloads
                max_connections=20,
                socket_timeout=self.settings.redis_timeout,
                socket_connect_timeout=self.settings.redis_timeout,
            )
            logger.info(
                f"Redis cache initialized: {self.settings.redis_host}:"
                f"{self.settings.redis_port} (db={self.settings.redis_db})"
            )
        else:
            self.pool = None

    def _get_client(self) -> redis.Redis:
        """
        Get Redis client (lazy initialization).

        Raises:
            RedisCacheError: If connection fails
        """
        if self.client is None:
            with self._client_lock:
                if self.client is None:
                    try:
                        client = redis.Redis(connection_pool=self.pool)
                        client.ping()
                    except redis.RedisError as e:
                        raise RedisCacheError(f"Failed to connect to Redis: {e}") from e
                    self.client = client
                    logger.info("Redis connection established")

        return self.client

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        try:
            data = self._get_client().get(key)
            if data is None:
                return None
            return pickle.loads(data)

        except (redis.RedisError, RedisCacheError) as e:
            logger.error(f"Redis GET error for key '{key}': {e}")
            return None
        except (pickle.UnpicklingError, EOFError, AttributeError, TypeError) as e:
            logger.error(f"Error deserializing cached data for key '{key}': {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache (will be pickled)
            ttl: Time-to-live in seconds (None = no expiration)

        Returns:
            True if successful
        """
        try:
            data = pickle.dumps(value)
            client = self._get_client()
            if ttl:
                client.setex(key, ttl, data)
            else:
                client.set(key, data)
            return True

        except (redis.RedisError, RedisCacheError) as e:
            logger.error(f"Redis SET error for key '{key}': {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete a key; True if it existed."""
        try:
            return bool(self._get_client().delete(key))
        except (redis.RedisError, RedisCacheError) as e:
            logger.error(f"Redis DELETE error for key '{key}': {e}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with prefix.

        Returns:
            Number of keys deleted
        """
        deleted = 0
        try:
            client = self._get_client()
            for key in client.scan_iter(match=f"{prefix}*", count=500):
                deleted += client.delete(key)
        except (redis.RedisError, RedisCacheError) as e:
            logger.error(f"Redis prefix delete error for '{prefix}': {e}")

        return deleted

    def count_prefix(self, prefix: str) -> int:
        try:
            return sum(1 for _ in self._get_client().scan_iter(match=f"{prefix}*", count=500))
        except (redis.RedisError, RedisCacheError) as e:
            logger.error(f"Redis prefix scan error for '{prefix}': {e}")
            return 0


# Global cache instance
_redis_cache: Optional[RedisCache] = None
_redis_cache_lock = threading.Lock()


def get_redis_cache(settings: Optional[Settings] = None) -> RedisCache:
    """Get global Redis cache instance."""
    global _redis_cache
    if _redis_cache is None:
        with _redis_cache_lock:
            if _redis_cache is None:
                _redis_cache = RedisCache(settings)
    return _redis_cache
