"""
Vector Index Cache
Remembers which catalog items have already been embedded and upserted.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..config import CacheConfig
from .redis_cache import RedisCache

logger = logging.getLogger(__name__)


@dataclass
class IndexEntry:
    """Cached embedding of one item."""

    vector: List[float]
    fingerprint: Optional[str] = None


class VectorIndexCache:
    """
    In-process record of indexed items.

    Entries are never evicted. When a fingerprint is given to ``has``, an
    entry recorded with a different fingerprint counts as not indexed, so
    the caller re-embeds changed items. All access is serialized by a lock.
    """

    def __init__(self):
        self._entries: Dict[int, IndexEntry] = {}
        self._lock = threading.Lock()

        # Stats
        self.hits = 0
        self.misses = 0

    def has(self, item_id: int, fingerprint: Optional[str] = None) -> bool:
        """
        Check whether an item is indexed.

        Args:
            item_id: Catalog item id
            fingerprint: Current content fingerprint (None = ignore content)

        Returns:
            True if the item is indexed and up to date
        """
        with self._lock:
            entry = self._entries.get(item_id)
            found = entry is not None and (
                fingerprint is None or entry.fingerprint == fingerprint
            )
            if found:
                self.hits += 1
            else:
                self.misses += 1
            return found

    def record(
        self, item_id: int, vector: Sequence[float], fingerprint: Optional[str] = None
    ) -> None:
        with self._lock:
            self._entries[item_id] = IndexEntry(list(vector), fingerprint)

    def get(self, item_id: int) -> Optional[List[float]]:
        with self._lock:
            entry = self._entries.get(item_id)
            return list(entry.vector) if entry is not None else None

    def invalidate(self, item_id: int) -> bool:
        with self._lock:
            return self._entries.pop(item_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Vector index cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            total = self.hits + self.misses
            return {
                "backend": "memory",
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / total if total else 0.0,
            }


class RedisVectorIndexCache(VectorIndexCache):
    """
    Index cache shared across processes through Redis.

    Entries are stored without TTL under ``{prefix}{item_id}``. Redis
    failures read as "not indexed", which only costs a redundant upsert.
    """

    def __init__(self, redis_cache: RedisCache, config: Optional[CacheConfig] = None):
        super().__init__()
        self.redis = redis_cache
        self.prefix = (config or CacheConfig()).redis_key_prefix

        logger.info(f"Redis vector index cache initialized (prefix={self.prefix})")

    def _key(self, item_id: int) -> str:
        return f"{self.prefix}{item_id}"

    def has(self, item_id: int, fingerprint: Optional[str] = None) -> bool:
        entry = self.redis.get(self._key(item_id))
        found = isinstance(entry, IndexEntry) and (
            fingerprint is None or entry.fingerprint == fingerprint
        )
        with self._lock:
            if found:
                self.hits += 1
            else:
                self.misses += 1
        return found

    def record(
        self, item_id: int, vector: Sequence[float], fingerprint: Optional[str] = None
    ) -> None:
        if not self.redis.set(self._key(item_id), IndexEntry(list(vector), fingerprint)):
            logger.warning(f"Could not record item {item_id} in Redis index cache")

    def get(self, item_id: int) -> Optional[List[float]]:
        entry = self.redis.get(self._key(item_id))
        return list(entry.vector) if isinstance(entry, IndexEntry) else None

    def invalidate(self, item_id: int) -> bool:
        return self.redis.delete(self._key(item_id))

    def clear(self) -> None:
        deleted = self.redis.delete_prefix(self.prefix)
        logger.info(f"Redis vector index cache cleared ({deleted} keys)")

    def __len__(self) -> int:
        return self.redis.count_prefix(self.prefix)

    def stats(self) -> dict:
        stats = super().stats()
        stats["backend"] = "redis"
        stats["entries"] = len(self)
        return stats
