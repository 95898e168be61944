"""
Core in-memory cache client with per-entry expiry
"""

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Hashable, Optional

from src.shared.utils import get_logger, utc_now

logger = get_logger(__name__)


class CacheEntry:
    """Cache entry with expiration time"""

    def __init__(self, value: Any, expires_at: datetime):
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class CoreCacheClient:
    """
    Single-process keyed TTL store.

    Expired entries are treated as absent on read but stay in memory until
    overwritten, deleted, or removed by ``clear_expired``.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._cache: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.RLock()
        self._clock = clock

        logger.info("Core cache client initialized with in-memory storage")

    def get(self, key: Hashable) -> Optional[Any]:
        """Get value from cache"""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            return entry.value

    def set(self, key: Hashable, value: Any, ttl_seconds: int) -> bool:
        """Set value in cache with TTL, replacing any previous entry"""
        with self._lock:
            self._cache[key] = CacheEntry(
                value, self._clock() + timedelta(seconds=ttl_seconds)
            )
            return True

    def delete(self, key: Hashable) -> bool:
        """Delete key from cache"""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def delete_where(self, predicate: Callable[[Hashable], bool]) -> int:
        """Delete keys matching a predicate"""
        with self._lock:
            keys_to_delete = [key for key in self._cache if predicate(key)]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    def clear_expired(self) -> int:
        """Remove expired entries"""
        with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._cache.items() if entry.is_expired(now)
            ]
            for key in expired_keys:
                del self._cache[key]

            if expired_keys:
                logger.info(f"Cleaned up {len(expired_keys)} expired cache entries")
            return len(expired_keys)



# Global core cache client instance
core_cache = CoreCacheClient()
