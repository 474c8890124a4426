"""
Disk-backed result cache on diskcache.

diskcache stores each value with its own expiry and treats expired rows as
misses on read. Once the cache directory grows past ``size_limit`` it culls
least recently used rows. Keys of the form ``<kind>:<owner>:<rest>`` are
tagged with ``<kind>:<owner>:`` so one owner's results are evicted with a
single indexed delete.
"""

import shutil
import tempfile
from typing import Any

from diskcache import Cache

from notegraph.core.cache.base import ResultCache
from notegraph.utils.exceptions import CacheError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

MEGABYTE = 1024 * 1024


def owner_tag(key: str) -> str | None:
    """Tag for a key's first two segments, or None for shorter keys."""
    parts = key.split(":", 2)
    if len(parts) < 3:
        return None
    return f"{parts[0]}:{parts[1]}:"


def is_owner_tag(prefix: str) -> bool:
    return prefix.endswith(":") and prefix.count(":") == 2


class DiskResultCache(ResultCache):
    """
    LRU result cache with per-entry TTL.

    Values are pickled, so callers always get their own copy back. Without
    a ``directory`` the cache lives in a temporary directory that is removed
    on close().
    """

    def __init__(
        self,
        directory: str | None = None,
        size_limit_mb: int = 64,
        cleanup_interval: int = 100,
    ):
        if size_limit_mb < 1:
            raise CacheError(f"size_limit_mb must be at least 1, got {size_limit_mb}")

        self._owns_directory = directory is None
        self.directory = directory or tempfile.mkdtemp(prefix="notegraph-cache-")
        self.cleanup_interval = max(1, cleanup_interval)

        self._cache = Cache(
            self.directory,
            size_limit=size_limit_mb * MEGABYTE,
            eviction_policy="least-recently-used",
            statistics=True,
        )
        self._puts_since_cleanup = 0
        self._invalidations = 0

    def get(self, key: str) -> Any | None:
        try:
            return self._cache.get(key, default=None, retry=True)
        except Exception as e:
            raise CacheError(f"Failed to read cache key {key}: {e}") from e

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise CacheError(f"ttl_seconds must be positive, got {ttl_seconds}")

        try:
            self._cache.set(key, value, expire=ttl_seconds, tag=owner_tag(key), retry=True)
        except Exception as e:
            raise CacheError(f"Failed to write cache key {key}: {e}") from e

        self._puts_since_cleanup += 1
        if self._puts_since_cleanup >= self.cleanup_interval:
            self._puts_since_cleanup = 0
            self.cleanup()

    def invalidate(self, key: str) -> bool:
        removed = self._cache.delete(key, retry=True)
        if removed:
            self._invalidations += 1
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        if is_owner_tag(prefix):
            removed = self._cache.evict(prefix, retry=True)
        else:
            removed = 0
            for key in list(self._cache.iterkeys()):
                if isinstance(key, str) and key.startswith(prefix):
                    if self._cache.delete(key, retry=True):
                        removed += 1

        self._invalidations += removed
        return removed

    def cleanup(self) -> int:
        removed = self._cache.expire(retry=True)
        if removed:
            logger.bind(removed=removed).debug(f"Cache sweep removed {removed} expired entries")
        return removed

    def clear(self) -> None:
        self._cache.clear(retry=True)

    def stats(self) -> dict[str, Any]:
        hits, misses = self._cache.stats()
        lookups = hits + misses
        return {
            "hits": hits,
            "misses": misses,
            "invalidations": self._invalidations,
            "size": len(self._cache),
            "volume_bytes": self._cache.volume(),
            "size_limit_bytes": self._cache.size_limit,
            "hit_rate": hits / lookups if lookups else 0.0,
        }

    def close(self) -> None:
        self._cache.close()
        if self._owns_directory:
            shutil.rmtree(self.directory, ignore_errors=True)

    def __len__(self) -> int:
        return len(self._cache)
