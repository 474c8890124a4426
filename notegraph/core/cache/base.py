"""
Result cache interface.

Values are opaque to the cache; callers choose keys and TTLs (see
CachePolicy). Implementations must be safe under concurrent access.
"""

from abc import ABC, abstractmethod
from typing import Any


class ResultCache(ABC):
    """Abstract base class for result caches."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """
        Get a live value.

        Returns:
            Cached value, or None when absent or expired
        """
        pass

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value for ``ttl_seconds``."""
        pass

    @abstractmethod
    def invalidate(self, key: str) -> bool:
        """
        Drop one entry.

        Returns:
            True if an entry was removed
        """
        pass

    @abstractmethod
    def invalidate_prefix(self, prefix: str) -> int:
        """
        Drop every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        pass

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Hit/miss/eviction counters and current size."""
        pass

    def close(self) -> None:
        """Release backing resources."""
        pass
