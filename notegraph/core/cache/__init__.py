"""
Result cache: abstract interface, disk-backed LRU implementation and TTL policy.
"""

from notegraph.core.cache.base import ResultCache
from notegraph.core.cache.disk_cache import DiskResultCache
from notegraph.core.cache.policy import (
    CachePolicy,
    note_key,
    search_fingerprint,
    search_key,
    similar_key,
    suggestions_key,
    user_prefix,
)

__all__ = [
    "CachePolicy",
    "DiskResultCache",
    "ResultCache",
    "note_key",
    "search_fingerprint",
    "search_key",
    "similar_key",
    "suggestions_key",
    "user_prefix",
]
