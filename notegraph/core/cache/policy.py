"""
Cache keys and adaptive TTLs.

Key layout:
    note:<note_id>
    search:<user_id>:<fingerprint>
    similar:<user_id>:<note_id>:<limit>
    suggestions:<user_id>:<note_id>

Everything derived from a user's whole note set sits under a
``<kind>:<user_id>:`` prefix so it can be dropped in one call.
"""

import hashlib
import json
from datetime import datetime, timedelta

from notegraph.config import CacheConfig
from notegraph.models.note import Note
from notegraph.models.search import SearchQuery

NOTE_PREFIX = "note"
SEARCH_PREFIX = "search"
SIMILAR_PREFIX = "similar"
SUGGESTIONS_PREFIX = "suggestions"

# Result kinds computed over all of a user's notes
USER_SCOPED_PREFIXES = (SEARCH_PREFIX, SIMILAR_PREFIX)


def note_key(note_id: str) -> str:
    return f"{NOTE_PREFIX}:{note_id}"


def user_prefix(kind: str, user_id: str) -> str:
    return f"{kind}:{user_id}:"


def search_fingerprint(query: SearchQuery, user_id: str) -> str:
    """
    Deterministic digest of everything that changes a search result.

    The query text is whitespace-normalized and lower-cased; tags are sorted.
    ``force_refresh`` is excluded so refreshed results land under the same key.
    """
    payload = {
        "user": user_id,
        "query": " ".join(query.query.split()).lower(),
        "tags": sorted({t.lower() for t in query.tags}),
        "filters": query.filters.model_dump(mode="json"),
        "offset": query.offset,
        "limit": query.limit,
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def search_key(query: SearchQuery, user_id: str) -> str:
    return f"{user_prefix(SEARCH_PREFIX, user_id)}{search_fingerprint(query, user_id)}"


def similar_key(user_id: str, note_id: str, limit: int) -> str:
    return f"{user_prefix(SIMILAR_PREFIX, user_id)}{note_id}:{limit}"


def suggestions_key(user_id: str, note_id: str) -> str:
    return f"{user_prefix(SUGGESTIONS_PREFIX, user_id)}{note_id}"


class CachePolicy:
    """TTL decisions for cached notes and search results."""

    def __init__(self, config: CacheConfig | None = None):
        self.config = config or CacheConfig()

    def note_ttl(self, note: Note, now: datetime | None = None) -> float:
        """
        Adaptive TTL for a note.

        Base TTL, halved for a note modified within the recent-update window,
        doubled for a note viewed more than the popularity threshold. Both
        multipliers can apply at once.
        """
        now = now or datetime.now()
        ttl = float(self.config.note_ttl_seconds)

        if now - note.updated_at < timedelta(minutes=self.config.recent_update_minutes):
            ttl *= 0.5
        if note.view_count > self.config.popular_view_count:
            ttl *= 2

        return ttl

    def search_ttl(self) -> float:
        return float(self.config.search_ttl_seconds)
