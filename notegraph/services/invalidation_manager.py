"""
Invalidation Manager - keeps cached results consistent with the graph.

Two strategies:
1. Event-driven: every note/link mutation drops every result derived from
   the owner's whole note set, then re-runs link discovery for created and
   updated notes. Deletes and link changes also drop the notes' own entries;
   creates and updates keep them, since the writer cached the fresh note
2. Proactive (background): periodic sweep of expired cache entries
"""

import asyncio

from notegraph.config import DiscoveryConfig
from notegraph.core.cache.base import ResultCache
from notegraph.core.cache.policy import (
    SUGGESTIONS_PREFIX,
    USER_SCOPED_PREFIXES,
    CachePolicy,
    note_key,
    suggestions_key,
    user_prefix,
)
from notegraph.core.events import EventBus
from notegraph.core.graph_store.base import GraphStore
from notegraph.models.events import NoteEvent, NoteEventType
from notegraph.services.relationship_insights import RelationshipInsights
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

DISCOVERY_EVENTS = (NoteEventType.NOTE_CREATED, NoteEventType.NOTE_UPDATED)


class InvalidationManager:
    """
    Subscribes to note events and invalidates cached results.

    Invalidation is coarse-grained: any change to a user's notes or links
    drops all of that user's search and similarity results.

    Each invalidation also bumps the user's generation. A result computed
    across a bump may already be stale, so writers compare the generation
    they started with before caching it.
    """

    def __init__(
        self,
        cache: ResultCache,
        graph_store: GraphStore,
        insights: RelationshipInsights,
        policy: CachePolicy | None = None,
        config: DiscoveryConfig | None = None,
    ):
        """
        Initialize invalidation manager.

        Args:
            cache: Result cache to keep consistent
            graph_store: Store used to reload notes for discovery
            insights: Link suggestion engine
            policy: TTL policy for cached suggestions
            config: Discovery settings
        """
        self.cache = cache
        self.graph_store = graph_store
        self.insights = insights
        self.policy = policy or CachePolicy()
        self.config = config or DiscoveryConfig()

        self._worker_task: asyncio.Task | None = None
        self._generations: dict[str, int] = {}

    def generation(self, user_id: str) -> int:
        """Number of invalidations seen for ``user_id``."""
        return self._generations.get(user_id, 0)

    def register(self, event_bus: EventBus) -> None:
        """Subscribe to every note event type."""
        event_bus.subscribe_all(self.handle_event)

    async def handle_event(self, event: NoteEvent) -> None:
        """
        React to one mutation.

        Args:
            event: Published note event
        """
        self.invalidate_for(
            event.user_id,
            event.note_id,
            event.related_note_id,
            keep_note=event.type in DISCOVERY_EVENTS,
        )

        if self.config.enabled and event.type in DISCOVERY_EVENTS:
            await self.rediscover(event.user_id, event.note_id)

    def invalidate_for(
        self,
        user_id: str,
        note_id: str,
        related_note_id: str | None = None,
        keep_note: bool = False,
    ) -> int:
        """
        Drop cached entries affected by a change to ``note_id``.

        Args:
            user_id: Owner of the changed notes
            note_id: Changed note
            related_note_id: Other end of a changed link
            keep_note: Leave ``note_id``'s own entry in place

        Returns:
            Number of entries removed
        """
        self._generations[user_id] = self.generation(user_id) + 1

        removed = 0
        changed_notes = (related_note_id,) if keep_note else (note_id, related_note_id)
        try:
            for changed in filter(None, changed_notes):
                removed += int(self.cache.invalidate(note_key(changed)))
            for kind in (*USER_SCOPED_PREFIXES, SUGGESTIONS_PREFIX):
                removed += self.cache.invalidate_prefix(user_prefix(kind, user_id))
        except Exception as e:
            # A stale entry still expires through its TTL
            logger.bind(note_id=note_id, user_id=user_id, error=str(e)).warning(
                f"Cache invalidation failed for {note_id}: {e}"
            )
            return removed

        logger.bind(note_id=note_id, user_id=user_id).debug(
            f"Invalidated {removed} cache entries for note {note_id}"
        )
        return removed

    async def rediscover(self, user_id: str, note_id: str) -> None:
        """Recompute link suggestions for a note and cache them."""
        note = await self.graph_store.get_note(note_id)
        if note is None or not note.is_owned_by(user_id):
            return

        generation = self.generation(user_id)
        suggestions = await self.insights.suggest_links(note)
        if self.generation(user_id) != generation:
            logger.bind(note_id=note_id, user_id=user_id).debug(
                f"Discarding link suggestions for {note_id}: notes changed during discovery"
            )
            return

        try:
            self.cache.put(suggestions_key(user_id, note_id), suggestions, self.policy.note_ttl(note))
        except Exception as e:
            logger.bind(note_id=note_id, error=str(e)).warning(
                f"Could not cache link suggestions for {note_id}: {e}"
            )

        logger.bind(note_id=note_id, user_id=user_id).info(
            f"Discovered {len(suggestions)} link suggestions for note {note_id}"
        )

    # ═══════════════════════════════════════════════════════════
    # BACKGROUND SWEEP
    # ═══════════════════════════════════════════════════════════

    def start_background_worker(self, interval_seconds: float = 60.0) -> None:
        """
        Start the periodic expiry sweep.

        Args:
            interval_seconds: Seconds between sweeps
        """
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._cleanup_worker(interval_seconds))

    def stop_background_worker(self) -> None:
        """Stop the periodic expiry sweep."""
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()

    async def _cleanup_worker(self, interval_seconds: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                removed = self.cache.cleanup()
                if removed:
                    logger.info(f"Cache sweep removed {removed} expired entries")
            except asyncio.CancelledError:
                logger.info("Cache cleanup worker stopped")
                break
            except Exception as e:
                logger.error(f"Error in cache cleanup worker: {e}")
