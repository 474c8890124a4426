"""
Note Engine - the public face of the knowledge graph core.

Brings together:
- Content analysis on every write
- Graph store persistence
- Result caching with adaptive TTLs
- Relevance search, similarity and traversal
- Event-driven invalidation and link discovery
"""

import asyncio
from typing import Any

from notegraph.config import Config
from notegraph.core.analysis.content_analyzer import ContentAnalyzer
from notegraph.core.cache.base import ResultCache
from notegraph.core.cache.disk_cache import DiskResultCache
from notegraph.core.cache.policy import (
    CachePolicy,
    note_key,
    search_key,
    similar_key,
    suggestions_key,
)
from notegraph.core.events import EventBus
from notegraph.core.graph_store.base import GraphStore
from notegraph.core.graph_store.factory import GraphStoreFactory
from notegraph.models.events import NoteEvent, NoteEventType
from notegraph.models.graph import (
    GraphData,
    GraphNode,
    HubNote,
    LinkSuggestion,
    NoteCluster,
    PathResult,
    RelatedNote,
    RelationshipAnalytics,
)
from notegraph.models.note import Note, NotePriority, NoteStatus, NoteUpdate
from notegraph.models.relationships import CONTEXT_MAX_LENGTH, Link, LinkType
from notegraph.models.search import (
    GraphSearchHit,
    SearchFilters,
    SearchQuery,
    SearchResult,
    SimilarNote,
)
from notegraph.services.graph_view import GraphView
from notegraph.services.invalidation_manager import InvalidationManager
from notegraph.services.relationship_insights import RelationshipInsights
from notegraph.services.search_engine import SearchEngine
from notegraph.services.traversal_engine import TraversalEngine
from notegraph.utils.exceptions import (
    AccessDeniedError,
    NotFoundError,
    ValidationError,
)
from notegraph.utils.id_generator import generate_link_id, generate_note_id
from notegraph.utils.locks import KeyedLock
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)


class NoteEngine:
    """
    Unified note engine.

    Features:
    - Create, read, update and delete notes with derived metrics
    - Typed, directed links with duplicate and self-link checks
    - Cached relevance search and similar-note discovery
    - Bounded traversal: related notes, shortest path, hubs, orphans
    - Link suggestions, clusters, analytics and graph DTOs

    Every operation is scoped to a ``user_id`` that the caller has already
    authenticated. Writers to the same note are serialized by a per-note lock.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        config: Config | None = None,
        cache: ResultCache | None = None,
        event_bus: EventBus | None = None,
    ):
        """
        Initialize Note Engine.

        Args:
            graph_store: Persistence backend
            config: Configuration object
            cache: Result cache (default: disk-backed, unless caching is disabled)
            event_bus: Event bus (default: a private one)
        """
        self.config = config or Config()
        self.graph_store = graph_store

        if cache is None and self.config.cache.enabled:
            cache = DiskResultCache(
                directory=self.config.cache.directory,
                size_limit_mb=self.config.cache.size_limit_mb,
                cleanup_interval=self.config.cache.cleanup_interval,
            )
        self.cache = cache
        self.policy = CachePolicy(self.config.cache)
        self.events = event_bus or EventBus()

        self.analyzer = ContentAnalyzer()
        self.traversal = TraversalEngine(graph_store, self.config.traversal)
        self.search_engine = SearchEngine(
            graph_store, self.config.search, traversal=self.traversal
        )
        self.insights = RelationshipInsights(graph_store, self.config.discovery)
        self.graph_view = GraphView(graph_store, self.traversal)

        self.invalidation: InvalidationManager | None = None
        if self.cache is not None:
            self.invalidation = InvalidationManager(
                cache=self.cache,
                graph_store=graph_store,
                insights=self.insights,
                policy=self.policy,
                config=self.config.discovery,
            )
            self.invalidation.register(self.events)

        self._locks = KeyedLock()

    @classmethod
    def from_config(cls, config: Config) -> "NoteEngine":
        """Build an engine on the configured graph backend."""
        return cls(GraphStoreFactory.create(config), config)

    async def initialize(self) -> None:
        """Initialize the store and start the cache sweep."""
        logger.info("Initializing Note Engine")

        await self.graph_store.initialize()
        logger.info("Graph store initialized")

        if self.invalidation is not None:
            self.invalidation.start_background_worker()
            logger.info("Cache cleanup worker started")

        logger.info("Note Engine ready")

    # ═══════════════════════════════════════════════════════════
    # NOTES
    # ═══════════════════════════════════════════════════════════

    async def create_note(
        self,
        title: str,
        content: str,
        tags: list[str] | None,
        user_id: str,
        summary: str | None = None,
        category: str = "",
        status: NoteStatus = NoteStatus.DRAFT,
        priority: NotePriority = NotePriority.NORMAL,
        is_favorite: bool = False,
        is_public: bool = False,
    ) -> Note:
        """
        Create a note.

        Args:
            title: Raw title
            content: Raw content
            tags: Caller tags (hashtags in content are added)
            user_id: Owner
            summary: Optional summary; generated when omitted

        Returns:
            The stored note

        Raises:
            ValidationError: If title, content or summary is invalid
        """
        if not user_id:
            raise ValidationError("user_id is required")

        analyzed = self.analyzer.analyze(title, content, tags, summary)

        note = Note(
            id=generate_note_id(),
            user_id=user_id,
            title=analyzed.title,
            content=analyzed.content,
            summary=analyzed.summary,
            tags=analyzed.tags,
            category=category,
            status=status,
            priority=priority,
            is_public=is_public,
            is_favorite=is_favorite,
            word_count=analyzed.word_count,
            reading_time=analyzed.reading_time,
            quality_score=analyzed.quality_score,
        )

        await self.graph_store.add_note(note)
        self._cache_note(note)
        await self.events.publish(
            NoteEvent(type=NoteEventType.NOTE_CREATED, user_id=user_id, note_id=note.id)
        )

        logger.bind(note_id=note.id, user_id=user_id).info(
            f"Created note {note.id} with {note.word_count} words for user {user_id}"
        )
        return note

    async def get_note(self, note_id: str, user_id: str) -> Note:
        """
        Read a note, recording the access.

        Raises:
            NotFoundError: If the note doesn't exist
            AccessDeniedError: If the note belongs to another user
        """
        async with self._locks.hold(note_id):
            cached = self._cache_get(note_key(note_id))
            if isinstance(cached, Note) and cached.is_owned_by(user_id):
                note = cached
                logger.debug(f"Cache hit for note {note_id}")
            else:
                note = await self.traversal.require_owned(note_id, user_id)

            note.mark_accessed()
            await self.graph_store.update_note(note)
            self._cache_note(note)

        return note

    async def update_note(self, note_id: str, update: NoteUpdate, user_id: str) -> Note:
        """
        Apply a partial update; content changes are re-analyzed.

        Raises:
            NotFoundError: If the note doesn't exist
            AccessDeniedError: If the note belongs to another user
            ValidationError: If an updated field is invalid
        """
        async with self._locks.hold(note_id):
            note = await self.traversal.require_owned(note_id, user_id)
            fields = update.provided_fields()
            content_changed = "content" in fields and update.content != note.content

            title = update.title if "title" in fields else note.title
            content = update.content if "content" in fields else note.content
            tags = update.tags if "tags" in fields else note.tags
            if "summary" in fields:
                summary = update.summary
            elif content_changed:
                summary = None
            else:
                summary = note.summary

            # Validates before anything is written
            analyzed = self.analyzer.analyze(title, content, tags, summary)

            changes: dict[str, Any] = {
                "title": analyzed.title,
                "content": analyzed.content,
                "summary": analyzed.summary,
                "tags": analyzed.tags,
                "word_count": analyzed.word_count,
                "reading_time": analyzed.reading_time,
                "quality_score": analyzed.quality_score,
            }
            for name in ("category", "status", "priority", "is_public", "is_favorite"):
                if name in fields:
                    changes[name] = getattr(update, name)

            updated = note.model_copy(update=changes)
            updated.touch()

            await self.graph_store.update_note(updated)
            self._cache_note(updated)

        await self.events.publish(
            NoteEvent(
                type=NoteEventType.NOTE_UPDATED,
                user_id=user_id,
                note_id=note_id,
                content_changed=content_changed,
            )
        )

        logger.bind(note_id=note_id, fields=sorted(fields)).info(
            f"Updated note {note_id} for user {user_id}"
        )
        return updated

    async def delete_note(self, note_id: str, user_id: str) -> None:
        """
        Delete a note and all links to or from it.

        Raises:
            NotFoundError: If the note doesn't exist
            AccessDeniedError: If the note belongs to another user
        """
        async with self._locks.hold(note_id):
            await self.traversal.require_owned(note_id, user_id)
            removed_links = await self.graph_store.delete_note(note_id)

        await self.events.publish(
            NoteEvent(type=NoteEventType.NOTE_DELETED, user_id=user_id, note_id=note_id)
        )

        logger.bind(note_id=note_id, user_id=user_id).info(
            f"Deleted note {note_id} and {removed_links} links"
        )

    async def list_notes(
        self,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
        filters: dict[str, Any] | None = None,
    ) -> list[Note]:
        """A page of the user's notes, most recently updated first."""
        limit = self.config.search.default_limit if limit is None else limit
        if limit < 1 or limit > self.config.search.max_limit:
            raise ValidationError(
                f"Limit must be between 1 and {self.config.search.max_limit}", {"limit": limit}
            )
        if offset < 0:
            raise ValidationError("Offset cannot be negative", {"offset": offset})

        return await self.graph_store.list_notes(user_id, filters=filters, limit=limit, offset=offset)

    # ═══════════════════════════════════════════════════════════
    # LINKS
    # ═══════════════════════════════════════════════════════════

    async def link_notes(
        self,
        source_id: str,
        target_id: str,
        link_type: LinkType | str,
        context: str | None,
        user_id: str,
        strength: float = 1.0,
    ) -> Link:
        """
        Create a directed link owned by the source note's owner.

        Raises:
            ValidationError: Self-link, duplicate link, bad type/strength/context
            NotFoundError: If either note doesn't exist
            AccessDeniedError: If either note belongs to another user
        """
        if source_id == target_id:
            raise ValidationError("Cannot link a note to itself", {"note_id": source_id})
        try:
            link_type = LinkType(link_type)
        except ValueError as e:
            raise ValidationError(
                f"Invalid link type: {link_type}",
                {"valid_types": [t.value for t in LinkType]},
            ) from e
        if not 0.0 <= strength <= 1.0:
            raise ValidationError("Strength must be between 0.0 and 1.0", {"strength": strength})
        if context is not None and len(context) > CONTEXT_MAX_LENGTH:
            raise ValidationError(
                f"Context exceeds {CONTEXT_MAX_LENGTH} characters", {"length": len(context)}
            )

        async with self._locks.hold(source_id):
            await self.traversal.require_owned(source_id, user_id)
            await self.traversal.require_owned(target_id, user_id)

            existing = await self.graph_store.get_link_between(source_id, target_id, link_type)
            if existing is not None:
                raise ValidationError(
                    f"Link {source_id} -> {target_id} of type {link_type.value} already exists",
                    {"link_id": existing.id},
                )

            link = await self.graph_store.add_link(
                Link(
                    id=generate_link_id(),
                    source_id=source_id,
                    target_id=target_id,
                    type=link_type,
                    strength=strength,
                    context=context,
                    user_id=user_id,
                )
            )

        await self.events.publish(
            NoteEvent(
                type=NoteEventType.LINK_CREATED,
                user_id=user_id,
                note_id=source_id,
                related_note_id=target_id,
                link_id=link.id,
            )
        )

        logger.bind(link_id=link.id, user_id=user_id).info(
            f"Linked {source_id} -> {target_id} ({link_type.value})"
        )
        return link

    async def unlink_notes(self, link_id: str, user_id: str) -> None:
        """
        Remove a link.

        Raises:
            NotFoundError: If the link doesn't exist
            AccessDeniedError: If the link belongs to another user
        """
        link = await self.graph_store.get_link(link_id)
        if link is None:
            raise NotFoundError(f"Link not found: {link_id}", {"link_id": link_id})
        if link.user_id != user_id:
            raise AccessDeniedError(link_id, user_id)

        async with self._locks.hold(link.source_id):
            await self.graph_store.delete_link(link_id)

        await self.events.publish(
            NoteEvent(
                type=NoteEventType.LINK_REMOVED,
                user_id=user_id,
                note_id=link.source_id,
                related_note_id=link.target_id,
                link_id=link_id,
            )
        )
        logger.bind(link_id=link_id, user_id=user_id).info(f"Removed link {link_id}")

    # ═══════════════════════════════════════════════════════════
    # SEARCH
    # ═══════════════════════════════════════════════════════════

    async def search(
        self,
        query_text: str,
        user_id: str,
        filters: SearchFilters | dict[str, Any] | None = None,
        tags: list[str] | None = None,
        offset: int = 0,
        limit: int | None = None,
        force_refresh: bool = False,
    ) -> SearchResult:
        """
        Cached relevance search.

        ``force_refresh`` skips the cache read but still stores the fresh result.

        Raises:
            ValidationError: Empty query, bad paging or limit above the cap
        """
        if isinstance(filters, dict):
            filters = SearchFilters(**filters)

        query = SearchQuery(
            query=query_text or "",
            tags=tags or [],
            filters=filters or SearchFilters(),
            offset=offset,
            limit=self.config.search.default_limit if limit is None else limit,
            force_refresh=force_refresh,
        )
        self.search_engine.validate(query)

        key = search_key(query, user_id)
        if not query.force_refresh:
            cached = self._cache_get(key)
            if isinstance(cached, SearchResult):
                logger.debug(f"Returning cached search result for query: '{query_text}'")
                return cached.model_copy(update={"cached": True})

        generation = self._generation(user_id)
        result = await self.search_engine.search(query, user_id)
        self._cache_put_current(key, result, self.policy.search_ttl(), user_id, generation)
        return result

    async def find_similar(self, note_id: str, user_id: str, limit: int = 10) -> list[SimilarNote]:
        """Notes of the same owner most similar to ``note_id``."""
        source = await self.traversal.require_owned(note_id, user_id)

        key = similar_key(user_id, note_id, limit)
        cached = self._cache_get(key)
        if cached is not None:
            return list(cached)

        generation = self._generation(user_id)
        similar = await self.search_engine.find_similar(source, limit=limit)
        self._cache_put_current(key, similar, self.policy.search_ttl(), user_id, generation)
        return similar

    async def search_from(
        self,
        note_id: str,
        query_text: str,
        user_id: str,
        max_depth: int | None = None,
    ) -> list[GraphSearchHit]:
        """
        Search only the notes reachable from ``note_id`` over outgoing links.

        Raises:
            ValidationError: Empty query or depth above traversal.max_depth
            NotFoundError: If the start note doesn't exist
            AccessDeniedError: If the start note belongs to another user
        """
        return await self.search_engine.search_from(note_id, query_text, user_id, max_depth)

    async def search_suggestions(self, partial: str, user_id: str, limit: int = 10) -> list[str]:
        """Auto-complete suggestions for a partial query."""
        return await self.search_engine.suggest(partial, user_id, limit)

    # ═══════════════════════════════════════════════════════════
    # TRAVERSAL
    # ═══════════════════════════════════════════════════════════

    async def related_notes(
        self,
        note_id: str,
        user_id: str,
        depth: int | None = None,
        limit: int | None = None,
    ) -> list[RelatedNote]:
        """Notes within ``depth`` hops of ``note_id`` in either direction."""
        return await self.traversal.related_notes(note_id, user_id, depth=depth, limit=limit)

    async def shortest_path(
        self,
        source_id: str,
        target_id: str,
        user_id: str,
        max_depth: int | None = None,
    ) -> PathResult:
        """
        Minimum-hop path over outgoing links.

        Raises:
            NotFoundError: If a note is unknown or no path exists within max_depth
        """
        result = await self.traversal.shortest_path(source_id, target_id, user_id, max_depth)
        if result is None:
            raise NotFoundError(
                f"No path from {source_id} to {target_id}",
                {"source_id": source_id, "target_id": target_id},
            )
        return result

    async def find_hubs(
        self, user_id: str, min_degree: int | None = None, limit: int | None = None
    ) -> list[HubNote]:
        return await self.traversal.find_hubs(user_id, min_degree=min_degree, limit=limit)

    async def find_orphans(self, user_id: str) -> list[Note]:
        return await self.traversal.find_orphans(user_id)

    # ═══════════════════════════════════════════════════════════
    # INSIGHTS AND GRAPH VIEWS
    # ═══════════════════════════════════════════════════════════

    async def suggest_links(
        self, note_id: str, user_id: str, limit: int | None = None
    ) -> list[LinkSuggestion]:
        """Link suggestions for a note, served from the discovery cache when warm."""
        source = await self.traversal.require_owned(note_id, user_id)
        limit = self.config.discovery.suggestion_limit if limit is None else limit

        cached = self._cache_get(suggestions_key(user_id, note_id))
        if cached is not None and limit <= self.config.discovery.suggestion_limit:
            return list(cached)[:limit]

        return await self.insights.suggest_links(source, limit=limit)

    async def relationship_strength(self, source_id: str, target_id: str, user_id: str) -> float:
        """
        Strength of the relationship from one owned note to another, in [0, 1].

        Raises:
            ValidationError: If both IDs name the same note
            NotFoundError: If either note doesn't exist
            AccessDeniedError: If either note belongs to another user
        """
        if source_id == target_id:
            raise ValidationError("Cannot compare a note with itself", {"note_id": source_id})

        source = await self.traversal.require_owned(source_id, user_id)
        target = await self.traversal.require_owned(target_id, user_id)
        return await self.insights.relationship_strength(source, target)

    async def find_clusters(self, user_id: str, min_size: int = 2) -> list[NoteCluster]:
        return await self.insights.find_clusters(user_id, min_size=min_size)

    async def relationship_analytics(self, user_id: str) -> RelationshipAnalytics:
        return await self.insights.analytics(user_id)

    async def graph_data(self, user_id: str, max_nodes: int | None = None) -> GraphData:
        return await self.graph_view.graph_data(user_id, max_nodes=max_nodes)

    async def subgraph(self, note_id: str, user_id: str, depth: int = 2) -> GraphData:
        return await self.graph_view.subgraph(note_id, user_id, depth=depth)

    async def search_nodes(self, user_id: str, query: str) -> list[GraphNode]:
        return await self.graph_view.search_nodes(user_id, query)

    async def get_statistics(self, user_id: str) -> dict[str, Any]:
        """
        Note, link and cache statistics.

        Returns:
            Statistics dictionary
        """
        analytics = await self.insights.analytics(user_id)
        return {
            "notes": {"total": analytics.total_notes, "orphans": analytics.orphan_count},
            "links": {
                "total": analytics.total_links,
                "by_type": analytics.type_distribution,
            },
            "cache": self.cache.stats() if self.cache is not None else {"enabled": False},
        }

    # ═══════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════

    async def close(self) -> None:
        """Stop the cache sweep, then close the cache and the store."""
        logger.info("Shutting down Note Engine")

        if self.invalidation is not None:
            self.invalidation.stop_background_worker()
            task = self.invalidation._worker_task
            if task is not None:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning(f"Error during worker shutdown: {e}")

        if self.cache is not None:
            try:
                self.cache.close()
            except Exception as e:
                logger.warning(f"Error closing result cache: {e}")

        await self.graph_store.close()
        logger.info("Note Engine shutdown complete")

    # ═══════════════════════════════════════════════════════════
    # CACHE HELPERS
    # ═══════════════════════════════════════════════════════════

    def _cache_get(self, key: str) -> Any | None:
        """Read from the cache; any cache failure reads as a miss."""
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.bind(key=key, error=str(e)).warning(f"Cache read failed for {key}: {e}")
            return None

    def _cache_put(self, key: str, value: Any, ttl_seconds: float) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(key, value, ttl_seconds)
        except Exception as e:
            logger.bind(key=key, error=str(e)).warning(f"Cache write failed for {key}: {e}")

    def _cache_note(self, note: Note) -> None:
        self._cache_put(note_key(note.id), note, self.policy.note_ttl(note))

    def _generation(self, user_id: str) -> int:
        if self.invalidation is None:
            return 0
        return self.invalidation.generation(user_id)

    def _cache_put_current(
        self, key: str, value: Any, ttl_seconds: float, user_id: str, generation: int
    ) -> None:
        """Cache a derived result unless the user's notes changed while it was computed."""
        if self._generation(user_id) != generation:
            logger.bind(key=key, user_id=user_id).debug(
                f"Skipping cache write for {key}: notes changed during computation"
            )
            return
        self._cache_put(key, value, ttl_seconds)
