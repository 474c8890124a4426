"""
Relevance Search Engine.

Raw text and tag matching is delegated to the store; this module owns
candidate fusion, filtering, scoring, ordering, pagination and facets.
Graph-scoped search walks outgoing links from a start note instead of
asking the store for candidates.
Caching happens one level up, in NoteEngine.
"""

import time
from datetime import datetime, timedelta

from notegraph.config import SearchConfig
from notegraph.core.analysis.query_parser import QueryParser
from notegraph.core.analysis.similarity import SimilarityAnalyzer
from notegraph.core.graph_store.base import GraphStore
from notegraph.models.note import Note
from notegraph.models.search import (
    GraphSearchHit,
    ScoredNote,
    SearchQuery,
    SearchResult,
    SimilarNote,
)
from notegraph.services.traversal_engine import TraversalEngine
from notegraph.utils.exceptions import ValidationError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

MIN_SUGGESTION_LENGTH = 2


class ScoringWeights:
    """Additive relevance contributions; the total is clamped to 1.0."""

    TITLE_MATCH = 0.4
    CONTENT_MATCH = 0.3
    PER_TAG_MATCH = 0.2
    RECENT = 0.1
    FAVORITE = 0.05


class SearchEngine:
    """
    Query parsing, candidate retrieval and relevance ranking.

    Matching is substring containment, not fuzzy or edit-distance matching.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        config: SearchConfig | None = None,
        parser: QueryParser | None = None,
        similarity: SimilarityAnalyzer | None = None,
        traversal: TraversalEngine | None = None,
    ):
        self.graph_store = graph_store
        self.traversal = traversal or TraversalEngine(graph_store)
        self.config = config or SearchConfig()
        self.parser = parser or QueryParser()
        self.similarity = similarity or SimilarityAnalyzer()

    def validate(self, query: SearchQuery) -> None:
        """
        Reject malformed queries before touching the store.

        Raises:
            ValidationError: Empty query, bad offset, or limit outside 1..max_limit
        """
        if query.query is None or not query.query.strip():
            raise ValidationError("Search query cannot be empty")
        if query.offset < 0:
            raise ValidationError("Offset cannot be negative", {"offset": query.offset})
        if query.limit < 1:
            raise ValidationError("Limit must be at least 1", {"limit": query.limit})
        if query.limit > self.config.max_limit:
            raise ValidationError(
                f"Search limit cannot exceed {self.config.max_limit}",
                {"limit": query.limit, "max_limit": self.config.max_limit},
            )

    async def search(self, query: SearchQuery, user_id: str) -> SearchResult:
        """
        Run a search for one owner.

        Args:
            query: Search request
            user_id: Owner whose notes are searched

        Returns:
            Ranked page of results with facets over all matches
        """
        self.validate(query)
        started = time.perf_counter()

        candidates = await self._retrieve(query, user_id)
        matches = [note for note in candidates if self._passes_filters(note, query)]

        now = datetime.now()
        scoring_text = self.parser.scoring_text(query.query)
        scored = [ScoredNote(note=n, score=self.score(n, scoring_text, now)) for n in matches]
        scored.sort(key=lambda s: (-s.score, -s.note.updated_at.timestamp(), s.note.id))

        page = scored[query.offset : query.offset + query.limit]
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.bind(user_id=user_id, total=len(scored), returned=len(page)).info(
            f"Search '{query.query}' matched {len(scored)} notes"
        )

        return SearchResult(
            notes=page,
            total=len(scored),
            facets=self.facets(matches),
            query=query.query,
            search_time_ms=round(elapsed_ms, 3),
        )

    async def _retrieve(self, query: SearchQuery, user_id: str) -> list[Note]:
        """Union of full-text and tag candidates, deduplicated by ID."""
        parsed = self.parser.parse(query.query)
        candidates: dict[str, Note] = {}

        if parsed.has_full_text_terms():
            cap = self.config.candidate_limit
            found = await self.graph_store.search_text(user_id, parsed.full_text, limit=cap)
            if len(found) >= cap:
                logger.bind(user_id=user_id, candidate_limit=cap).warning(
                    f"Full-text lookup hit the {cap} candidate limit; results may be incomplete"
                )
            for note in found:
                candidates.setdefault(note.id, note)

        for tag in parsed.tags:
            for note in await self.graph_store.find_by_tag(user_id, tag):
                candidates.setdefault(note.id, note)

        # Store results are owner-scoped already; keep the check local too
        return [note for note in candidates.values() if note.is_owned_by(user_id)]

    @staticmethod
    def _passes_filters(note: Note, query: SearchQuery) -> bool:
        if not query.filters.matches(note):
            return False
        if query.tags:
            wanted = {t.strip().lstrip("#").lower() for t in query.tags if t.strip()}
            if wanted and not wanted.intersection(note.tags):
                return False
        return True

    def score(self, note: Note, scoring_text: str, now: datetime | None = None) -> float:
        """
        Relevance of a note for the (lower-cased) query text.

        Args:
            note: Candidate
            scoring_text: Normalized query text
            now: Reference time for the recency bonus

        Returns:
            Score in [0, 1]
        """
        now = now or datetime.now()
        score = 0.0

        if scoring_text and scoring_text in note.title.lower():
            score += ScoringWeights.TITLE_MATCH
        if scoring_text and scoring_text in note.content.lower():
            score += ScoringWeights.CONTENT_MATCH

        for tag in note.tags:
            if tag and tag.lower() in scoring_text:
                score += ScoringWeights.PER_TAG_MATCH

        if note.updated_at > now - timedelta(days=self.config.recency_days):
            score += ScoringWeights.RECENT
        if note.is_favorite:
            score += ScoringWeights.FAVORITE

        return round(min(1.0, score), 6)

    @staticmethod
    def matches(note: Note, scoring_text: str) -> bool:
        """Query text appears in the title, the content or one of the tags."""
        if not scoring_text:
            return False
        return (
            scoring_text in note.title.lower()
            or scoring_text in note.content.lower()
            or any(scoring_text in tag for tag in note.tags)
        )

    @staticmethod
    def facets(notes: list[Note]) -> dict[str, int]:
        """Counts by status and favorite flag over the unpaginated matches."""
        facets: dict[str, int] = {"total": len(notes)}
        for note in notes:
            key = f"status:{note.status.value}"
            facets[key] = facets.get(key, 0) + 1

        favorites = sum(1 for note in notes if note.is_favorite)
        facets["favorite:true"] = favorites
        facets["favorite:false"] = len(notes) - favorites
        return facets

    # ═══════════════════════════════════════════════════════════
    # GRAPH-SCOPED SEARCH
    # ═══════════════════════════════════════════════════════════

    async def search_from(
        self,
        note_id: str,
        query_text: str,
        user_id: str,
        max_depth: int | None = None,
    ) -> list[GraphSearchHit]:
        """
        Search the notes reachable from ``note_id`` over outgoing links.

        The start note itself is a candidate at distance 0. Only notes whose
        title, content or tags contain the query text are returned.

        Args:
            note_id: Start note
            query_text: Raw query text
            user_id: Owner of the start note
            max_depth: Hop budget (default traversal.default_depth)

        Returns:
            Hits by descending score, then ascending distance

        Raises:
            ValidationError: Empty query or depth outside the traversal bounds
            NotFoundError: If the start note doesn't exist
            AccessDeniedError: If the start note belongs to another user
        """
        if not query_text or not query_text.strip():
            raise ValidationError("Search query cannot be empty")

        start = await self.traversal.require_owned(note_id, user_id)
        reached = await self.traversal.reachable(note_id, user_id, depth=max_depth)

        now = datetime.now()
        scoring_text = self.parser.scoring_text(query_text)
        candidates = [(start, 0)] + [(r.note, r.distance) for r in reached]
        hits = [
            GraphSearchHit(note=note, score=self.score(note, scoring_text, now), distance=distance)
            for note, distance in candidates
            if self.matches(note, scoring_text)
        ]
        hits.sort(key=lambda h: (-h.score, h.distance, h.note.id))

        logger.bind(note_id=note_id, user_id=user_id, visited=len(candidates)).debug(
            f"Graph search from {note_id} matched {len(hits)} of {len(candidates)} notes"
        )
        return hits

    # ═══════════════════════════════════════════════════════════
    # SIMILARITY AND SUGGESTIONS
    # ═══════════════════════════════════════════════════════════

    async def find_similar(self, source: Note, limit: int = 10) -> list[SimilarNote]:
        """Score every other note of the source's owner against it."""
        if limit < 1:
            raise ValidationError("Limit must be at least 1", {"limit": limit})

        candidates = await self.graph_store.all_notes(source.user_id)
        return self.similarity.find_similar(
            source, candidates, limit=limit, min_score=self.config.min_similarity
        )

    async def suggest(self, partial: str, user_id: str, limit: int = 10) -> list[str]:
        """
        Auto-complete: matching tags (as ``#tag``) then matching titles.

        Args:
            partial: Text typed so far
            user_id: Owner
            limit: Maximum suggestions

        Returns:
            Suggestions; empty for input shorter than two characters
        """
        partial = (partial or "").strip().lower()
        if len(partial) < MIN_SUGGESTION_LENGTH or limit < 1:
            return []

        tag_prefix = partial.lstrip("#")
        tags: list[str] = []
        titles: list[str] = []
        for note in await self.graph_store.all_notes(user_id):
            tags.extend(f"#{t}" for t in note.tags if tag_prefix and t.startswith(tag_prefix))
            if partial in note.title.lower():
                titles.append(note.title)

        suggestions = list(dict.fromkeys(sorted(set(tags)) + titles))
        return suggestions[:limit]
