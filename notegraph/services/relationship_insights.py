"""
Relationship insights over a user's whole graph.

- Link suggestions: unlinked notes with enough content/tag/neighbour overlap
- Relationship strength: the same overlap plus a bonus for a direct link
- Clusters: weakly connected components with a link-density score
- Analytics: totals, most connected notes and link type distribution
"""

from collections import Counter, defaultdict

from notegraph.config import DiscoveryConfig
from notegraph.core.analysis.text import jaccard, word_set
from notegraph.core.graph_store.base import GraphStore
from notegraph.models.graph import HubNote, LinkSuggestion, NoteCluster, RelationshipAnalytics
from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkType
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

MOST_CONNECTED_LIMIT = 10


class StrengthWeights:
    """Contributions to a suggested link's strength; the total is clamped to 1.0."""

    CONTENT = 0.3
    TAGS = 0.2
    DIRECT_LINK = 0.5

    # Raw overlap above which a suggestion is typed RELATED_TO
    RELATED_CONTENT = 0.3
    RELATED_TAGS = 0.5


class RelationshipInsights:
    """Discovery and analytics built on plain store reads."""

    def __init__(self, graph_store: GraphStore, config: DiscoveryConfig | None = None):
        self.graph_store = graph_store
        self.config = config or DiscoveryConfig()

    async def suggest_links(self, source: Note, limit: int | None = None) -> list[LinkSuggestion]:
        """
        Notes worth linking from ``source``.

        Notes the source already links to are skipped. Candidates must score
        strictly above discovery.suggestion_threshold.

        Args:
            source: Owned source note
            limit: Maximum suggestions (default discovery.suggestion_limit)

        Returns:
            Suggestions, strongest first
        """
        limit = self.config.suggestion_limit if limit is None else limit

        notes = await self.graph_store.all_notes(source.user_id)
        outgoing = self._outgoing_targets(await self.graph_store.list_links(source.user_id))
        linked = outgoing.get(source.id, set())

        suggestions = []
        for candidate in notes:
            if candidate.id == source.id or candidate.id in linked:
                continue

            overlap, content_overlap, tag_overlap = self._overlap(source, candidate, outgoing)
            strength = min(1.0, overlap)
            if strength <= self.config.suggestion_threshold:
                continue

            suggested_type = (
                LinkType.RELATED_TO
                if content_overlap > StrengthWeights.RELATED_CONTENT
                or tag_overlap > StrengthWeights.RELATED_TAGS
                else LinkType.REFERENCES
            )
            suggestions.append(
                LinkSuggestion(
                    note=candidate, strength=round(strength, 6), suggested_type=suggested_type
                )
            )

        suggestions.sort(key=lambda s: (-s.strength, -s.note.updated_at.timestamp()))

        logger.bind(note_id=source.id, user_id=source.user_id).debug(
            f"Found {len(suggestions)} link suggestions for {source.id}"
        )
        return suggestions[:limit]

    async def relationship_strength(self, source: Note, target: Note) -> float:
        """
        How strongly ``source`` relates to ``target``, in [0, 1].

        A link from source to target adds a fixed bonus on top of the
        weighted content, tag and shared-connection overlap used for link
        suggestions. The score is directional because only outgoing links
        count.
        """
        outgoing = self._outgoing_targets(await self.graph_store.list_links(source.user_id))
        strength, _, _ = self._overlap(source, target, outgoing)
        if target.id in outgoing.get(source.id, set()):
            strength += StrengthWeights.DIRECT_LINK

        return round(min(1.0, strength), 6)

    async def find_clusters(self, user_id: str, min_size: int = 2) -> list[NoteCluster]:
        """
        Weakly connected components of the user's graph.

        Args:
            user_id: Owner
            min_size: Smallest component to report

        Returns:
            Clusters, most cohesive first (ties: larger first)
        """
        notes = await self.graph_store.all_notes(user_id)
        links = await self.graph_store.list_links(user_id)

        adjacency: dict[str, set[str]] = defaultdict(set)
        for link in links:
            adjacency[link.source_id].add(link.target_id)
            adjacency[link.target_id].add(link.source_id)

        processed: set[str] = set()
        clusters = []
        for note in notes:
            if note.id in processed:
                continue

            component = {note.id}
            stack = [note.id]
            while stack:
                current = stack.pop()
                for neighbor in adjacency[current]:
                    if neighbor not in component:
                        component.add(neighbor)
                        stack.append(neighbor)
            processed |= component

            if len(component) >= min_size:
                clusters.append(
                    NoteCluster(
                        note_ids=sorted(component), cohesion=self._cohesion(component, links)
                    )
                )

        clusters.sort(key=lambda c: (-c.cohesion, -c.size))
        return clusters

    async def analytics(self, user_id: str) -> RelationshipAnalytics:
        """Totals, averages, most connected notes and link type counts."""
        notes = await self.graph_store.all_notes(user_id)
        links = await self.graph_store.list_links(user_id)
        degrees = await self.graph_store.get_degrees(user_id)

        total_notes = len(notes)
        connected = [
            HubNote(note=n, in_degree=degrees[n.id][0], out_degree=degrees[n.id][1])
            for n in notes
            if sum(degrees.get(n.id, (0, 0))) > 0
        ]
        most_connected = sorted(
            connected,
            key=lambda h: (-h.degree, -h.note.updated_at.timestamp()),
        )[:MOST_CONNECTED_LIMIT]

        return RelationshipAnalytics(
            total_notes=total_notes,
            total_links=len(links),
            average_links_per_note=len(links) / total_notes if total_notes else 0.0,
            most_connected=most_connected,
            type_distribution=dict(Counter(link.type.value for link in links)),
            orphan_count=sum(1 for n in notes if degrees.get(n.id, (0, 0)) == (0, 0)),
        )

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _overlap(
        self, source: Note, candidate: Note, outgoing: dict[str, set[str]]
    ) -> tuple[float, float, float]:
        """Weighted overlap (unclamped), plus the raw content and tag Jaccard."""
        content_overlap = jaccard(word_set(source.content), word_set(candidate.content))
        tag_overlap = jaccard(set(source.tags), set(candidate.tags))
        shared = self._shared_connections(
            outgoing.get(source.id, set()), outgoing.get(candidate.id, set())
        )
        weighted = (
            content_overlap * StrengthWeights.CONTENT
            + tag_overlap * StrengthWeights.TAGS
            + shared
        )
        return weighted, content_overlap, tag_overlap

    @staticmethod
    def _outgoing_targets(links: list[Link]) -> dict[str, set[str]]:
        targets: dict[str, set[str]] = defaultdict(set)
        for link in links:
            targets[link.source_id].add(link.target_id)
        return targets

    @staticmethod
    def _shared_connections(a: set[str], b: set[str]) -> float:
        total = len(a) + len(b)
        return len(a & b) / total if total else 0.0

    @staticmethod
    def _cohesion(component: set[str], links: list[Link]) -> float:
        size = len(component)
        if size < 2:
            return 0.0
        # Distinct ordered pairs, so several link types between two notes count once
        internal = {
            (link.source_id, link.target_id)
            for link in links
            if link.source_id in component and link.target_id in component
        }
        return min(1.0, len(internal) / (size * (size - 1)))
