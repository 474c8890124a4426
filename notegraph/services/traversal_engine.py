"""
Traversal Engine - bounded breadth-first exploration of the link graph.

Every walk is explicit (queue + visited set) over the store's one-hop
``get_neighbors`` primitive, so depth bounds and tie-breaks do not depend on
the backend's query language.
"""

from collections import deque

from notegraph.config import TraversalConfig
from notegraph.core.graph_store.base import GraphStore
from notegraph.models.graph import HubNote, PathResult, RelatedNote
from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkDirection
from notegraph.utils.exceptions import AccessDeniedError, NotFoundError, ValidationError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)


class TraversalEngine:
    """
    Graph walks scoped to one owner.

    Unknown start notes raise NotFoundError and foreign ones raise
    AccessDeniedError, both before any walk begins.
    """

    def __init__(self, graph_store: GraphStore, config: TraversalConfig | None = None):
        """
        Initialize traversal engine.

        Args:
            graph_store: Store providing get_neighbors/get_degrees
            config: Depth, limit and hub bounds
        """
        self.graph_store = graph_store
        self.config = config or TraversalConfig()

    async def require_owned(self, note_id: str, user_id: str) -> Note:
        """Fetch a note and check its owner."""
        if not note_id:
            raise ValidationError("note_id is required")

        note = await self.graph_store.get_note(note_id)
        if note is None:
            raise NotFoundError(f"Note not found: {note_id}", {"note_id": note_id})
        if not note.is_owned_by(user_id):
            raise AccessDeniedError(note_id, user_id)
        return note

    def _check_depth(self, depth: int) -> None:
        if depth < 0:
            raise ValidationError("Depth cannot be negative", {"depth": depth})
        if depth > self.config.max_depth:
            raise ValidationError(
                f"Depth cannot exceed {self.config.max_depth}",
                {"depth": depth, "max_depth": self.config.max_depth},
            )

    def _check_limit(self, limit: int) -> None:
        if limit < 1 or limit > self.config.max_limit:
            raise ValidationError(
                f"Limit must be between 1 and {self.config.max_limit}", {"limit": limit}
            )

    # ═══════════════════════════════════════════════════════════
    # NEIGHBOURHOOD
    # ═══════════════════════════════════════════════════════════

    async def neighbors(
        self,
        note_id: str,
        user_id: str,
        direction: LinkDirection = LinkDirection.BOTH,
    ) -> list[tuple[Link, Note]]:
        """Direct neighbours of an owned note."""
        await self.require_owned(note_id, user_id)
        pairs = await self.graph_store.get_neighbors(note_id, direction)
        return [(link, note) for link, note in pairs if note.is_owned_by(user_id)]

    async def related_notes(
        self,
        note_id: str,
        user_id: str,
        depth: int | None = None,
        limit: int | None = None,
        direction: LinkDirection = LinkDirection.BOTH,
    ) -> list[RelatedNote]:
        """
        Notes reachable from ``note_id`` within ``depth`` hops.

        The start note is never included, so depth 0 yields nothing.

        Args:
            note_id: Start note
            user_id: Owner
            depth: Hop budget (default traversal.default_depth)
            limit: Maximum results (default traversal.default_limit)
            direction: Which links to follow

        Returns:
            Related notes by ascending distance, then most recently updated
        """
        depth = self.config.default_depth if depth is None else depth
        limit = self.config.default_limit if limit is None else limit
        self._check_depth(depth)
        self._check_limit(limit)

        await self.require_owned(note_id, user_id)

        found = await self._walk(note_id, user_id, depth, direction, stop_after=limit)

        logger.bind(note_id=note_id, depth=depth).debug(
            f"Related notes for {note_id}: {len(found)} within depth {depth}"
        )
        return found[:limit]

    async def reachable(
        self,
        note_id: str,
        user_id: str,
        depth: int | None = None,
        direction: LinkDirection = LinkDirection.OUTGOING,
    ) -> list[RelatedNote]:
        """
        Every owned note within ``depth`` hops, with no result cap.

        Same ordering as related_notes; the start note is excluded.
        """
        depth = self.config.default_depth if depth is None else depth
        self._check_depth(depth)
        await self.require_owned(note_id, user_id)
        return await self._walk(note_id, user_id, depth, direction)

    async def _walk(
        self,
        note_id: str,
        user_id: str,
        depth: int,
        direction: LinkDirection,
        stop_after: int | None = None,
    ) -> list[RelatedNote]:
        """Level-by-level BFS; stops at a level boundary once ``stop_after`` notes are found."""
        visited = {note_id}
        frontier = [note_id]
        found: list[RelatedNote] = []

        for distance in range(1, depth + 1):
            next_frontier = []
            for current in frontier:
                for _, neighbor in await self.graph_store.get_neighbors(current, direction):
                    if neighbor.id in visited or not neighbor.is_owned_by(user_id):
                        continue
                    visited.add(neighbor.id)
                    next_frontier.append(neighbor.id)
                    found.append(RelatedNote(note=neighbor, distance=distance))

            # Later levels only add farther notes, which sort after these
            if not next_frontier or (stop_after is not None and len(found) >= stop_after):
                break
            frontier = next_frontier

        found.sort(key=lambda r: (r.distance, -r.note.updated_at.timestamp(), r.note.id))
        return found

    # ═══════════════════════════════════════════════════════════
    # PATHS
    # ═══════════════════════════════════════════════════════════

    async def shortest_path(
        self,
        source_id: str,
        target_id: str,
        user_id: str,
        max_depth: int | None = None,
    ) -> PathResult | None:
        """
        Minimum-hop path following outgoing links.

        Args:
            source_id: Start note
            target_id: Destination note
            user_id: Owner of both notes
            max_depth: Hop budget (default traversal.max_depth)

        Returns:
            PathResult, or None when the target is unreachable within the budget
        """
        max_depth = self.config.max_depth if max_depth is None else max_depth
        self._check_depth(max_depth)

        source = await self.require_owned(source_id, user_id)
        target = await self.require_owned(target_id, user_id)

        if source_id == target_id:
            return PathResult(path=[source_id], notes=[source], links=[])

        # note_id -> (previous note_id, link used, note)
        parents: dict[str, tuple[str, Link, Note]] = {}
        visited = {source_id}
        queue: deque[tuple[str, int]] = deque([(source_id, 0)])

        while queue:
            current, hops = queue.popleft()
            if hops >= max_depth:
                continue

            for link, neighbor in await self.graph_store.get_neighbors(
                current, LinkDirection.OUTGOING
            ):
                if neighbor.id in visited or not neighbor.is_owned_by(user_id):
                    continue
                visited.add(neighbor.id)
                parents[neighbor.id] = (current, link, neighbor)

                if neighbor.id == target_id:
                    return self._build_path(source, target, parents)
                queue.append((neighbor.id, hops + 1))

        logger.bind(source_id=source_id, target_id=target_id).debug(
            f"No path from {source_id} to {target_id} within {max_depth} hops"
        )
        return None

    @staticmethod
    def _build_path(
        source: Note, target: Note, parents: dict[str, tuple[str, Link, Note]]
    ) -> PathResult:
        ids = [target.id]
        notes = [target]
        links: list[Link] = []

        current = target.id
        while current != source.id:
            previous, link, _ = parents[current]
            links.append(link)
            ids.append(previous)
            notes.append(source if previous == source.id else parents[previous][2])
            current = previous

        ids.reverse()
        notes.reverse()
        links.reverse()
        return PathResult(path=ids, notes=notes, links=links)

    # ═══════════════════════════════════════════════════════════
    # DEGREE ANALYSIS
    # ═══════════════════════════════════════════════════════════

    async def find_hubs(
        self,
        user_id: str,
        min_degree: int | None = None,
        limit: int | None = None,
    ) -> list[HubNote]:
        """
        Notes whose in+out degree reaches ``min_degree``.

        Returns:
            Hubs by descending degree, then most recently updated
        """
        min_degree = self.config.hub_threshold if min_degree is None else min_degree
        limit = self.config.default_limit if limit is None else limit
        self._check_limit(limit)

        degrees = await self.graph_store.get_degrees(user_id)
        candidates = {
            note_id: (inbound, outbound)
            for note_id, (inbound, outbound) in degrees.items()
            if inbound + outbound >= min_degree
        }
        if not candidates:
            return []

        hubs = []
        for note in await self.graph_store.all_notes(user_id):
            if note.id in candidates:
                inbound, outbound = candidates[note.id]
                hubs.append(HubNote(note=note, in_degree=inbound, out_degree=outbound))

        hubs.sort(key=lambda h: (-h.degree, -h.note.updated_at.timestamp(), h.note.id))
        return hubs[:limit]

    async def find_orphans(self, user_id: str) -> list[Note]:
        """Notes with no links in either direction, most recently updated first."""
        degrees = await self.graph_store.get_degrees(user_id)
        orphan_ids = {note_id for note_id, degree in degrees.items() if degree == (0, 0)}
        if not orphan_ids:
            return []

        return [n for n in await self.graph_store.all_notes(user_id) if n.id in orphan_ids]
