"""
Graph View - node/edge DTOs for visualization clients.

Only size and color hints are computed here; layout and rendering are the
client's job.
"""

import zlib
from datetime import datetime

from notegraph.core.analysis.text import plain_text
from notegraph.core.graph_store.base import GraphStore
from notegraph.models.graph import GraphData, GraphEdge, GraphNode
from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkDirection, LinkType
from notegraph.services.traversal_engine import TraversalEngine
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

SUBGRAPH_MAX_DEPTH = 3
SUBGRAPH_MAX_RELATED = 50
SEARCH_NODES_LIMIT = 20
PREVIEW_LENGTH = 100

TAG_PALETTE = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#FFA07A",
    "#87CEEB",
    "#98FB98",
    "#F0E68C",
)

EDGE_COLORS = {
    LinkType.REFERENCES: "#999999",
    LinkType.SUPPORTS: "#4CAF50",
    LinkType.CONTRADICTS: "#F44336",
    LinkType.BUILDS_ON: "#2196F3",
    LinkType.RELATED_TO: "#9C27B0",
    LinkType.INSPIRED_BY: "#FF9800",
    LinkType.CLARIFIES: "#00BCD4",
    LinkType.QUESTION: "#CDDC39",
    LinkType.ANSWER: "#8BC34A",
    LinkType.EXAMPLE: "#795548",
}
DEFAULT_COLOR = "#9E9E9E"


def preview(content: str, max_length: int = PREVIEW_LENGTH) -> str:
    """Markup-free content preview."""
    if len(content) <= max_length:
        return content
    text = plain_text(content)
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def node_size(note: Note, connection_count: int) -> int:
    return 30 + min(20, len(note.content) // 200) + min(15, connection_count * 3)


def node_color(note: Note, now: datetime | None = None) -> str:
    """Palette color of the first tag, else a color by age."""
    if note.tags:
        return TAG_PALETTE[zlib.crc32(note.tags[0].encode("utf-8")) % len(TAG_PALETTE)]

    age_days = ((now or datetime.now()).date() - note.created_at.date()).days
    if age_days < 7:
        return "#4CAF50"
    if age_days < 30:
        return "#2196F3"
    if age_days < 90:
        return "#FF9800"
    return DEFAULT_COLOR


def edge_width(strength: float) -> float:
    return 1.0 + strength * 3.0


class GraphView:
    """Builds GraphData for a whole graph, a neighbourhood or a search."""

    def __init__(self, graph_store: GraphStore, traversal: TraversalEngine):
        self.graph_store = graph_store
        self.traversal = traversal

    def to_node(self, note: Note, connection_count: int, **flags) -> GraphNode:
        return GraphNode(
            id=note.id,
            title=note.title,
            content=preview(note.content),
            tags=list(note.tags),
            created_at=note.created_at,
            updated_at=note.updated_at,
            connection_count=connection_count,
            size=node_size(note, connection_count),
            color=node_color(note),
            **flags,
        )

    @staticmethod
    def to_edge(link: Link) -> GraphEdge:
        return GraphEdge(
            id=link.id,
            source=link.source_id,
            target=link.target_id,
            type=link.type,
            context=link.context,
            strength=link.strength,
            color=EDGE_COLORS.get(link.type, "#999999"),
            width=edge_width(link.strength),
        )

    async def graph_data(self, user_id: str, max_nodes: int | None = None) -> GraphData:
        """
        The user's graph, optionally cut to the ``max_nodes`` most recent notes.

        Edges are kept only when both ends are in the node set.
        """
        notes = await self.graph_store.all_notes(user_id)
        if max_nodes is not None and max_nodes > 0:
            notes = notes[:max_nodes]

        degrees = await self.graph_store.get_degrees(user_id)
        node_ids = {note.id for note in notes}

        nodes = [self.to_node(note, sum(degrees.get(note.id, (0, 0)))) for note in notes]
        edges = [
            self.to_edge(link)
            for link in await self.graph_store.list_links(user_id)
            if link.source_id in node_ids and link.target_id in node_ids
        ]

        logger.bind(user_id=user_id).debug(
            f"Generated graph data with {len(nodes)} nodes and {len(edges)} edges"
        )
        return GraphData(nodes=nodes, edges=edges)

    async def subgraph(self, note_id: str, user_id: str, depth: int = 2) -> GraphData:
        """
        A note and its neighbourhood, center node marked selected.

        Depth is capped at SUBGRAPH_MAX_DEPTH and the neighbourhood at
        SUBGRAPH_MAX_RELATED notes.
        """
        depth = max(0, min(depth, SUBGRAPH_MAX_DEPTH))
        center = await self.traversal.require_owned(note_id, user_id)

        related = []
        if depth > 0:
            related = await self.traversal.related_notes(
                note_id,
                user_id,
                depth=depth,
                limit=SUBGRAPH_MAX_RELATED,
                direction=LinkDirection.BOTH,
            )

        members = {center.id: center}
        for item in related:
            members[item.note.id] = item.note

        degrees = await self.graph_store.get_degrees(user_id)
        nodes = [
            self.to_node(note, sum(degrees.get(note.id, (0, 0))), selected=note.id == center.id)
            for note in members.values()
        ]
        edges = [
            self.to_edge(link)
            for link in await self.graph_store.list_links(user_id)
            if link.source_id in members and link.target_id in members
        ]

        return GraphData(nodes=nodes, edges=edges, center_node_id=center.id)

    async def search_nodes(self, user_id: str, query: str) -> list[GraphNode]:
        """
        Highlighted nodes whose title, tags or content contain ``query``.

        Title matches come first, then most recently updated.
        """
        term = (query or "").strip().lower()
        if not term:
            return []

        matches = [
            note
            for note in await self.graph_store.all_notes(user_id)
            if term in note.title.lower()
            or term in note.content.lower()
            or any(term in tag for tag in note.tags)
        ]
        matches.sort(
            key=lambda n: (term not in n.title.lower(), -n.updated_at.timestamp(), n.id)
        )

        degrees = await self.graph_store.get_degrees(user_id)
        return [
            self.to_node(note, sum(degrees.get(note.id, (0, 0))), highlighted=True)
            for note in matches[:SEARCH_NODES_LIMIT]
        ]
