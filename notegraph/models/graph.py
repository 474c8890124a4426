"""
Traversal results and graph DTOs.

These are what the core hands to the (out of scope) API and visualization
layers: plain node/edge records, no rendering logic beyond size and color
hints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkType


class RelatedNote(BaseModel):
    """A note reached during related-notes discovery."""

    note: Note
    distance: int = Field(..., ge=1, description="Hop count from the start note")


class PathResult(BaseModel):
    """Shortest path between two notes."""

    path: list[str] = Field(..., description="Note IDs from source to target")
    notes: list[Note] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)

    @property
    def distance(self) -> int:
        return len(self.path) - 1


class HubNote(BaseModel):
    """A highly connected note."""

    note: Note
    in_degree: int = 0
    out_degree: int = 0

    @property
    def degree(self) -> int:
        return self.in_degree + self.out_degree


class LinkSuggestion(BaseModel):
    """A candidate link discovered from content/tag overlap."""

    note: Note
    strength: float = Field(..., ge=0.0, le=1.0)
    suggested_type: LinkType = LinkType.REFERENCES


class NoteCluster(BaseModel):
    """A connected component of the user's graph."""

    note_ids: list[str]
    cohesion: float = Field(..., ge=0.0, le=1.0, description="Link density inside the cluster")

    @property
    def size(self) -> int:
        return len(self.note_ids)


class RelationshipAnalytics(BaseModel):
    """Aggregate statistics over a user's graph."""

    total_notes: int = 0
    total_links: int = 0
    average_links_per_note: float = 0.0
    most_connected: list[HubNote] = Field(default_factory=list)
    type_distribution: dict[str, int] = Field(default_factory=dict)
    orphan_count: int = 0


class GraphNode(BaseModel):
    """Visualization node for a note."""

    id: str
    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    connection_count: int = 0
    size: int = 30
    color: str = "#9E9E9E"
    selected: bool = False
    highlighted: bool = False


class GraphEdge(BaseModel):
    """Visualization edge for a link."""

    id: str
    source: str
    target: str
    type: LinkType = LinkType.REFERENCES
    context: str | None = None
    strength: float = 1.0
    color: str = "#999999"
    width: float = 2.0


class GraphData(BaseModel):
    """Nodes and edges of a (sub)graph."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    center_node_id: str | None = None

    @property
    def total_nodes(self) -> int:
        return len(self.nodes)

    @property
    def total_edges(self) -> int:
        return len(self.edges)
