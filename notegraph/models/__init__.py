"""
Data models for NoteGraph.

Core models:
- Note, NoteUpdate: User-owned documents and partial updates
- NoteStatus, NotePriority: Note enums
- Link, LinkType, LinkDirection: Typed, directed links
- SearchQuery, SearchFilters, ParsedQuery, SearchResult, ScoredNote, GraphSearchHit, SimilarNote: Search
- RelatedNote, PathResult, HubNote, LinkSuggestion, NoteCluster, RelationshipAnalytics: Traversal
- GraphNode, GraphEdge, GraphData: Visualization DTOs
- NoteEvent, NoteEventType: Mutation events
"""

from notegraph.models.events import NoteEvent, NoteEventType
from notegraph.models.graph import (
    GraphData,
    GraphEdge,
    GraphNode,
    HubNote,
    LinkSuggestion,
    NoteCluster,
    PathResult,
    RelatedNote,
    RelationshipAnalytics,
)
from notegraph.models.note import Note, NotePriority, NoteStatus, NoteUpdate
from notegraph.models.relationships import Link, LinkDirection, LinkType
from notegraph.models.search import (
    GraphSearchHit,
    ParsedQuery,
    ScoredNote,
    SearchFilters,
    SearchQuery,
    SearchResult,
    SimilarNote,
)

__all__ = [
    # Note models
    "Note",
    "NoteUpdate",
    "NoteStatus",
    "NotePriority",
    # Link models
    "Link",
    "LinkType",
    "LinkDirection",
    # Search models
    "SearchQuery",
    "SearchFilters",
    "ParsedQuery",
    "SearchResult",
    "GraphSearchHit",
    "ScoredNote",
    "SimilarNote",
    # Traversal and graph models
    "RelatedNote",
    "PathResult",
    "HubNote",
    "LinkSuggestion",
    "NoteCluster",
    "RelationshipAnalytics",
    "GraphNode",
    "GraphEdge",
    "GraphData",
    # Events
    "NoteEvent",
    "NoteEventType",
]
