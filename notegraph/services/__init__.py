"""
Services for NoteGraph.

High-level business logic services:
- NoteEngine: Unified interface for all note operations
- SearchEngine: Relevance search, similarity and suggestions
- TraversalEngine: Related notes, shortest paths, hubs and orphans
- RelationshipInsights: Link suggestions, clusters and analytics
- GraphView: Node/edge DTOs for visualization clients
- InvalidationManager: Event-driven cache invalidation
"""

from notegraph.services.graph_view import GraphView
from notegraph.services.invalidation_manager import InvalidationManager
from notegraph.services.note_engine import NoteEngine
from notegraph.services.relationship_insights import RelationshipInsights
from notegraph.services.search_engine import SearchEngine
from notegraph.services.traversal_engine import TraversalEngine

__all__ = [
    "NoteEngine",
    "SearchEngine",
    "TraversalEngine",
    "RelationshipInsights",
    "GraphView",
    "InvalidationManager",
]
