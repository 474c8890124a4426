"""
Graph store implementations for NoteGraph.

Provides abstract base and concrete implementations for graph storage.

Available backends:
- SQLiteGraphStore: Local, single-file storage
- Neo4jGraphStore: Production-grade graph database
"""

from notegraph.core.graph_store.base import GraphStore
from notegraph.core.graph_store.factory import GraphStoreFactory, create_graph_store
from notegraph.core.graph_store.neo4j_store import Neo4jGraphStore
from notegraph.core.graph_store.sqlite_store import SQLiteGraphStore

__all__ = [
    "GraphStore",
    "GraphStoreFactory",
    "Neo4jGraphStore",
    "SQLiteGraphStore",
    "create_graph_store",
]
