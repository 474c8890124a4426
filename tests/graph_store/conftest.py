"""
Shared test fixtures for graph store tests.
"""

from datetime import datetime

import pytest

from notegraph.core.graph_store.neo4j_store import Neo4jGraphStore
from notegraph.models.note import Note, NoteStatus


@pytest.fixture
def neo4j_store():
    """Create Neo4j store for testing."""
    return Neo4jGraphStore(
        uri="bolt://localhost:7687",
        username="neo4j",
        password="password",
        database="neo4j",
    )


@pytest.fixture
def sample_note():
    """Create sample note for testing."""
    return Note(
        id="note_test00001",
        user_id="user-1",
        title="Graph databases",
        content="Nodes and edges for graph store tests",
        summary="Nodes and edges",
        tags=["graphs", "databases"],
        status=NoteStatus.PUBLISHED,
        word_count=7,
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        updated_at=datetime(2024, 1, 2, 12, 0, 0),
    )


@pytest.fixture
def sample_note_props(sample_note):
    """Node properties as Neo4j returns them."""
    return {"id": sample_note.id, **sample_note.model_dump(mode="json", exclude={"id"}, exclude_none=True)}
