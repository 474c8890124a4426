"""
Tests for Neo4j graph store implementation.

The driver is mocked; these tests check the Cypher sent and the mapping of
records back to models.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notegraph.models.note import NoteStatus
from notegraph.models.relationships import Link, LinkDirection, LinkType
from notegraph.utils.exceptions import GraphStoreError, ValidationError

DRIVER_PATH = "notegraph.core.graph_store.neo4j_store.AsyncGraphDatabase"


def create_mock_session():
    """Create a properly configured mock session for async context manager."""
    mock_session = AsyncMock()
    mock_session_context = MagicMock()
    mock_session_context.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session_context.__aexit__ = AsyncMock(return_value=None)
    return mock_session, mock_session_context


def mock_result(single=None, data=None):
    """Result whose single()/data() return the given values."""
    result = AsyncMock()
    result.single = AsyncMock(return_value=single)
    result.data = AsyncMock(return_value=data or [])
    return result


def link_record(link_id="link_1", source="a", target="b", link_type="SUPPORTS"):
    return {
        "link": {
            "id": link_id,
            "strength": 0.8,
            "context": "because",
            "user_id": "user-1",
            "created_at": datetime(2024, 1, 1).isoformat(),
        },
        "link_type": link_type,
        "source_id": source,
        "target_id": target,
    }


@pytest.fixture
def connected(neo4j_store):
    """Patch the driver and hand back the session mock."""
    with patch(DRIVER_PATH) as mock_db:
        mock_driver = MagicMock()
        mock_driver.close = AsyncMock()
        mock_session, mock_session_context = create_mock_session()
        mock_driver.session = MagicMock(return_value=mock_session_context)
        mock_db.driver.return_value = mock_driver
        yield mock_session


@pytest.mark.unit
@pytest.mark.asyncio
class TestNeo4jConnection:
    """Connection and schema setup."""

    async def test_initialization(self, neo4j_store):
        """Test store initialization."""
        assert neo4j_store.uri == "bolt://localhost:7687"
        assert neo4j_store.username == "neo4j"
        assert neo4j_store.password == "password"
        assert neo4j_store.database == "neo4j"
        assert neo4j_store.driver is None

    async def test_connect(self, neo4j_store):
        """Test connection to Neo4j."""
        with patch(DRIVER_PATH) as mock_db:
            mock_db.driver.return_value = MagicMock()
            await neo4j_store.connect()

            assert neo4j_store.driver is not None
            mock_db.driver.assert_called_once_with(
                "bolt://localhost:7687", auth=("neo4j", "password")
            )

    async def test_connect_failure(self, neo4j_store):
        """Test connection failure handling."""
        with patch(DRIVER_PATH) as mock_db:
            mock_db.driver.side_effect = Exception("Connection failed")
            with pytest.raises(GraphStoreError, match="Failed to connect"):
                await neo4j_store.connect()

    async def test_initialize(self, neo4j_store, connected):
        """Test the constraint and indexes are created."""
        await neo4j_store.initialize()

        assert connected.run.call_count == 3
        assert "CONSTRAINT" in connected.run.call_args_list[0][0][0]

    async def test_initialize_failure(self, neo4j_store, connected):
        """Test schema errors surface as GraphStoreError."""
        connected.run.side_effect = Exception("boom")

        with pytest.raises(GraphStoreError, match="Failed to initialize"):
            await neo4j_store.initialize()

    async def test_close(self, neo4j_store, connected):
        """Test close releases the driver."""
        await neo4j_store.connect()
        driver = neo4j_store.driver

        await neo4j_store.close()

        driver.close.assert_awaited_once()
        assert neo4j_store.driver is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestNeo4jNotes:
    """Note operations."""

    async def test_add_note(self, neo4j_store, connected, sample_note):
        """Test add note issues a MERGE with the note properties."""
        await neo4j_store.add_note(sample_note)

        connected.run.assert_called_once()
        query, params = connected.run.call_args[0]
        assert "MERGE" in query
        assert "$id" in query
        assert params["id"] == sample_note.id
        assert params["props"]["tags"] == ["graphs", "databases"]
        assert params["props"]["status"] == "PUBLISHED"
        # Null properties are not written
        assert "last_accessed_at" not in params["props"]

    async def test_add_note_validation_none(self, neo4j_store):
        """Test add note validation with None."""
        with pytest.raises(ValidationError, match="Note cannot be None"):
            await neo4j_store.add_note(None)

    async def test_add_note_validation_empty_id(self, neo4j_store, sample_note):
        """Test add note validation with empty ID."""
        sample_note.id = ""
        with pytest.raises(ValidationError, match="Note ID cannot be empty"):
            await neo4j_store.add_note(sample_note)

    async def test_add_note_failure(self, neo4j_store, connected, sample_note):
        """Test driver errors surface as GraphStoreError."""
        connected.run.side_effect = Exception("write failed")

        with pytest.raises(GraphStoreError, match="Failed to add note"):
            await neo4j_store.add_note(sample_note)

    async def test_get_note(self, neo4j_store, connected, sample_note, sample_note_props):
        """Test get note maps node properties back to a Note."""
        record = MagicMock()
        record.__getitem__.side_effect = lambda key: {"n": sample_note_props}[key]
        connected.run = AsyncMock(return_value=mock_result(single=record))

        result = await neo4j_store.get_note(sample_note.id)

        assert result == sample_note

    async def test_get_note_not_found(self, neo4j_store, connected):
        """Test get note when not found."""
        connected.run = AsyncMock(return_value=mock_result(single=None))

        assert await neo4j_store.get_note("nonexistent") is None

    async def test_get_note_validation(self, neo4j_store):
        """Test get note validation."""
        with pytest.raises(ValidationError, match="Note ID cannot be empty"):
            await neo4j_store.get_note("")

    async def test_update_note(self, neo4j_store, connected, sample_note):
        """Test update reuses the MERGE write."""
        sample_note.title = "Updated title"
        await neo4j_store.update_note(sample_note)

        connected.run.assert_called_once()
        assert connected.run.call_args[0][1]["props"]["title"] == "Updated title"

    async def test_delete_note(self, neo4j_store, connected):
        """Test delete detaches relationships and reports how many."""
        connected.run = AsyncMock(return_value=mock_result(single={"removed": 3}))

        removed = await neo4j_store.delete_note("note_1")

        assert removed == 3
        assert "DETACH DELETE" in connected.run.call_args[0][0]

    async def test_delete_note_validation(self, neo4j_store):
        """Test delete note validation."""
        with pytest.raises(ValidationError, match="Note ID cannot be empty"):
            await neo4j_store.delete_note(" ")

    async def test_list_notes_with_filters(self, neo4j_store, connected, sample_note_props):
        """Test filters become query parameters."""
        connected.run = AsyncMock(return_value=mock_result(data=[{"n": sample_note_props}]))

        notes = await neo4j_store.list_notes(
            "user-1", filters={"status": NoteStatus.PUBLISHED, "is_favorite": False}, limit=10
        )

        query, params = connected.run.call_args[0]
        assert len(notes) == 1
        assert params["status"] == "PUBLISHED"
        assert params["is_favorite"] is False
        assert params["limit"] == 10
        assert "ORDER BY n.updated_at DESC" in query

    async def test_search_text(self, neo4j_store, connected, sample_note_props):
        """Test terms are lower-cased and matched with CONTAINS."""
        connected.run = AsyncMock(return_value=mock_result(data=[{"n": sample_note_props}]))

        notes = await neo4j_store.search_text("user-1", ["Graph", ""])

        query, params = connected.run.call_args[0]
        assert [n.id for n in notes] == [sample_note_props["id"]]
        assert params["terms"] == ["graph"]
        assert "CONTAINS" in query

    async def test_search_text_no_terms(self, neo4j_store):
        """Test empty term lists short-circuit without a query."""
        assert await neo4j_store.search_text("user-1", []) == []
        assert neo4j_store.driver is None

    async def test_find_by_tag(self, neo4j_store, connected):
        """Test the tag is lower-cased."""
        connected.run = AsyncMock(return_value=mock_result(data=[]))

        await neo4j_store.find_by_tag("user-1", "Python")

        assert connected.run.call_args[0][1]["tag"] == "python"


@pytest.mark.unit
@pytest.mark.asyncio
class TestNeo4jLinks:
    """Link operations and graph primitives."""

    async def test_add_link(self, neo4j_store, connected):
        """Test the link type becomes the relationship type."""
        connected.run = AsyncMock(return_value=mock_result(single={"id": "link_1"}))
        link = Link(
            id="link_1", source_id="a", target_id="b", type=LinkType.BUILDS_ON, user_id="user-1"
        )

        result = await neo4j_store.add_link(link)

        query, params = connected.run.call_args[0]
        assert result == link
        assert "[r:BUILDS_ON" in query
        assert params["source_id"] == "a"
        assert params["target_id"] == "b"

    async def test_add_link_missing_endpoint(self, neo4j_store, connected):
        """Test a link whose endpoints don't match raises."""
        connected.run = AsyncMock(return_value=mock_result(single=None))
        link = Link(id="link_1", source_id="a", target_id="ghost", user_id="user-1")

        with pytest.raises(GraphStoreError, match="Failed to create link"):
            await neo4j_store.add_link(link)

    async def test_get_link(self, neo4j_store, connected):
        """Test a relationship record maps to a Link."""
        connected.run = AsyncMock(return_value=mock_result(single=link_record()))

        link = await neo4j_store.get_link("link_1")

        assert link.id == "link_1"
        assert link.type == LinkType.SUPPORTS
        assert link.source_id == "a"
        assert link.target_id == "b"
        assert link.strength == 0.8
        assert link.context == "because"

    async def test_get_link_between_with_type(self, neo4j_store, connected):
        """Test a typed lookup matches on the relationship type."""
        connected.run = AsyncMock(return_value=mock_result(single=None))

        result = await neo4j_store.get_link_between("a", "b", LinkType.CONTRADICTS)

        assert result is None
        assert "[r:CONTRADICTS]" in connected.run.call_args[0][0]

    async def test_delete_link(self, neo4j_store, connected):
        """Test delete reports whether a relationship was removed."""
        connected.run = AsyncMock(return_value=mock_result(single={"removed": 1}))
        assert await neo4j_store.delete_link("link_1") is True

        connected.run = AsyncMock(return_value=mock_result(single={"removed": 0}))
        assert await neo4j_store.delete_link("link_1") is False

    async def test_delete_link_failure(self, neo4j_store, connected):
        """Test driver errors on link delete surface as GraphStoreError."""
        connected.run = AsyncMock(side_effect=Exception("session expired"))

        with pytest.raises(GraphStoreError, match="Failed to delete link"):
            await neo4j_store.delete_link("link_1")

    async def test_list_links(self, neo4j_store, connected):
        """Test all user links are mapped."""
        connected.run = AsyncMock(
            return_value=mock_result(data=[link_record("l1"), link_record("l2", "b", "c")])
        )

        links = await neo4j_store.list_links("user-1")

        assert [link.id for link in links] == ["l1", "l2"]

    async def test_get_neighbors_direction(self, neo4j_store, connected, sample_note_props):
        """Test direction picks the pattern and records map to (Link, Note)."""
        record = {**link_record(), "n": sample_note_props}
        connected.run = AsyncMock(return_value=mock_result(data=[record]))

        pairs = await neo4j_store.get_neighbors("a", LinkDirection.INCOMING)

        assert "<-[r]-" in connected.run.call_args[0][0]
        assert pairs[0][0].id == "link_1"
        assert pairs[0][1].id == sample_note_props["id"]

    async def test_get_neighbors_type_filter(self, neo4j_store, connected):
        """Test link type filters become a relationship type union."""
        connected.run = AsyncMock(return_value=mock_result(data=[]))

        await neo4j_store.get_neighbors(
            "a", LinkDirection.OUTGOING, [LinkType.SUPPORTS, LinkType.EXAMPLE]
        )

        assert "[r:SUPPORTS|EXAMPLE]->" in connected.run.call_args[0][0]

    async def test_get_degrees(self, neo4j_store, connected):
        """Test degree rows map to (in, out) tuples."""
        connected.run = AsyncMock(
            return_value=mock_result(
                data=[
                    {"id": "a", "in_degree": 1, "out_degree": 2},
                    {"id": "b", "in_degree": 0, "out_degree": 0},
                ]
            )
        )

        assert await neo4j_store.get_degrees("user-1") == {"a": (1, 2), "b": (0, 0)}
