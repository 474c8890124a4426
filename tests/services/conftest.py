"""Fixtures for service tests.

Fixtures use function scope to avoid event loop issues. Services run
against the real SQLite store from the root conftest.
"""

from collections.abc import Awaitable, Callable

import pytest

from notegraph.config import DiscoveryConfig, SearchConfig, TraversalConfig
from notegraph.models.relationships import LinkType
from notegraph.services.graph_view import GraphView
from notegraph.services.relationship_insights import RelationshipInsights
from notegraph.services.search_engine import SearchEngine
from notegraph.services.traversal_engine import TraversalEngine


@pytest.fixture
def traversal(sqlite_store) -> TraversalEngine:
    return TraversalEngine(sqlite_store, TraversalConfig())


@pytest.fixture
def search_engine(sqlite_store) -> SearchEngine:
    return SearchEngine(sqlite_store, SearchConfig())


@pytest.fixture
def insights(sqlite_store) -> RelationshipInsights:
    return RelationshipInsights(sqlite_store, DiscoveryConfig())


@pytest.fixture
def graph_view(sqlite_store, traversal) -> GraphView:
    return GraphView(sqlite_store, traversal)


@pytest.fixture
def seed_graph(sqlite_store, make_note, make_link) -> Callable[..., Awaitable[None]]:
    """
    Store notes and links in one call.

    Notes are created oldest-last in the order given, so the first ID is
    the most recently updated.
    """

    async def _seed(
        note_ids: list[str],
        edges: list[tuple[str, str]] | None = None,
        user_id: str = "user-1",
        link_type: LinkType = LinkType.REFERENCES,
    ) -> None:
        for age, note_id in enumerate(note_ids):
            await sqlite_store.add_note(make_note(note_id, user_id=user_id, age_minutes=age))
        for source_id, target_id in edges or []:
            await sqlite_store.add_link(make_link(source_id, target_id, link_type, user_id=user_id))

    return _seed
