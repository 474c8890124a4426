"""
Shared test fixtures for all test modules.

Fixtures use function scope to avoid event loop issues; each test gets a
fresh SQLite file under tmp_path.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta

import pytest

from notegraph.config import Config
from notegraph.core.graph_store.sqlite_store import SQLiteGraphStore
from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkType
from notegraph.services.note_engine import NoteEngine


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Default configuration pointed at a temporary database."""
    config = Config()
    config.sqlite.db_path = str(tmp_path / "notegraph.db")
    return config


@pytest.fixture
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteGraphStore, None]:
    """Initialized SQLite store on a temporary file."""
    store = SQLiteGraphStore(db_path=str(tmp_path / "graph.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def engine(test_config) -> AsyncGenerator[NoteEngine, None]:
    """Note engine on SQLite with a disk cache in a temporary directory."""
    note_engine = NoteEngine(SQLiteGraphStore(test_config.sqlite.db_path), test_config)
    await note_engine.initialize()
    yield note_engine
    await note_engine.close()


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """
    Build notes directly, bypassing content analysis.

    ``age_minutes`` moves created_at/updated_at into the past so ordering by
    recency is deterministic.
    """

    def _make(
        note_id: str,
        user_id: str = "user-1",
        title: str | None = None,
        content: str = "",
        tags: list[str] | None = None,
        age_minutes: int = 0,
        **kwargs,
    ) -> Note:
        stamp = datetime.now() - timedelta(minutes=age_minutes)
        return Note(
            id=note_id,
            user_id=user_id,
            title=title or f"Note {note_id}",
            content=content,
            tags=tags or [],
            created_at=stamp,
            updated_at=stamp,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_link() -> Callable[..., Link]:
    """Build links directly; IDs are derived from the endpoints."""

    def _make(
        source_id: str,
        target_id: str,
        link_type: LinkType = LinkType.REFERENCES,
        user_id: str = "user-1",
        **kwargs,
    ) -> Link:
        return Link(
            id=f"link_{source_id}_{target_id}_{LinkType(link_type).value.lower()}",
            source_id=source_id,
            target_id=target_id,
            type=link_type,
            user_id=user_id,
            **kwargs,
        )

    return _make
