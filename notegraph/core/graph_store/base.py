"""
Base interface for note graph storage.

The store owns persistence mechanics only: CRUD for notes and links,
one-hop neighbour lookup, raw text/tag candidate lookup and degree counts.
Ranking, traversal and ownership checks live in the services.
"""

from abc import ABC, abstractmethod
from typing import Any

from notegraph.models.note import Note
from notegraph.models.relationships import Link, LinkDirection, LinkType


class GraphStore(ABC):
    """Abstract base class for graph storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the graph store (create tables/schema)."""
        pass

    # ═══════════════════════════════════════════════════════════
    # NOTE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def add_note(self, note: Note) -> None:
        """
        Add a note node to the graph.

        Args:
            note: Note to store
        """
        pass

    @abstractmethod
    async def get_note(self, note_id: str) -> Note | None:
        """
        Retrieve a note by ID, regardless of owner.

        Args:
            note_id: Note identifier

        Returns:
            Note or None if not found
        """
        pass

    @abstractmethod
    async def update_note(self, note: Note) -> None:
        """
        Replace a stored note with ``note``.

        Args:
            note: Updated note
        """
        pass

    @abstractmethod
    async def delete_note(self, note_id: str) -> int:
        """
        Delete a note and every link to or from it, in one transaction.

        Args:
            note_id: Note identifier

        Returns:
            Number of links removed with the note
        """
        pass

    @abstractmethod
    async def list_notes(
        self,
        user_id: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Note]:
        """
        List a user's notes, most recently updated first.

        Args:
            user_id: Owner
            filters: Optional {"status": ..., "is_favorite": ..., "updated_after": datetime}
            limit: Maximum results
            offset: Rows to skip

        Returns:
            List of notes
        """
        pass

    async def all_notes(self, user_id: str, batch_size: int = 500) -> list[Note]:
        """
        Every note of a user, paged through list_notes.

        Args:
            user_id: Owner
            batch_size: Page size

        Returns:
            All notes, most recently updated first
        """
        notes: list[Note] = []
        offset = 0
        while True:
            page = await self.list_notes(user_id, limit=batch_size, offset=offset)
            notes.extend(page)
            if len(page) < batch_size:
                return notes
            offset += batch_size

    @abstractmethod
    async def count_notes(self, user_id: str) -> int:
        """Count a user's notes."""
        pass

    @abstractmethod
    async def search_text(self, user_id: str, terms: list[str], limit: int = 1000) -> list[Note]:
        """
        Raw full-text candidate lookup.

        A note matches when any term is a case-insensitive substring of its
        title or content. No ranking is applied.

        Args:
            user_id: Owner
            terms: Terms and phrases to match
            limit: Maximum candidates

        Returns:
            Candidate notes
        """
        pass

    @abstractmethod
    async def find_by_tag(self, user_id: str, tag: str) -> list[Note]:
        """
        Notes of a user carrying ``tag``.

        Args:
            user_id: Owner
            tag: Lower-cased tag

        Returns:
            Matching notes
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # LINK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def add_link(self, link: Link) -> Link:
        """
        Add a directed link between two existing notes.

        Args:
            link: Link to store

        Returns:
            The stored link
        """
        pass

    @abstractmethod
    async def get_link(self, link_id: str) -> Link | None:
        """Get link by ID."""
        pass

    @abstractmethod
    async def get_link_between(
        self, source_id: str, target_id: str, link_type: LinkType | None = None
    ) -> Link | None:
        """
        Find a link from ``source_id`` to ``target_id``. Direction matters.

        Args:
            source_id: Source note ID
            target_id: Target note ID
            link_type: Optional filter by type

        Returns:
            Link or None
        """
        pass

    @abstractmethod
    async def delete_link(self, link_id: str) -> bool:
        """
        Delete a link.

        Returns:
            True if a link was removed
        """
        pass

    @abstractmethod
    async def list_links(self, user_id: str) -> list[Link]:
        """All links owned by a user."""
        pass

    # ═══════════════════════════════════════════════════════════
    # GRAPH PRIMITIVES
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_neighbors(
        self,
        note_id: str,
        direction: LinkDirection = LinkDirection.OUTGOING,
        link_types: list[LinkType] | None = None,
    ) -> list[tuple[Link, Note]]:
        """
        One-hop neighbours of a note.

        Args:
            note_id: Note identifier
            direction: Follow outgoing, incoming or both kinds of link
            link_types: Optional filter by link type

        Returns:
            List of (link, neighbour note) tuples
        """
        pass

    @abstractmethod
    async def get_degrees(self, user_id: str) -> dict[str, tuple[int, int]]:
        """
        In- and out-degree of every note of a user.

        Returns:
            Mapping of note ID to (in_degree, out_degree); notes without
            links map to (0, 0)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection to the graph store."""
        pass
