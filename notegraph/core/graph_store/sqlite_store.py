"""
SQLite graph store implementation.

Notes are rows, links are rows with foreign keys into notes. Deleting a
note removes its links in the same transaction. Writes share one
connection, so they are serialized by a store-level lock: another
coroutine's commit or rollback can never split a transaction.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from notegraph.core.graph_store.base import GraphStore
from notegraph.models.note import Note, NotePriority, NoteStatus
from notegraph.models.relationships import Link, LinkDirection, LinkType
from notegraph.utils.exceptions import GraphStoreError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

NOTE_COLUMNS = (
    "id, user_id, title, content, summary, tags, category, status, priority, "
    "is_public, is_favorite, word_count, reading_time, quality_score, view_count, "
    "created_at, updated_at, last_accessed_at"
)
LINK_COLUMNS = "id, source_id, target_id, type, strength, context, user_id, created_at"

_NOTE_WIDTH = 18


def _prefixed(columns: str, alias: str) -> str:
    return ", ".join(f"{alias}.{c.strip()}" for c in columns.split(","))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteGraphStore(GraphStore):
    """
    SQLite-based graph store for notes and links.

    Features:
    - Fast local storage
    - JSON tag storage queried through json_each
    - Case-insensitive substring text lookup
    - Transactional cascade on note delete
    - Serialized writes on the shared connection
    """

    def __init__(self, db_path: str = "data/notegraph.db"):
        """
        Initialize SQLite graph store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            await self.connection.execute("PRAGMA foreign_keys = ON")
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                summary TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '[]',
                category TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL,
                priority TEXT NOT NULL,
                is_public INTEGER NOT NULL DEFAULT 0,
                is_favorite INTEGER NOT NULL DEFAULT 0,
                word_count INTEGER NOT NULL DEFAULT 0,
                reading_time INTEGER NOT NULL DEFAULT 1,
                quality_score REAL NOT NULL DEFAULT 0.0,
                view_count INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                last_accessed_at TEXT
            )
        """
        )

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS links (
                id TEXT PRIMARY KEY,
                source_id TEXT NOT NULL,
                target_id TEXT NOT NULL,
                type TEXT NOT NULL,
                strength REAL NOT NULL DEFAULT 1.0,
                context TEXT,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (source_id, target_id, type),
                FOREIGN KEY (source_id) REFERENCES notes(id) ON DELETE CASCADE,
                FOREIGN KEY (target_id) REFERENCES notes(id) ON DELETE CASCADE
            )
        """
        )

        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_notes_user ON notes(user_id)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_links_source ON links(source_id)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_links_target ON links(target_id)"
        )
        await self.connection.execute("CREATE INDEX IF NOT EXISTS idx_links_user ON links(user_id)")

        await self.connection.commit()

    # ═══════════════════════════════════════════════════════════
    # NOTE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def add_note(self, note: Note) -> None:
        """Add a note row."""
        await self.connect()

        async with self._write_lock:
            try:
                await self.connection.execute(
                    f"""
                    INSERT OR REPLACE INTO notes ({NOTE_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    self._note_params(note),
                )
                await self.connection.commit()
            except aiosqlite.Error as e:
                await self.connection.rollback()
                raise GraphStoreError(
                    f"Failed to store note {note.id}", {"note_id": note.id}
                ) from e

    async def get_note(self, note_id: str) -> Note | None:
        """Retrieve a note by ID."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = ?", (note_id,)
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_note(row)

    async def update_note(self, note: Note) -> None:
        """Update an existing note."""
        await self.connect()

        async with self._write_lock:
            try:
                # UPDATE rather than INSERT OR REPLACE: REPLACE deletes the row and
                # would cascade into the note's links
                await self.connection.execute(
                    """
                    UPDATE notes SET
                        user_id = ?, title = ?, content = ?, summary = ?, tags = ?, category = ?,
                        status = ?, priority = ?, is_public = ?, is_favorite = ?, word_count = ?,
                        reading_time = ?, quality_score = ?, view_count = ?, created_at = ?,
                        updated_at = ?, last_accessed_at = ?
                    WHERE id = ?
                    """,
                    (*self._note_params(note)[1:], note.id),
                )
                await self.connection.commit()
            except aiosqlite.Error as e:
                await self.connection.rollback()
                raise GraphStoreError(
                    f"Failed to update note {note.id}", {"note_id": note.id}
                ) from e

    async def delete_note(self, note_id: str) -> int:
        """Delete a note and its links in one transaction."""
        await self.connect()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute(
                    "DELETE FROM links WHERE source_id = ? OR target_id = ?", (note_id, note_id)
                )
                removed_links = cursor.rowcount
                await self.connection.execute("DELETE FROM notes WHERE id = ?", (note_id,))
                await self.connection.commit()
            except aiosqlite.Error as e:
                await self.connection.rollback()
                raise GraphStoreError(
                    f"Failed to delete note {note_id}", {"note_id": note_id}
                ) from e

        logger.debug(f"Deleted note {note_id} with {removed_links} links")
        return removed_links

    async def list_notes(
        self,
        user_id: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Note]:
        """List a user's notes with optional filters."""
        await self.connect()

        query = f"SELECT {NOTE_COLUMNS} FROM notes WHERE user_id = ?"
        params: list[Any] = [user_id]

        if filters:
            if filters.get("status") is not None:
                query += " AND status = ?"
                params.append(NoteStatus(filters["status"]).value)

            if filters.get("is_favorite") is not None:
                query += " AND is_favorite = ?"
                params.append(int(bool(filters["is_favorite"])))

            if filters.get("updated_after") is not None:
                query += " AND updated_at > ?"
                params.append(filters["updated_after"].isoformat())

        query += " ORDER BY updated_at DESC, id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        cursor = await self.connection.execute(query, params)
        rows = await cursor.fetchall()

        return [self._row_to_note(row) for row in rows]

    async def count_notes(self, user_id: str) -> int:
        """Count a user's notes."""
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT COUNT(*) FROM notes WHERE user_id = ?", (user_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def search_text(self, user_id: str, terms: list[str], limit: int = 1000) -> list[Note]:
        """Notes whose title or content contains any of the terms."""
        await self.connect()

        terms = [t for t in terms if t]
        if not terms:
            return []

        clauses = []
        params: list[Any] = [user_id]
        for term in terms:
            pattern = f"%{_escape_like(term.lower())}%"
            clauses.append("(LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(content) LIKE ? ESCAPE '\\')")
            params.extend([pattern, pattern])

        query = (
            f"SELECT {NOTE_COLUMNS} FROM notes WHERE user_id = ? AND ("
            + " OR ".join(clauses)
            + ") LIMIT ?"
        )
        params.append(limit)

        cursor = await self.connection.execute(query, params)
        rows = await cursor.fetchall()

        return [self._row_to_note(row) for row in rows]

    async def find_by_tag(self, user_id: str, tag: str) -> list[Note]:
        """Notes carrying a tag."""
        await self.connect()

        cursor = await self.connection.execute(
            f"""
            SELECT {NOTE_COLUMNS} FROM notes
            WHERE user_id = ?
              AND EXISTS (SELECT 1 FROM json_each(notes.tags) WHERE json_each.value = ?)
            """,
            (user_id, tag.lower()),
        )
        rows = await cursor.fetchall()

        return [self._row_to_note(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # LINK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def add_link(self, link: Link) -> Link:
        """Add a link between two notes."""
        await self.connect()

        async with self._write_lock:
            try:
                await self.connection.execute(
                    f"INSERT INTO links ({LINK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        link.id,
                        link.source_id,
                        link.target_id,
                        link.type.value,
                        link.strength,
                        link.context,
                        link.user_id,
                        link.created_at.isoformat(),
                    ),
                )
                await self.connection.commit()
            except aiosqlite.Error as e:
                await self.connection.rollback()
                raise GraphStoreError(
                    f"Failed to store link {link.source_id} -> {link.target_id}",
                    {"link_id": link.id, "type": link.type.value},
                ) from e

        return link

    async def get_link(self, link_id: str) -> Link | None:
        """Get link by ID."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {LINK_COLUMNS} FROM links WHERE id = ?", (link_id,)
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_link(row)

    async def get_link_between(
        self, source_id: str, target_id: str, link_type: LinkType | None = None
    ) -> Link | None:
        """Find a directed link between two notes."""
        await self.connect()

        query = f"SELECT {LINK_COLUMNS} FROM links WHERE source_id = ? AND target_id = ?"
        params: list[Any] = [source_id, target_id]

        if link_type:
            query += " AND type = ?"
            params.append(LinkType(link_type).value)

        query += " LIMIT 1"

        cursor = await self.connection.execute(query, params)
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_link(row)

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link."""
        await self.connect()

        async with self._write_lock:
            try:
                cursor = await self.connection.execute("DELETE FROM links WHERE id = ?", (link_id,))
                await self.connection.commit()
            except aiosqlite.Error as e:
                await self.connection.rollback()
                raise GraphStoreError(
                    f"Failed to delete link {link_id}", {"link_id": link_id}
                ) from e

        return cursor.rowcount > 0

    async def list_links(self, user_id: str) -> list[Link]:
        """All links of a user, oldest first."""
        await self.connect()

        cursor = await self.connection.execute(
            f"SELECT {LINK_COLUMNS} FROM links WHERE user_id = ? ORDER BY created_at, id",
            (user_id,),
        )
        rows = await cursor.fetchall()

        return [self._row_to_link(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # GRAPH PRIMITIVES
    # ═══════════════════════════════════════════════════════════

    async def get_neighbors(
        self,
        note_id: str,
        direction: LinkDirection = LinkDirection.OUTGOING,
        link_types: list[LinkType] | None = None,
    ) -> list[tuple[Link, Note]]:
        """One-hop neighbours."""
        await self.connect()

        direction = LinkDirection(direction)
        results: list[tuple[Link, Note]] = []

        if direction in (LinkDirection.OUTGOING, LinkDirection.BOTH):
            results.extend(await self._neighbors(note_id, "source_id", "target_id", link_types))
        if direction in (LinkDirection.INCOMING, LinkDirection.BOTH):
            results.extend(await self._neighbors(note_id, "target_id", "source_id", link_types))

        return results

    async def _neighbors(
        self,
        note_id: str,
        anchor_column: str,
        other_column: str,
        link_types: list[LinkType] | None,
    ) -> list[tuple[Link, Note]]:
        query = f"""
            SELECT {_prefixed(NOTE_COLUMNS, "n")}, {_prefixed(LINK_COLUMNS, "l")}
            FROM links l
            JOIN notes n ON l.{other_column} = n.id
            WHERE l.{anchor_column} = ?
        """
        params: list[Any] = [note_id]

        if link_types:
            placeholders = ",".join("?" * len(link_types))
            query += f" AND l.type IN ({placeholders})"
            params.extend(LinkType(t).value for t in link_types)

        query += " ORDER BY l.created_at, l.id"

        cursor = await self.connection.execute(query, params)
        rows = await cursor.fetchall()

        return [
            (self._row_to_link(row[_NOTE_WIDTH:]), self._row_to_note(row[:_NOTE_WIDTH]))
            for row in rows
        ]

    async def get_degrees(self, user_id: str) -> dict[str, tuple[int, int]]:
        """In/out degree per note."""
        await self.connect()

        cursor = await self.connection.execute(
            """
            SELECT n.id,
                   (SELECT COUNT(*) FROM links WHERE target_id = n.id) AS in_degree,
                   (SELECT COUNT(*) FROM links WHERE source_id = n.id) AS out_degree
            FROM notes n
            WHERE n.user_id = ?
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

        return {row[0]: (row[1], row[2]) for row in rows}

    async def close(self) -> None:
        """Close database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _note_params(note: Note) -> tuple:
        return (
            note.id,
            note.user_id,
            note.title,
            note.content,
            note.summary,
            json.dumps(note.tags),
            note.category,
            note.status.value,
            note.priority.value,
            int(note.is_public),
            int(note.is_favorite),
            note.word_count,
            note.reading_time,
            note.quality_score,
            note.view_count,
            note.created_at.isoformat(),
            note.updated_at.isoformat(),
            note.last_accessed_at.isoformat() if note.last_accessed_at else None,
        )

    def _row_to_note(self, row: tuple) -> Note:
        """Convert database row to Note."""
        return Note(
            id=row[0],
            user_id=row[1],
            title=row[2],
            content=row[3],
            summary=row[4],
            tags=json.loads(row[5]) if row[5] else [],
            category=row[6],
            status=NoteStatus(row[7]),
            priority=NotePriority(row[8]),
            is_public=bool(row[9]),
            is_favorite=bool(row[10]),
            word_count=row[11],
            reading_time=row[12],
            quality_score=row[13],
            view_count=row[14],
            created_at=datetime.fromisoformat(row[15]),
            updated_at=datetime.fromisoformat(row[16]),
            last_accessed_at=datetime.fromisoformat(row[17]) if row[17] else None,
        )

    def _row_to_link(self, row: tuple) -> Link:
        """Convert database row to Link."""
        return Link(
            id=row[0],
            source_id=row[1],
            target_id=row[2],
            type=LinkType(row[3]),
            strength=row[4],
            context=row[5],
            user_id=row[6],
            created_at=datetime.fromisoformat(row[7]),
        )
