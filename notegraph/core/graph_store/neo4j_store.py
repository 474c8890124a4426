"""
Neo4j graph store implementation.

Notes are (:Note) nodes; links are relationships whose Cypher type is the
LinkType value, carrying id, strength, context, user_id and created_at.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase

from notegraph.core.graph_store.base import GraphStore
from notegraph.models.note import Note, NotePriority, NoteStatus
from notegraph.models.relationships import Link, LinkDirection, LinkType
from notegraph.utils.exceptions import GraphStoreError, ValidationError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

_LINK_RETURN = (
    "properties(r) AS link, type(r) AS link_type, "
    "startNode(r).id AS source_id, endNode(r).id AS target_id"
)


class Neo4jGraphStore(GraphStore):
    """
    Neo4j-based graph store for notes and links.

    Features:
    - Native graph traversal
    - Cypher query language
    - ACID transactions (note delete is a single DETACH DELETE statement)
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "password",
        database: str = "neo4j",
    ):
        """
        Initialize Neo4j graph store.

        Args:
            uri: Neo4j connection URI
            username: Username
            password: Password
            database: Database name
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.driver: AsyncDriver | None = None

    async def connect(self) -> None:
        """
        Establish connection to Neo4j.

        Raises:
            GraphStoreError: If connection fails
        """
        if self.driver is None:
            try:
                self.driver = AsyncGraphDatabase.driver(
                    self.uri,
                    auth=(self.username, self.password),
                )
            except Exception as e:
                logger.bind(uri=self.uri, error=str(e)).error(f"Failed to connect to Neo4j: {e}")
                raise GraphStoreError(f"Failed to connect to Neo4j: {e}") from e

    async def initialize(self) -> None:
        """
        Create indexes and constraints.

        Raises:
            GraphStoreError: If initialization fails
        """
        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                await session.run(
                    "CREATE CONSTRAINT note_id IF NOT EXISTS FOR (n:Note) REQUIRE n.id IS UNIQUE"
                )
                await session.run("CREATE INDEX note_user IF NOT EXISTS FOR (n:Note) ON (n.user_id)")
                await session.run(
                    "CREATE INDEX note_updated IF NOT EXISTS FOR (n:Note) ON (n.updated_at)"
                )
        except Exception as e:
            logger.bind(database=self.database, error=str(e)).error(
                f"Failed to initialize Neo4j: {e}"
            )
            raise GraphStoreError(f"Failed to initialize Neo4j: {e}") from e

    # ═══════════════════════════════════════════════════════════
    # NOTE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def add_note(self, note: Note) -> None:
        """
        Add (or overwrite) a note node.

        Raises:
            ValidationError: If note is missing or has no ID
            GraphStoreError: If the write fails
        """
        if not note:
            raise ValidationError("Note cannot be None")
        if not note.id:
            raise ValidationError("Note ID cannot be empty")

        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                await session.run(
                    "MERGE (n:Note {id: $id}) SET n += $props",
                    {"id": note.id, "props": self._note_to_props(note)},
                )

            logger.bind(note_id=note.id).debug(f"Stored note: {note.id}")
        except Exception as e:
            logger.bind(note_id=note.id, error=str(e)).error(f"Failed to add note {note.id}: {e}")
            raise GraphStoreError(f"Failed to add note: {e}") from e

    async def get_note(self, note_id: str) -> Note | None:
        """Retrieve a note by ID."""
        if not note_id or not note_id.strip():
            raise ValidationError("Note ID cannot be empty")

        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                result = await session.run("MATCH (n:Note {id: $id}) RETURN n", {"id": note_id})
                record = await result.single()
                if not record:
                    return None
                return self._props_to_note(record["n"])
        except Exception as e:
            logger.bind(note_id=note_id, error=str(e)).error(f"Failed to get note {note_id}: {e}")
            raise GraphStoreError(f"Failed to get note: {e}") from e

    async def update_note(self, note: Note) -> None:
        """Update an existing note."""
        await self.add_note(note)  # MERGE ... SET handles updates

    async def delete_note(self, note_id: str) -> int:
        """Delete a note and its relationships."""
        if not note_id or not note_id.strip():
            raise ValidationError("Note ID cannot be empty")

        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                result = await session.run(
                    """
                    MATCH (n:Note {id: $id})
                    OPTIONAL MATCH (n)-[r]-()
                    WITH n, count(r) AS removed
                    DETACH DELETE n
                    RETURN removed
                    """,
                    {"id": note_id},
                )
                record = await result.single()
                return record["removed"] if record else 0
        except Exception as e:
            logger.bind(note_id=note_id, error=str(e)).error(
                f"Failed to delete note {note_id}: {e}"
            )
            raise GraphStoreError(f"Failed to delete note: {e}") from e

    async def list_notes(
        self,
        user_id: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Note]:
        """List a user's notes, most recently updated first."""
        await self.connect()

        query = "MATCH (n:Note) WHERE n.user_id = $user_id"
        params: dict[str, Any] = {"user_id": user_id, "limit": limit, "offset": offset}

        if filters:
            if filters.get("status") is not None:
                query += " AND n.status = $status"
                params["status"] = NoteStatus(filters["status"]).value
            if filters.get("is_favorite") is not None:
                query += " AND n.is_favorite = $is_favorite"
                params["is_favorite"] = bool(filters["is_favorite"])
            if filters.get("updated_after") is not None:
                query += " AND n.updated_at > $updated_after"
                params["updated_after"] = filters["updated_after"].isoformat()

        query += " RETURN n ORDER BY n.updated_at DESC, n.id SKIP $offset LIMIT $limit"

        return await self._fetch_notes(query, params)

    async def count_notes(self, user_id: str) -> int:
        """Count a user's notes."""
        await self.connect()

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                "MATCH (n:Note {user_id: $user_id}) RETURN count(n) AS count",
                {"user_id": user_id},
            )
            record = await result.single()
            return record["count"] if record else 0

    async def search_text(self, user_id: str, terms: list[str], limit: int = 1000) -> list[Note]:
        """Notes whose title or content contains any of the terms."""
        terms = [t.lower() for t in terms if t]
        if not terms:
            return []

        await self.connect()

        return await self._fetch_notes(
            """
            MATCH (n:Note) WHERE n.user_id = $user_id
              AND any(term IN $terms WHERE toLower(n.title) CONTAINS term
                                       OR toLower(n.content) CONTAINS term)
            RETURN n LIMIT $limit
            """,
            {"user_id": user_id, "terms": terms, "limit": limit},
        )

    async def find_by_tag(self, user_id: str, tag: str) -> list[Note]:
        """Notes carrying a tag."""
        await self.connect()

        return await self._fetch_notes(
            "MATCH (n:Note) WHERE n.user_id = $user_id AND $tag IN n.tags RETURN n",
            {"user_id": user_id, "tag": tag.lower()},
        )

    # ═══════════════════════════════════════════════════════════
    # LINK OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def add_link(self, link: Link) -> Link:
        """Create a typed relationship between two notes."""
        await self.connect()

        link_type = LinkType(link.type).value

        try:
            async with self.driver.session(database=self.database) as session:
                # Relationship types can't be parameterized; link_type is an enum value
                result = await session.run(
                    f"""
                    MATCH (a:Note {{id: $source_id}})
                    MATCH (b:Note {{id: $target_id}})
                    CREATE (a)-[r:{link_type} {{
                        id: $id,
                        strength: $strength,
                        context: $context,
                        user_id: $user_id,
                        created_at: $created_at
                    }}]->(b)
                    RETURN r.id AS id
                    """,
                    {
                        "source_id": link.source_id,
                        "target_id": link.target_id,
                        "id": link.id,
                        "strength": link.strength,
                        "context": link.context,
                        "user_id": link.user_id,
                        "created_at": link.created_at.isoformat(),
                    },
                )
                record = await result.single()
                if not record:
                    raise GraphStoreError(
                        f"Failed to create link: {link.source_id} -> {link.target_id} ({link_type})"
                    )

            logger.bind(link_id=link.id, link_type=link_type).debug(
                f"Created link: {link.source_id} -> {link.target_id} ({link_type})"
            )
            return link
        except GraphStoreError:
            raise
        except Exception as e:
            logger.bind(
                source_id=link.source_id,
                target_id=link.target_id,
                link_type=link_type,
                error=str(e),
            ).error(f"Failed to add link: {e}")
            raise GraphStoreError(f"Failed to add link: {e}") from e

    async def get_link(self, link_id: str) -> Link | None:
        """Get link by ID."""
        await self.connect()

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                f"MATCH (:Note)-[r {{id: $id}}]->(:Note) RETURN {_LINK_RETURN}",
                {"id": link_id},
            )
            record = await result.single()
            if not record:
                return None
            return self._record_to_link(record)

    async def get_link_between(
        self, source_id: str, target_id: str, link_type: LinkType | None = None
    ) -> Link | None:
        """Find a directed link between two notes."""
        await self.connect()

        rel = f"[r:{LinkType(link_type).value}]" if link_type else "[r]"

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                f"""
                MATCH (:Note {{id: $source_id}})-{rel}->(:Note {{id: $target_id}})
                RETURN {_LINK_RETURN} LIMIT 1
                """,
                {"source_id": source_id, "target_id": target_id},
            )
            record = await result.single()
            if not record:
                return None
            return self._record_to_link(record)

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link."""
        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                result = await session.run(
                    "MATCH ()-[r {id: $id}]->() DELETE r RETURN count(r) AS removed",
                    {"id": link_id},
                )
                record = await result.single()
                return bool(record and record["removed"])
        except Exception as e:
            logger.bind(link_id=link_id, error=str(e)).error(
                f"Failed to delete link {link_id}: {e}"
            )
            raise GraphStoreError(f"Failed to delete link: {e}") from e

    async def list_links(self, user_id: str) -> list[Link]:
        """All links of a user, oldest first."""
        await self.connect()

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                f"""
                MATCH (:Note)-[r]->(:Note) WHERE r.user_id = $user_id
                RETURN {_LINK_RETURN} ORDER BY r.created_at, r.id
                """,
                {"user_id": user_id},
            )
            records = await result.data()
            return [self._record_to_link(record) for record in records]

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
        rel = "[r]"
        if link_types:
            rel = f"[r:{'|'.join(LinkType(t).value for t in link_types)}]"

        if direction == LinkDirection.OUTGOING:
            pattern = f"(m:Note {{id: $id}})-{rel}->(n:Note)"
        elif direction == LinkDirection.INCOMING:
            pattern = f"(m:Note {{id: $id}})<-{rel}-(n:Note)"
        else:
            pattern = f"(m:Note {{id: $id}})-{rel}-(n:Note)"

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                f"MATCH {pattern} RETURN n, {_LINK_RETURN} ORDER BY r.created_at, r.id",
                {"id": note_id},
            )
            records = await result.data()
            return [
                (self._record_to_link(record), self._props_to_note(record["n"]))
                for record in records
            ]

    async def get_degrees(self, user_id: str) -> dict[str, tuple[int, int]]:
        """In/out degree per note."""
        await self.connect()

        async with self.driver.session(database=self.database) as session:
            result = await session.run(
                """
                MATCH (n:Note {user_id: $user_id})
                RETURN n.id AS id,
                       COUNT { (n)<-[]-(:Note) } AS in_degree,
                       COUNT { (n)-[]->(:Note) } AS out_degree
                """,
                {"user_id": user_id},
            )
            records = await result.data()
            return {r["id"]: (r["in_degree"], r["out_degree"]) for r in records}

    async def close(self) -> None:
        """Close the Neo4j driver."""
        if self.driver is not None:
            await self.driver.close()
            self.driver = None

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    async def _fetch_notes(self, query: str, params: dict[str, Any]) -> list[Note]:
        async with self.driver.session(database=self.database) as session:
            result = await session.run(query, params)
            records = await result.data()
            return [self._props_to_note(record["n"]) for record in records]

    @staticmethod
    def _note_to_props(note: Note) -> dict[str, Any]:
        props = note.model_dump(mode="json", exclude={"id"})
        # Neo4j stores null as "property absent"
        return {k: v for k, v in props.items() if v is not None}

    @staticmethod
    def _props_to_note(props: Mapping[str, Any]) -> Note:
        """Convert Neo4j node properties to a Note."""
        last_accessed = props.get("last_accessed_at")
        return Note(
            id=props["id"],
            user_id=props["user_id"],
            title=props["title"],
            content=props.get("content", ""),
            summary=props.get("summary", ""),
            tags=list(props.get("tags") or []),
            category=props.get("category", ""),
            status=NoteStatus(props.get("status", NoteStatus.DRAFT.value)),
            priority=NotePriority(props.get("priority", NotePriority.NORMAL.value)),
            is_public=props.get("is_public", False),
            is_favorite=props.get("is_favorite", False),
            word_count=props.get("word_count", 0),
            reading_time=props.get("reading_time", 1),
            quality_score=props.get("quality_score", 0.0),
            view_count=props.get("view_count", 0),
            created_at=datetime.fromisoformat(props["created_at"]),
            updated_at=datetime.fromisoformat(props["updated_at"]),
            last_accessed_at=datetime.fromisoformat(last_accessed) if last_accessed else None,
        )

    @staticmethod
    def _record_to_link(record: Mapping[str, Any]) -> Link:
        """Convert a RETURN row built from _LINK_RETURN to a Link."""
        props = record["link"]
        return Link(
            id=props["id"],
            source_id=record["source_id"],
            target_id=record["target_id"],
            type=LinkType(record["link_type"]),
            strength=props.get("strength", 1.0),
            context=props.get("context"),
            user_id=props["user_id"],
            created_at=datetime.fromisoformat(props["created_at"]),
        )
