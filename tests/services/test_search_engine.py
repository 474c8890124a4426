"""
Tests for SearchEngine.

Tests query validation, candidate retrieval, scoring, ordering, pagination,
facets, graph-scoped search, similarity and auto-complete suggestions.
"""

from datetime import datetime, timedelta

import pytest
from loguru import logger

from notegraph.config import SearchConfig
from notegraph.models.note import NoteStatus
from notegraph.models.relationships import LinkType
from notegraph.models.search import SearchFilters, SearchQuery
from notegraph.services.search_engine import SearchEngine
from notegraph.utils.exceptions import AccessDeniedError, NotFoundError, ValidationError


@pytest.fixture
async def library(sqlite_store, make_note):
    """Three notes on unrelated subjects plus one from another user."""
    notes = [
        make_note(
            "graph_db",
            title="Graph Databases",
            content="Neo4j stores nodes and edges",
            tags=["graphs", "databases"],
            status=NoteStatus.PUBLISHED,
            age_minutes=1,
        ),
        make_note(
            "sql",
            title="SQL Basics",
            content="Tables, joins and the occasional graph query",
            tags=["databases"],
            age_minutes=2,
        ),
        make_note(
            "cooking",
            title="Cooking Pasta",
            content="Boil water, add salt",
            tags=["food"],
            is_favorite=True,
            age_minutes=3,
        ),
        make_note("foreign", user_id="user-2", title="Graph theory", content="graph graph"),
    ]
    for note in notes:
        await sqlite_store.add_note(note)
    return {note.id: note for note in notes}


@pytest.fixture
def captured_warnings():
    """Messages logged at WARNING or above while the test runs."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.mark.unit
class TestValidation:
    """Query validation happens before any store access."""

    def test_empty_query(self, search_engine):
        """Test blank queries are rejected."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            search_engine.validate(SearchQuery(query="   "))

    def test_negative_offset(self, search_engine):
        """Test negative offsets are rejected."""
        with pytest.raises(ValidationError, match="Offset"):
            search_engine.validate(SearchQuery(query="graph", offset=-1))

    def test_limit_bounds(self, search_engine):
        """Test limits below 1 and above the cap are rejected."""
        with pytest.raises(ValidationError):
            search_engine.validate(SearchQuery(query="graph", limit=0))
        with pytest.raises(ValidationError, match="cannot exceed 500"):
            search_engine.validate(SearchQuery(query="graph", limit=501))

    def test_limit_at_cap(self, search_engine):
        """Test the cap itself is allowed."""
        search_engine.validate(SearchQuery(query="graph", limit=500))


@pytest.mark.unit
@pytest.mark.asyncio
class TestSearch:
    """Relevance search over one user's notes."""

    async def test_title_match_outranks_content_match(self, search_engine, library):
        """Test the title hit ranks first and unrelated notes are excluded."""
        result = await search_engine.search(SearchQuery(query="graph"), "user-1")

        assert [s.note.id for s in result.notes] == ["graph_db", "sql"]
        assert result.total == 2
        assert result.notes[0].score > result.notes[1].score
        assert result.query == "graph"
        assert result.search_time_ms >= 0
        assert result.cached is False

    async def test_scores(self, search_engine, library):
        """Test additive scoring: title 0.4, content 0.3, recency 0.1."""
        result = await search_engine.search(SearchQuery(query="graph"), "user-1")
        scores = {s.note.id: s.score for s in result.notes}

        assert scores["graph_db"] == pytest.approx(0.5)
        assert scores["sql"] == pytest.approx(0.4)

    async def test_other_users_never_returned(self, search_engine, library):
        """Test results are scoped to the caller."""
        result = await search_engine.search(SearchQuery(query="theory"), "user-1")

        assert result.total == 0
        assert result.notes == []

    async def test_case_insensitive(self, search_engine, library):
        """Test matching ignores case."""
        result = await search_engine.search(SearchQuery(query="PASTA"), "user-1")

        assert [s.note.id for s in result.notes] == ["cooking"]

    async def test_tag_query(self, search_engine, library):
        """Test #tag queries match by tag."""
        result = await search_engine.search(SearchQuery(query="#graphs"), "user-1")

        assert [s.note.id for s in result.notes] == ["graph_db"]

    async def test_phrase_query(self, search_engine, library):
        """Test quoted phrases match as a unit."""
        result = await search_engine.search(SearchQuery(query='"boil water"'), "user-1")

        assert [s.note.id for s in result.notes] == ["cooking"]

    async def test_tag_scoring(self, search_engine, library):
        """Test each note tag found in the query adds 0.2."""
        result = await search_engine.search(SearchQuery(query="databases"), "user-1")
        scores = {s.note.id: s.score for s in result.notes}

        # title 0.4 + tag "databases" 0.2 + recency 0.1
        assert scores["graph_db"] == pytest.approx(0.7)
        # Tags alone only retrieve for #tag queries
        assert "sql" not in scores

    async def test_explicit_tags_filter(self, search_engine, library):
        """Test explicit tags keep only notes carrying one of them."""
        result = await search_engine.search(
            SearchQuery(query="graph", tags=["#Graphs"]), "user-1"
        )

        assert [s.note.id for s in result.notes] == ["graph_db"]

    async def test_status_filter(self, search_engine, library):
        """Test field filters apply after retrieval."""
        result = await search_engine.search(
            SearchQuery(query="graph", filters=SearchFilters(status=NoteStatus.DRAFT)), "user-1"
        )

        assert [s.note.id for s in result.notes] == ["sql"]

    async def test_favorite_boost(self, search_engine, sqlite_store, make_note):
        """Test favorites get a small boost over otherwise equal notes."""
        await sqlite_store.add_note(make_note("plain", title="Rust notes", age_minutes=1))
        await sqlite_store.add_note(
            make_note("fav", title="Rust notes", is_favorite=True, age_minutes=2)
        )

        result = await search_engine.search(SearchQuery(query="rust"), "user-1")

        assert [s.note.id for s in result.notes] == ["fav", "plain"]
        assert result.notes[0].score - result.notes[1].score == pytest.approx(0.05)

    async def test_recency_bonus(self, search_engine, sqlite_store, make_note):
        """Test notes untouched for longer than recency_days lose the bonus."""
        await sqlite_store.add_note(make_note("new", title="Rust"))
        await sqlite_store.add_note(make_note("old", title="Rust", age_minutes=60 * 24 * 45))

        result = await search_engine.search(SearchQuery(query="rust"), "user-1")
        scores = {s.note.id: s.score for s in result.notes}

        assert scores["new"] == pytest.approx(0.5)
        assert scores["old"] == pytest.approx(0.4)

    async def test_equal_scores_newest_first(self, search_engine, sqlite_store, make_note):
        """Test ties are broken by most recent update."""
        for age in (5, 1, 3):
            await sqlite_store.add_note(make_note(f"n{age}", title="Rust", age_minutes=age))

        result = await search_engine.search(SearchQuery(query="rust"), "user-1")

        assert [s.note.id for s in result.notes] == ["n1", "n3", "n5"]

    async def test_pagination_and_facets(self, search_engine, sqlite_store, make_note):
        """Test total and facets cover all matches, notes only the page."""
        for i in range(5):
            await sqlite_store.add_note(
                make_note(
                    f"n{i}",
                    title="Rust",
                    status=NoteStatus.PUBLISHED if i % 2 else NoteStatus.DRAFT,
                    is_favorite=i == 0,
                    age_minutes=i,
                )
            )

        result = await search_engine.search(SearchQuery(query="rust", offset=1, limit=2), "user-1")

        assert result.total == 5
        assert len(result.notes) == 2
        assert result.facets == {
            "total": 5,
            "status:DRAFT": 3,
            "status:PUBLISHED": 2,
            "favorite:true": 1,
            "favorite:false": 4,
        }

    async def test_offset_past_end(self, search_engine, library):
        """Test an offset beyond the matches returns an empty page."""
        result = await search_engine.search(SearchQuery(query="graph", offset=10), "user-1")

        assert result.notes == []
        assert result.total == 2


    async def test_title_match_strictly_outranks_identical_note(
        self, search_engine, sqlite_store, make_note
    ):
        """Test a title hit alone lifts an otherwise identical note."""
        content = "Ownership rules and the borrow checker"
        await sqlite_store.add_note(
            make_note("titled", title="Borrow checker", content=content, tags=["rust"])
        )
        await sqlite_store.add_note(
            make_note("plain", title="Ownership", content=content, tags=["rust"])
        )

        result = await search_engine.search(SearchQuery(query="borrow checker"), "user-1")
        scores = {s.note.id: s.score for s in result.notes}

        assert [s.note.id for s in result.notes] == ["titled", "plain"]
        assert scores["titled"] > scores["plain"]
        assert scores["titled"] - scores["plain"] == pytest.approx(0.4)

    async def test_braces_and_format_characters_in_query(
        self, search_engine, sqlite_store, make_note
    ):
        """Test queries with braces or percent signs are matched literally."""
        await sqlite_store.add_note(
            make_note("dict", title="Dict literal", content="python {key} syntax")
        )

        exact = await search_engine.search(SearchQuery(query="{key}"), "user-1")
        brace = await search_engine.search(SearchQuery(query="{"), "user-1")
        noise = await search_engine.search(SearchQuery(query="{0} %s {{}} %(x)d"), "user-1")

        assert [s.note.id for s in exact.notes] == ["dict"]
        assert [s.note.id for s in brace.notes] == ["dict"]
        assert noise.total == 0

    async def test_candidate_limit_warns(self, sqlite_store, make_note, captured_warnings):
        """Test hitting the full-text candidate limit is logged."""
        engine = SearchEngine(sqlite_store, SearchConfig(candidate_limit=2))
        for i in range(3):
            await sqlite_store.add_note(make_note(f"n{i}", title="Rust", age_minutes=i))

        result = await engine.search(SearchQuery(query="rust"), "user-1")

        assert result.total == 2
        assert any("candidate limit" in message for message in captured_warnings)

    async def test_below_candidate_limit_is_quiet(
        self, search_engine, library, captured_warnings
    ):
        await search_engine.search(SearchQuery(query="graph"), "user-1")

        assert captured_warnings == []


@pytest.fixture
async def chain(sqlite_store, make_note, make_link):
    """
    start -> middle -> far -> farthest, plus an unlinked note and a note
    that only links *into* start. Every note except middle mentions "rust".
    """
    notes = [
        make_note("start", title="Rust index", content="entry point", age_minutes=1),
        make_note("middle", title="Systems", content="memory safety", age_minutes=2),
        make_note("far", title="Ownership", content="rust borrow rules", age_minutes=3),
        make_note("farthest", title="Rust async", content="tokio", age_minutes=4),
        make_note("island", title="Rust island", content="not linked", age_minutes=5),
        make_note("inbound", title="Rust inbound", content="links to start", age_minutes=6),
    ]
    for note in notes:
        await sqlite_store.add_note(note)
    for source_id, target_id in (
        ("start", "middle"),
        ("middle", "far"),
        ("far", "farthest"),
        ("inbound", "start"),
    ):
        await sqlite_store.add_link(make_link(source_id, target_id, LinkType.BUILDS_ON))


@pytest.mark.unit
@pytest.mark.asyncio
class TestSearchFrom:
    """Search restricted to notes reachable over outgoing links."""

    async def test_matches_within_depth(self, search_engine, chain):
        """Test only reachable matching notes within the hop budget are returned."""
        hits = await search_engine.search_from("start", "rust", "user-1", max_depth=2)

        assert {h.note.id for h in hits} == {"start", "far"}
        distances = {h.note.id: h.distance for h in hits}
        assert distances == {"start": 0, "far": 2}

    async def test_deeper_walk_reaches_more(self, search_engine, chain):
        hits = await search_engine.search_from("start", "rust", "user-1", max_depth=3)

        assert {h.note.id for h in hits} == {"start", "far", "farthest"}

    async def test_ordered_by_score(self, search_engine, chain):
        """Test title hits rank above content-only hits."""
        hits = await search_engine.search_from("start", "rust", "user-1", max_depth=3)

        # far only mentions rust in its content
        assert hits[-1].note.id == "far"
        assert all(a.score >= b.score for a, b in zip(hits, hits[1:]))

    async def test_depth_zero_searches_start_only(self, search_engine, chain):
        hits = await search_engine.search_from("start", "rust", "user-1", max_depth=0)

        assert [h.note.id for h in hits] == ["start"]

    async def test_non_matching_start_is_skipped(self, search_engine, chain):
        hits = await search_engine.search_from("middle", "rust", "user-1", max_depth=2)

        # farthest has the title hit, so it outranks the closer note
        assert [h.note.id for h in hits] == ["farthest", "far"]

    async def test_empty_query(self, search_engine, chain):
        with pytest.raises(ValidationError):
            await search_engine.search_from("start", "  ", "user-1")

    async def test_depth_above_cap(self, search_engine, chain):
        with pytest.raises(ValidationError):
            await search_engine.search_from("start", "rust", "user-1", max_depth=6)

    async def test_unknown_and_foreign_start(self, search_engine, chain):
        """Test ownership is checked before walking."""
        with pytest.raises(NotFoundError):
            await search_engine.search_from("missing", "rust", "user-1")
        with pytest.raises(AccessDeniedError):
            await search_engine.search_from("start", "rust", "user-2")


@pytest.mark.unit
class TestScore:
    """Score properties."""

    def test_adding_matching_tag_never_lowers_score(self, search_engine, make_note):
        """Test monotonicity in matching tags."""
        now = datetime.now()
        base = make_note("n", title="Graph", content="graph theory", tags=[])
        tagged = base.model_copy(update={"tags": ["graph"]})
        double = base.model_copy(update={"tags": ["graph", "theory"]})

        scores = [search_engine.score(n, "graph theory", now) for n in (base, tagged, double)]

        assert scores == sorted(scores)

    def test_score_clamped(self, search_engine, make_note):
        """Test scores never exceed 1.0."""
        note = make_note(
            "n", title="a b c d", content="a b c d", tags=["a", "b", "c", "d"], is_favorite=True
        )

        assert search_engine.score(note, "a b c d", datetime.now()) == 1.0

    def test_no_recency_for_old_note(self, search_engine, make_note):
        """Test the recency window."""
        note = make_note("n", title="x")
        later = datetime.now() + timedelta(days=31)

        assert search_engine.score(note, "zzz", later) == 0.0


@pytest.mark.unit
@pytest.mark.asyncio
class TestSimilarAndSuggestions:
    """Similar notes and auto-complete."""

    async def test_find_similar(self, search_engine, sqlite_store, library, make_note):
        """Test similar notes share tags or words; dissimilar ones are dropped."""
        await sqlite_store.add_note(
            make_note(
                "graph_intro",
                title="Intro to Graph Databases",
                content="nodes and edges",
                tags=["graphs"],
            )
        )

        similar = await search_engine.find_similar(library["graph_db"], limit=5)
        ids = [s.note.id for s in similar]

        assert ids[0] == "graph_intro"
        assert "cooking" not in ids
        assert "foreign" not in ids
        assert "graph_db" not in ids

    async def test_find_similar_limit_validation(self, search_engine, library):
        """Test the limit must be positive."""
        with pytest.raises(ValidationError):
            await search_engine.find_similar(library["graph_db"], limit=0)

    async def test_suggest_tags_then_titles(self, search_engine, library):
        """Test matching tags come first, then titles."""
        suggestions = await search_engine.suggest("gr", "user-1")

        assert suggestions == ["#graphs", "Graph Databases"]

    async def test_suggest_hash_prefix(self, search_engine, library):
        """Test a leading # completes tags."""
        assert await search_engine.suggest("#da", "user-1") == ["#databases"]

    async def test_suggest_too_short(self, search_engine, library):
        """Test single characters give no suggestions."""
        assert await search_engine.suggest("g", "user-1") == []

    async def test_suggest_limit(self, search_engine, library):
        """Test the suggestion limit."""
        assert len(await search_engine.suggest("a", "user-1", limit=1)) == 0
        assert len(await search_engine.suggest("as", "user-1", limit=1)) == 1
