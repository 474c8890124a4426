"""
Search query and result models.

Queries and results are ephemeral: they are never persisted, only cached.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from notegraph.models.note import Note, NoteStatus


class SearchFilters(BaseModel):
    """Field filters applied as a post-filter over the search candidates."""

    status: NoteStatus | None = None
    favorite: bool | None = None
    after: datetime | None = Field(default=None, description="Only notes created at/after")

    def is_empty(self) -> bool:
        return self.status is None and self.favorite is None and self.after is None

    def matches(self, note: Note) -> bool:
        """Check a note against every filter that is set."""
        if self.status is not None and note.status != self.status:
            return False
        if self.favorite is not None and note.is_favorite != self.favorite:
            return False
        if self.after is not None and note.created_at < self.after:
            return False
        return True


class SearchQuery(BaseModel):
    """A search request: free text plus optional tags, filters and paging."""

    query: str
    tags: list[str] = Field(default_factory=list)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    offset: int = 0
    limit: int = 50
    force_refresh: bool = False


class ParsedQuery(BaseModel):
    """Query text split into phrases, tags and free-text terms."""

    terms: list[str] = Field(default_factory=list)
    phrases: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    def has_full_text_terms(self) -> bool:
        return bool(self.terms or self.phrases)

    def has_tags(self) -> bool:
        return bool(self.tags)

    @property
    def full_text(self) -> list[str]:
        """Phrases and terms, in that order, for store-side text matching."""
        return [*self.phrases, *self.terms]


class ScoredNote(BaseModel):
    """A search hit with its relevance score."""

    note: Note
    score: float = Field(..., ge=0.0, le=1.0)


class GraphSearchHit(BaseModel):
    """A note found by walking links out from a start note."""

    note: Note
    score: float = Field(..., ge=0.0, le=1.0)
    distance: int = Field(..., ge=0, description="Hops from the start note; 0 is the start itself")


class SearchResult(BaseModel):
    """Ranked, paginated search results with facet counts."""

    notes: list[ScoredNote] = Field(default_factory=list)
    total: int = 0
    facets: dict[str, int] = Field(default_factory=dict)
    query: str = ""
    search_time_ms: float = 0.0
    cached: bool = False


class SimilarNote(BaseModel):
    """A note and its similarity to a source note."""

    note: Note
    score: float = Field(..., ge=0.0, le=1.0)
