"""
Note model with derived content metrics and ownership.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 100_000
SUMMARY_MAX_LENGTH = 500


class NoteStatus(str, Enum):
    """Publication status of a note."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class NotePriority(str, Enum):
    """User-assigned priority."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Note(BaseModel):
    """
    A user-owned document in the knowledge graph.

    Title, content, summary and tags are normalized by the ContentAnalyzer
    before a Note is built; the derived metrics (word_count, reading_time,
    quality_score) are computed there as well.
    """

    # Core identity
    id: str = Field(..., description="Unique note ID (note_xxx)")
    user_id: str = Field(..., description="Owner user ID")

    # Content
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(default="", max_length=CONTENT_MAX_LENGTH)
    summary: str = Field(default="", max_length=SUMMARY_MAX_LENGTH)
    tags: list[str] = Field(default_factory=list, description="Lower-cased tags")
    category: str = Field(default="", description="Free-form category")

    # State
    status: NoteStatus = Field(default=NoteStatus.DRAFT)
    priority: NotePriority = Field(default=NotePriority.NORMAL)
    is_public: bool = Field(default=False)
    is_favorite: bool = Field(default=False)

    # Derived metrics
    word_count: int = Field(default=0, ge=0)
    reading_time: int = Field(default=1, ge=1, description="Reading time in minutes")
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)

    # Access tracking
    view_count: int = Field(default=0, ge=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    last_accessed_at: datetime | None = Field(default=None)

    def mark_accessed(self, when: datetime | None = None) -> None:
        """
        Record a read of this note.

        last_accessed_at never moves backwards, even if ``when`` is older
        than the recorded value.
        """
        when = when or datetime.now()
        if self.last_accessed_at is None or when > self.last_accessed_at:
            self.last_accessed_at = when
        self.view_count += 1

    def touch(self) -> None:
        """Bump updated_at to now."""
        self.updated_at = max(datetime.now(), self.updated_at)

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id


class NoteUpdate(BaseModel):
    """Partial update of a note. Only provided fields are changed."""

    title: str | None = None
    content: str | None = None
    summary: str | None = None
    tags: list[str] | None = None
    category: str | None = None
    status: NoteStatus | None = None
    priority: NotePriority | None = None
    is_public: bool | None = None
    is_favorite: bool | None = None

    def provided_fields(self) -> set[str]:
        """Names of the fields the caller actually set."""
        return {name for name in self.model_fields_set if getattr(self, name) is not None}
