"""
Mutation events published by the note engine.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class NoteEventType(str, Enum):
    """Kinds of graph mutations."""

    NOTE_CREATED = "note.created"
    NOTE_UPDATED = "note.updated"
    NOTE_DELETED = "note.deleted"
    LINK_CREATED = "link.created"
    LINK_REMOVED = "link.removed"


class NoteEvent(BaseModel):
    """A single mutation notification."""

    type: NoteEventType
    user_id: str
    note_id: str
    # Other note touched by a link event
    related_note_id: str | None = None
    link_id: str | None = None
    content_changed: bool = False
    occurred_at: datetime = Field(default_factory=datetime.now)
