"""
Link models and types for the note graph.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

CONTEXT_MAX_LENGTH = 500


class LinkType(str, Enum):
    """Types of directed links between notes."""

    REFERENCES = "REFERENCES"
    SUPPORTS = "SUPPORTS"
    CONTRADICTS = "CONTRADICTS"
    BUILDS_ON = "BUILDS_ON"
    RELATED_TO = "RELATED_TO"
    INSPIRED_BY = "INSPIRED_BY"
    CLARIFIES = "CLARIFIES"
    QUESTION = "QUESTION"
    ANSWER = "ANSWER"
    EXAMPLE = "EXAMPLE"


class LinkDirection(str, Enum):
    """Which links to follow when expanding a note's neighbourhood."""

    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


class Link(BaseModel):
    """Directed, typed, weighted edge from a source note to a target note."""

    id: str = Field(..., description="Unique link ID (link_xxx)")
    source_id: str
    target_id: str
    type: LinkType = LinkType.REFERENCES
    strength: float = Field(default=1.0, ge=0.0, le=1.0)
    context: str | None = Field(default=None, max_length=CONTEXT_MAX_LENGTH)
    user_id: str = Field(..., description="Owner of the source note")
    created_at: datetime = Field(default_factory=datetime.now)

    def other_end(self, note_id: str) -> str:
        """Return the id at the opposite end of the link from ``note_id``."""
        return self.target_id if note_id == self.source_id else self.source_id
