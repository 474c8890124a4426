"""
ID generation utilities for NoteGraph.

Provides consistent ID generation for all entity types:
- Notes: note_xxx
- Links: link_xxx
"""

from uuid import uuid4


def generate_note_id() -> str:
    """
    Generate unique Note ID.

    Returns:
        ID in format "note_xxx" where xxx is 12 hex characters
    """
    return f"note_{uuid4().hex[:12]}"


def generate_link_id() -> str:
    """
    Generate unique Link ID.

    Returns:
        ID in format "link_xxx" where xxx is 12 hex characters
    """
    return f"link_{uuid4().hex[:12]}"
