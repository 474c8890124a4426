"""Utility modules for NoteGraph."""

from notegraph.utils.exceptions import (
    AccessDeniedError,
    CacheError,
    ConfigurationError,
    GraphStoreError,
    NoteGraphError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from notegraph.utils.id_generator import generate_link_id, generate_note_id
from notegraph.utils.locks import KeyedLock
from notegraph.utils.logger import configure_from, get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "configure_from",
    # ID Generators
    "generate_note_id",
    "generate_link_id",
    # Concurrency
    "KeyedLock",
    # Exceptions
    "NoteGraphError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "StoreError",
    "GraphStoreError",
    "CacheError",
    "ConfigurationError",
]
