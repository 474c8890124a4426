"""
Custom exception hierarchy for NoteGraph.

Provides structured error types for better error handling and debugging.
All exceptions inherit from NoteGraphError for easy catching.
"""


class NoteGraphError(Exception):
    """
    Base exception for all NoteGraph errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize NoteGraph error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(NoteGraphError):
    """
    Validation errors.
    Raised when input validation fails, before any store mutation happens.
    """

    pass


class NotFoundError(NoteGraphError):
    """
    Resource not found errors.
    Raised when a requested note, link or path doesn't exist.
    """

    pass


class AccessDeniedError(NoteGraphError):
    """
    Ownership errors.
    Raised when an entity exists but belongs to another user.
    """

    def __init__(self, resource_id: str, user_id: str, message: str | None = None):
        super().__init__(
            message or f"User {user_id} cannot access {resource_id}",
            context={"resource_id": resource_id, "user_id": user_id},
        )
        self.resource_id = resource_id
        self.user_id = user_id


class StoreError(NoteGraphError):
    """
    Base exception for store operations.
    Used for internal errors related to data storage operations.
    """

    pass


class GraphStoreError(StoreError):
    """
    Graph store operation errors.
    Raised when graph database operations fail.
    """

    pass


class CacheError(NoteGraphError):
    """
    Cache backend errors.
    Callers degrade to recomputation when they see one.
    """

    pass


class ConfigurationError(NoteGraphError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
