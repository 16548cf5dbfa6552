"""Domain exceptions for the document store.

This module defines the exception hierarchy for the persistence boundary.
Infrastructure failures (database unreachable, query errors) are separated
from domain errors (duplicate connections, missing documents) so callers can
translate them into user-facing responses without inspecting driver errors.
"""


class StoreError(Exception):
    """Base exception for all document store errors.

    Every exception raised across the store boundary inherits from this class
    so the feed ranker and its callers can handle store failures uniformly.
    """


class StoreUnavailableError(StoreError):
    """Raised when the persistence layer cannot be reached or queried.

    Wraps the underlying driver error (available as ``__cause__``) so that
    driver-specific error objects never leak through the ranker's return types.
    """

    def __init__(self, operation: str, message: str = "Store unavailable") -> None:
        """Initialize the error.

        Args:
            operation: Name of the store operation that failed.
            message: Human-readable error message.
        """
        self.operation = operation
        super().__init__(f"{message} during {operation}")


class StoreNotConnectedError(StoreError):
    """Raised when a store is used before ``connect()`` was called."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class MigrationError(StoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")


class StoreConflictError(StoreError):
    """Raised when a write violates a uniqueness or integrity constraint."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        """Initialize the error.

        Args:
            operation: Name of the store operation that failed.
            message: Optional human-readable error message.
        """
        self.operation = operation
        super().__init__(message or f"Constraint violated during {operation}")


class DuplicateConnectionError(StoreConflictError):
    """Raised when a connection already exists for an unordered user pair."""

    def __init__(self, user_a: str, user_b: str) -> None:
        """Initialize the error with the offending pair.

        Args:
            user_a: One user of the pair.
            user_b: The other user of the pair.
        """
        self.user_a = user_a
        self.user_b = user_b
        super().__init__(
            "insert_connection",
            f"Connection already exists between {user_a} and {user_b}",
        )


class ConnectionNotFoundError(StoreError):
    """Raised when a requested connection record does not exist."""

    def __init__(self, connection_id: str) -> None:
        """Initialize the error with the missing connection ID.

        Args:
            connection_id: The connection ID that was not found.
        """
        self.connection_id = connection_id
        super().__init__(f"Connection not found: {connection_id}")
