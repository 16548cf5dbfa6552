"""Document store for posts and connections.

This module provides:
- The ``DocumentStore`` read contract consumed by the ranker
- A SQLite-backed implementation with schema migrations
- An in-memory implementation for tests and embedding
- Connection status transitions
"""

from community_feed.store.errors import (
    ConnectionNotFoundError,
    DuplicateConnectionError,
    MigrationError,
    StoreConflictError,
    StoreError,
    StoreNotConnectedError,
    StoreUnavailableError,
)
from community_feed.store.memory import InMemoryDocumentStore
from community_feed.store.metrics import StoreMetrics
from community_feed.store.models import (
    Comment,
    Connection,
    ConnectionStatus,
    Post,
    TagTrend,
)
from community_feed.store.protocols import DocumentStore
from community_feed.store.query import PostQuery
from community_feed.store.sqlite_store import SqliteDocumentStore
from community_feed.store.state_machine import (
    ConnectionStateMachine,
    ConnectionTransitionError,
)


__all__ = [
    # Errors
    "ConnectionNotFoundError",
    "DuplicateConnectionError",
    "MigrationError",
    "StoreConflictError",
    "StoreError",
    "StoreNotConnectedError",
    "StoreUnavailableError",
    # Metrics
    "StoreMetrics",
    # Models
    "Comment",
    "Connection",
    "ConnectionStatus",
    "Post",
    "PostQuery",
    "TagTrend",
    # State machine
    "ConnectionStateMachine",
    "ConnectionTransitionError",
    # Stores
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqliteDocumentStore",
]
