"""In-memory document store.

Implements the same read contract as ``SqliteDocumentStore`` over plain
Python lists. Useful for tests and for embedding the ranker without a
database.
"""

import random
from datetime import UTC, datetime

from community_feed.store.errors import (
    ConnectionNotFoundError,
    DuplicateConnectionError,
    StoreConflictError,
)
from community_feed.store.models import Connection, ConnectionStatus, Post, TagTrend
from community_feed.store.query import PostQuery
from community_feed.store.state_machine import ConnectionStateMachine


class InMemoryDocumentStore:
    """Process-local store for posts and connections."""

    def __init__(
        self,
        posts: list[Post] | None = None,
        connections: list[Connection] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            posts: Initial post documents.
            connections: Initial connection documents.
            rng: Random source for sampling.
        """
        self._posts: dict[str, Post] = {}
        self._connections: dict[str, Connection] = {}
        self._rng = rng or random.Random()  # noqa: S311

        for post in posts or []:
            self.save_post(post)
        for connection in connections or []:
            self.insert_connection(connection)

    # ===== Posts =====

    def find_posts(
        self,
        query: PostQuery,
        *,
        newest_first: bool = True,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[Post]:
        """Find posts matching a query, ordered by creation time."""
        matched = sorted(
            (p for p in self._posts.values() if query.matches(p)),
            key=lambda p: (p.created_at, p.post_id),
            reverse=newest_first,
        )
        start = max(skip, 0)
        end = None if limit is None else start + limit
        return matched[start:end]

    def count_posts(self, query: PostQuery) -> int:
        """Count posts matching a query."""
        return sum(1 for p in self._posts.values() if query.matches(p))

    def aggregate_tags(self, recent_since: datetime) -> list[TagTrend]:
        """Aggregate tag counts over published posts."""
        totals: dict[str, int] = {}
        recents: dict[str, int] = {}

        for post in self._posts.values():
            if not post.is_published:
                continue
            is_recent = post.created_at >= recent_since
            for tag in set(post.tags):
                totals[tag] = totals.get(tag, 0) + 1
                if is_recent:
                    recents[tag] = recents.get(tag, 0) + 1

        return [
            TagTrend(tag=tag, total_count=total, recent_count=recents.get(tag, 0))
            for tag, total in totals.items()
        ]

    def sample_posts(self, query: PostQuery, size: int) -> list[Post]:
        """Draw a uniform random sample of matching posts."""
        candidates = [p for p in self._posts.values() if query.matches(p)]
        if size <= 0 or not candidates:
            return []
        return self._rng.sample(candidates, min(size, len(candidates)))

    def get_post(self, post_id: str) -> Post | None:
        """Get a post by ID."""
        return self._posts.get(post_id)

    def save_post(self, post: Post) -> Post:
        """Insert a post or replace the stored document with the same ID."""
        self._posts[post.post_id] = post
        return post

    # ===== Connections =====

    def connections_for(
        self, user_id: str, status: ConnectionStatus | None = None
    ) -> list[Connection]:
        """List connections where the user is either party, newest first."""
        matched = [
            c
            for c in self._connections.values()
            if c.involves(user_id) and (status is None or c.status == status)
        ]
        return sorted(matched, key=lambda c: c.created_at, reverse=True)

    def count_connections(self, status: ConnectionStatus | None = None) -> int:
        """Count connections, optionally filtered by status."""
        return sum(
            1
            for c in self._connections.values()
            if status is None or c.status == status
        )

    def get_connection(self, connection_id: str) -> Connection | None:
        """Get a connection by ID."""
        return self._connections.get(connection_id)

    def insert_connection(self, connection: Connection) -> Connection:
        """Insert a new connection.

        Raises:
            StoreConflictError: If the connection id is already taken.
            DuplicateConnectionError: If the pair already has a connection.
        """
        if connection.connection_id in self._connections:
            raise StoreConflictError("insert_connection")
        pair = connection.pair_key
        if any(c.pair_key == pair for c in self._connections.values()):
            raise DuplicateConnectionError(*pair)
        self._connections[connection.connection_id] = connection
        return connection

    def update_connection_status(
        self, connection_id: str, status: ConnectionStatus
    ) -> Connection:
        """Move a connection to a new status.

        Raises:
            ConnectionNotFoundError: If the connection does not exist.
            ConnectionTransitionError: If the transition is not allowed.
        """
        current = self._connections.get(connection_id)
        if current is None:
            raise ConnectionNotFoundError(connection_id)

        ConnectionStateMachine(connection_id, current.status).transition(status)
        updated = current.model_copy(
            update={"status": status, "updated_at": datetime.now(UTC)}
        )
        self._connections[connection_id] = updated
        return updated
