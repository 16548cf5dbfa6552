"""Protocol interface for document stores."""

from datetime import datetime
from typing import Protocol, runtime_checkable

from community_feed.store.models import Connection, ConnectionStatus, Post, TagTrend
from community_feed.store.query import PostQuery


@runtime_checkable
class DocumentStore(Protocol):
    """Read-side contract consumed by the feed ranker and graph accessor.

    Any backend implementing these methods can be plugged into the ranker.
    Implementations must raise ``StoreError`` subclasses for failures.
    """

    def find_posts(
        self,
        query: PostQuery,
        *,
        newest_first: bool = True,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[Post]:
        """Find posts matching a query, ordered by creation time.

        Args:
            query: Filters to apply.
            newest_first: Sort by ``created_at`` descending when True.
            limit: Maximum number of posts to return.
            skip: Number of leading posts to skip.

        Returns:
            Matching posts in the requested order.
        """
        ...

    def count_posts(self, query: PostQuery) -> int:
        """Count posts matching a query."""
        ...

    def aggregate_tags(self, recent_since: datetime) -> list[TagTrend]:
        """Aggregate tag counts over published posts.

        Args:
            recent_since: Posts created at or after this instant count as recent.

        Returns:
            One entry per distinct tag, in no particular order.
        """
        ...

    def sample_posts(self, query: PostQuery, size: int) -> list[Post]:
        """Draw a uniform random sample of matching posts.

        Args:
            query: Filters to apply.
            size: Maximum sample size.

        Returns:
            Up to ``size`` posts in random order.
        """
        ...

    def connections_for(
        self, user_id: str, status: ConnectionStatus | None = None
    ) -> list[Connection]:
        """List connections where the user is either party.

        Args:
            user_id: User whose connections to list.
            status: Optional status filter.

        Returns:
            Matching connections, newest first.
        """
        ...

    def count_connections(self, status: ConnectionStatus | None = None) -> int:
        """Count connections, optionally filtered by status."""
        ...
