"""Filter conditions for post queries."""

from dataclasses import dataclass
from datetime import datetime

from community_feed.store.models import Post


@dataclass(frozen=True)
class PostQuery:
    """Conjunction of post filters understood by every document store.

    Unset fields do not constrain the result.

    Attributes:
        author_in: Only posts whose author is in this set.
        author_not_in: Only posts whose author is not in this set.
        is_published: Only posts with this publication flag.
        created_gte: Only posts created at or after this instant.
        created_lt: Only posts created strictly before this instant.
    """

    author_in: frozenset[str] | None = None
    author_not_in: frozenset[str] | None = None
    is_published: bool | None = None
    created_gte: datetime | None = None
    created_lt: datetime | None = None

    @classmethod
    def published(
        cls,
        author_in: frozenset[str] | None = None,
        author_not_in: frozenset[str] | None = None,
        created_gte: datetime | None = None,
        created_lt: datetime | None = None,
    ) -> "PostQuery":
        """Build a query restricted to published posts."""
        return cls(
            author_in=author_in,
            author_not_in=author_not_in,
            is_published=True,
            created_gte=created_gte,
            created_lt=created_lt,
        )

    def matches(self, post: Post) -> bool:
        """Check whether a post satisfies every filter.

        Args:
            post: Post to test.

        Returns:
            True if the post matches the query.
        """
        if self.author_in is not None and post.author_id not in self.author_in:
            return False
        if self.author_not_in is not None and post.author_id in self.author_not_in:
            return False
        if self.is_published is not None and post.is_published != self.is_published:
            return False
        if self.created_gte is not None and post.created_at < self.created_gte:
            return False
        return not (self.created_lt is not None and post.created_at >= self.created_lt)
