"""Connection-priority merge of published posts."""

import heapq
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from community_feed.graph.models import ViewerContext
from community_feed.store.models import Post
from community_feed.store.query import PostQuery


PostFinder = Callable[[PostQuery], list[Post]]


@dataclass
class FeedBuckets:
    """Disjoint partitions of the published posts, each newest first.

    Attributes:
        recent_connection: Connection posts inside the recency window.
        other: Posts by everyone outside the connected set.
        older_connection: Connection posts at or beyond the recency window.
    """

    recent_connection: list[Post] = field(default_factory=list)
    other: list[Post] = field(default_factory=list)
    older_connection: list[Post] = field(default_factory=list)

    def merged(self) -> list[Post]:
        """Recent connection posts first, then the rest as one timeline.

        ``other`` and ``older_connection`` are interleaved by creation time,
        not appended bucket after bucket.
        """
        timeline = heapq.merge(
            self.other,
            self.older_connection,
            key=lambda p: p.created_at,
            reverse=True,
        )
        return [*self.recent_connection, *timeline]


def fetch_buckets(
    find: PostFinder,
    viewer: ViewerContext,
    cutoff: datetime,
) -> FeedBuckets:
    """Retrieve the three partitions for a viewer with connections.

    Queries run sequentially; each is a separate snapshot of the store.

    Args:
        find: Returns matching posts newest first.
        viewer: Viewer and connected set.
        cutoff: Start of the recency window.

    Returns:
        FeedBuckets with each bucket sorted newest first.
    """
    connected = viewer.connected_ids
    return FeedBuckets(
        recent_connection=find(
            PostQuery.published(author_in=connected, created_gte=cutoff)
        ),
        other=find(PostQuery.published(author_not_in=connected)),
        older_connection=find(
            PostQuery.published(author_in=connected, created_lt=cutoff)
        ),
    )
