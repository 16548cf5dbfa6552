"""Data models for the feed ranker."""

import math
from enum import Enum
from typing import Annotated, Any

from pydantic import Field

from community_feed.data_model import StrictBaseModel
from community_feed.ranker.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from community_feed.store.models import Post


class RankingMode(str, Enum):
    """Feed ordering policies.

    - latest: Connection-priority merge, newest first
    - oldest: All posts by ascending creation time
    - popular: Most liked first
    - trending / mixed: Recency-decayed engagement score
    - random: Uniform random sample
    """

    LATEST = "latest"
    OLDEST = "oldest"
    POPULAR = "popular"
    TRENDING = "trending"
    MIXED = "mixed"
    RANDOM = "random"

    @classmethod
    def from_value(cls, value: Any) -> "RankingMode | None":
        """Parse a selector case-insensitively.

        Args:
            value: Raw selector, usually a query-string value.

        Returns:
            The matching mode, or None when unrecognized.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def is_scored(self) -> bool:
        """Whether the mode attaches a numeric rank score to each post."""
        return self in (RankingMode.TRENDING, RankingMode.MIXED)

    @property
    def is_deterministic(self) -> bool:
        """Whether repeated calls over the same data give the same order."""
        return self is not RankingMode.RANDOM


AVAILABLE_MODES: tuple[str, ...] = tuple(mode.value for mode in RankingMode)


def _parse_positive_int(value: Any) -> int | None:
    """Parse a positive integer, returning None for anything else."""
    if isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed >= 1 else None


class PageRequest(StrictBaseModel):
    """A validated pagination request.

    Attributes:
        page: 1-based page number.
        page_size: Posts per page, capped at MAX_PAGE_SIZE.
    """

    page: Annotated[int, Field(ge=1)] = 1
    page_size: Annotated[int, Field(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(
        cls,
        page: Any = None,
        page_size: Any = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> "PageRequest":
        """Build a request from raw parameters, clamping invalid values.

        Unparsable or non-positive values fall back to page 1 and the
        default page size; oversized pages are capped.

        Args:
            page: Raw page number.
            page_size: Raw page size.
            default_page_size: Size used when ``page_size`` is unusable.
            max_page_size: Upper bound for the page size.

        Returns:
            A valid PageRequest.
        """
        cap = min(max_page_size, MAX_PAGE_SIZE)
        size = _parse_positive_int(page_size) or default_page_size
        return cls(
            page=_parse_positive_int(page) or 1,
            page_size=min(size, cap),
        )

    @property
    def skip(self) -> int:
        """Number of posts before this page."""
        return (self.page - 1) * self.page_size


class Pagination(StrictBaseModel):
    """Pagination metadata for a page of results."""

    current_page: Annotated[int, Field(ge=0)]
    total_pages: Annotated[int, Field(ge=0)]
    total_posts: Annotated[int, Field(ge=0)]
    has_next: bool
    has_prev: bool

    @classmethod
    def compute(cls, request: PageRequest, total_posts: int) -> "Pagination":
        """Derive page math for a total item count.

        Args:
            request: The page being served.
            total_posts: Size of the full ordered sequence.

        Returns:
            Pagination metadata.
        """
        total_pages = math.ceil(total_posts / request.page_size)
        return cls(
            current_page=request.page,
            total_pages=total_pages,
            total_posts=total_posts,
            has_next=request.page < total_pages,
            has_prev=request.page > 1,
        )

    @classmethod
    def empty(cls) -> "Pagination":
        """Pagination for an empty result, all fields zeroed."""
        return cls(
            current_page=0,
            total_pages=0,
            total_posts=0,
            has_next=False,
            has_prev=False,
        )


class ConnectionStats(StrictBaseModel):
    """Connection activity summary for the viewer.

    Attributes:
        connections_count: Accepted connections, excluding the viewer.
        recent_connection_posts: Published posts by connections inside the
            recency window.
    """

    connections_count: Annotated[int, Field(ge=0)] = 0
    recent_connection_posts: Annotated[int, Field(ge=0)] = 0


class FeedPost(StrictBaseModel):
    """A post with per-response display fields."""

    post: Post
    likes_count: int
    comments_count: int
    is_liked: bool
    is_from_connection: bool
    is_recent: bool
    rank_score: float | None = None

    @property
    def post_id(self) -> str:
        """Identifier of the wrapped post."""
        return self.post.post_id

    def to_json_dict(self) -> dict[str, Any]:
        """Flatten the post and its display fields for serialization."""
        data = self.post.model_dump(mode="json")
        data["likes"] = sorted(data["likes"])
        data.update(
            likes_count=self.likes_count,
            comments_count=self.comments_count,
            is_liked=self.is_liked,
            is_from_connection=self.is_from_connection,
            is_recent=self.is_recent,
        )
        if self.rank_score is not None:
            data["rank_score"] = self.rank_score
        return data


class FeedPage(StrictBaseModel):
    """One page of a ranked feed."""

    posts: list[FeedPost] = Field(default_factory=list)
    mode: RankingMode
    pagination: Pagination
    connection_stats: ConnectionStats = Field(default_factory=ConnectionStats)
    available_modes: list[str] = Field(default_factory=lambda: list(AVAILABLE_MODES))
    message: str | None = None

    def to_json_dict(self) -> dict[str, Any]:
        """Convert the page to a JSON-compatible dictionary."""
        return {
            "posts": [p.to_json_dict() for p in self.posts],
            "mode": self.mode.value,
            "pagination": self.pagination.model_dump(mode="json"),
            "connection_stats": self.connection_stats.model_dump(mode="json"),
            "available_modes": list(self.available_modes),
            "message": self.message,
        }


class OverviewStats(StrictBaseModel):
    """Community-wide activity counts.

    Attributes:
        total_posts: Published posts.
        total_connections: Accepted connections.
        recent_posts: Published posts inside the window.
        window_days: Window used for ``recent_posts``.
    """

    total_posts: Annotated[int, Field(ge=0)]
    total_connections: Annotated[int, Field(ge=0)]
    recent_posts: Annotated[int, Field(ge=0)]
    window_days: Annotated[int, Field(ge=1)]
