"""Metrics collection for the feed ranker."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class FeedMetrics:
    """Metrics for feed ranking operations.

    Attributes:
        requests_by_mode: Feed requests per ranking mode.
        empty_feeds: Requests served by the zero-result fast path.
        mode_fallbacks: Requests whose mode selector was unrecognized.
        posts_returned: Total posts returned across requests.
        last_rank_duration_ms: Duration of the most recent ranking.
        tag_trend_requests: Trending tag computations.
    """

    requests_by_mode: dict[str, int] = field(default_factory=dict)
    empty_feeds: int = 0
    mode_fallbacks: int = 0
    posts_returned: int = 0
    last_rank_duration_ms: float = 0.0
    tag_trend_requests: int = 0

    _instance: ClassVar["FeedMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FeedMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, mode: str) -> None:
        """Record a feed request for a mode."""
        self.requests_by_mode[mode] = self.requests_by_mode.get(mode, 0) + 1

    def record_empty_feed(self) -> None:
        """Record a request served by the empty fast path."""
        self.empty_feeds += 1

    def record_mode_fallback(self) -> None:
        """Record an unrecognized mode selector."""
        self.mode_fallbacks += 1

    def record_posts_returned(self, count: int, duration_ms: float) -> None:
        """Record a served page.

        Args:
            count: Posts on the page.
            duration_ms: Ranking duration in milliseconds.
        """
        self.posts_returned += count
        self.last_rank_duration_ms = duration_ms

    def record_tag_trends(self) -> None:
        """Record a trending tag computation."""
        self.tag_trend_requests += 1

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        return {
            "requests_by_mode": dict(self.requests_by_mode),
            "empty_feeds": self.empty_feeds,
            "mode_fallbacks": self.mode_fallbacks,
            "posts_returned": self.posts_returned,
            "last_rank_duration_ms": self.last_rank_duration_ms,
            "tag_trend_requests": self.tag_trend_requests,
        }
