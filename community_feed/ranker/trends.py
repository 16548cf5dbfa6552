"""Trending tag aggregation."""

from datetime import datetime, timedelta

import structlog

from community_feed.data_model import as_utc, utc_now
from community_feed.ranker.constants import (
    DEFAULT_TRENDING_LIMIT,
    DEFAULT_TRENDING_WINDOW_DAYS,
)
from community_feed.ranker.guard import call_store
from community_feed.ranker.metrics import FeedMetrics
from community_feed.store.models import TagTrend
from community_feed.store.protocols import DocumentStore


logger = structlog.get_logger()


def sort_tag_trends(trends: list[TagTrend]) -> list[TagTrend]:
    """Order tags by recent count, then total count, then name."""
    return sorted(trends, key=lambda t: (-t.recent_count, -t.total_count, t.tag))


class TagTrendAggregator:
    """Computes windowed tag counts over published posts."""

    def __init__(
        self,
        store: DocumentStore,
        metrics: FeedMetrics | None = None,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            store: Document store to aggregate over.
            metrics: Optional metrics instance.
            log: Optional logger; defaults to a module logger bound to
                ``component="trends"``.
        """
        self._store = store
        self._metrics = metrics or FeedMetrics.get_instance()
        self._log = log or logger.bind(component="trends")

    def trending_tags(
        self,
        window_days: int = DEFAULT_TRENDING_WINDOW_DAYS,
        limit: int = DEFAULT_TRENDING_LIMIT,
        now: datetime | None = None,
    ) -> list[TagTrend]:
        """Rank tags by recent use.

        Each tag counts once per post that carries it. ``recent_count`` only
        includes posts created within ``window_days`` of ``now``.

        Args:
            window_days: Size of the recency window in days.
            limit: Maximum number of tags to return.
            now: Reference time; defaults to the current UTC time.

        Returns:
            At most ``limit`` tags, most recently active first.

        Raises:
            ValueError: If ``window_days`` or ``limit`` is below 1.
            StoreError: If the store cannot be queried.
        """
        if window_days < 1:
            raise ValueError(f"window_days must be >= 1, got {window_days}")
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        now = as_utc(now) if now else utc_now()
        since = now - timedelta(days=window_days)
        trends = call_store(self._log, "aggregate_tags", self._store.aggregate_tags, since)
        ranked = sort_tag_trends(trends)[:limit]

        self._metrics.record_tag_trends()
        self._log.info(
            "tag_trends_computed",
            window_days=window_days,
            tags_seen=len(trends),
            tags_returned=len(ranked),
        )
        return ranked
