"""Community-wide activity counts."""

from datetime import datetime, timedelta

import structlog

from community_feed.data_model import as_utc, utc_now
from community_feed.ranker.constants import DEFAULT_TRENDING_WINDOW_DAYS
from community_feed.ranker.guard import call_store
from community_feed.ranker.models import OverviewStats
from community_feed.store.models import ConnectionStatus
from community_feed.store.protocols import DocumentStore
from community_feed.store.query import PostQuery


logger = structlog.get_logger()


class CommunityOverview:
    """Summarizes published posts and accepted connections."""

    def __init__(
        self,
        store: DocumentStore,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        self._store = store
        self._log = log or logger.bind(component="overview")

    def overview(
        self,
        window_days: int = DEFAULT_TRENDING_WINDOW_DAYS,
        now: datetime | None = None,
    ) -> OverviewStats:
        """Count posts and connections.

        Args:
            window_days: Window for ``recent_posts`` in days.
            now: Reference time; defaults to the current UTC time.

        Returns:
            OverviewStats snapshot.

        Raises:
            ValueError: If ``window_days`` is below 1.
            StoreError: If the store cannot be queried.
        """
        if window_days < 1:
            raise ValueError(f"window_days must be >= 1, got {window_days}")

        now = as_utc(now) if now else utc_now()
        since = now - timedelta(days=window_days)

        total_posts = call_store(
            self._log, "count_posts", self._store.count_posts, PostQuery.published()
        )
        recent_posts = call_store(
            self._log,
            "count_posts",
            self._store.count_posts,
            PostQuery.published(created_gte=since),
        )
        total_connections = call_store(
            self._log,
            "count_connections",
            self._store.count_connections,
            ConnectionStatus.ACCEPTED,
        )

        stats = OverviewStats(
            total_posts=total_posts,
            total_connections=total_connections,
            recent_posts=recent_posts,
            window_days=window_days,
        )
        self._log.info("overview_computed", **stats.model_dump())
        return stats
