"""Main feed ranker orchestrator."""

import time
from datetime import datetime, timedelta
from typing import Any

import structlog

from community_feed.data_model import as_utc, utc_now
from community_feed.graph.models import ViewerContext
from community_feed.ranker.config import RankingConfig
from community_feed.ranker.constants import EMPTY_FEED_MESSAGE
from community_feed.ranker.guard import call_store
from community_feed.ranker.merge import FeedBuckets, fetch_buckets
from community_feed.ranker.metrics import FeedMetrics
from community_feed.ranker.models import (
    ConnectionStats,
    FeedPage,
    FeedPost,
    PageRequest,
    Pagination,
    RankingMode,
)
from community_feed.ranker.scorer import FeedScorer
from community_feed.store.models import Post
from community_feed.store.protocols import DocumentStore
from community_feed.store.query import PostQuery


logger = structlog.get_logger()


class FeedRanker:
    """Builds paginated, connection-aware feeds from a document store.

    Flow per request:
        count published -> (empty fast path) -> retrieve buckets ->
        merge -> secondary mode re-sort -> slice page -> derive fields

    The ranker keeps no state between requests; each call reads a fresh
    snapshot and either returns a full page or raises a ``StoreError``.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: RankingConfig | None = None,
        metrics: FeedMetrics | None = None,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the ranker.

        Args:
            store: Document store to read posts from.
            config: Ranking parameters.
            metrics: Optional metrics instance.
            log: Optional logger; defaults to a module logger bound to
                ``component="ranker"``.
        """
        self._store = store
        self._config = config or RankingConfig()
        self._metrics = metrics or FeedMetrics.get_instance()
        self._log = log or logger.bind(component="ranker")

    @property
    def config(self) -> RankingConfig:
        """Get the ranking configuration."""
        return self._config

    def page_request(self, page: Any = None, page_size: Any = None) -> PageRequest:
        """Build a clamped page request using this ranker's size limits.

        Args:
            page: Raw page number.
            page_size: Raw page size.

        Returns:
            A valid PageRequest.
        """
        return PageRequest.from_params(
            page,
            page_size,
            default_page_size=self._config.default_page_size,
            max_page_size=self._config.max_page_size,
        )

    def _within_limits(self, request: PageRequest) -> PageRequest:
        """Cap a caller-built request at the configured maximum page size."""
        if request.page_size <= self._config.max_page_size:
            return request
        return request.model_copy(update={"page_size": self._config.max_page_size})

    def resolve_mode(self, mode: RankingMode | str | None) -> RankingMode:
        """Resolve a mode selector, falling back to ``latest``.

        Args:
            mode: Raw selector.

        Returns:
            The parsed mode, or LATEST when unrecognized.
        """
        resolved = RankingMode.from_value(mode)
        if resolved is not None:
            return resolved
        if mode not in (None, ""):
            self._metrics.record_mode_fallback()
            self._log.warning(
                "ranking_mode_fallback",
                requested=str(mode),
                fallback=RankingMode.LATEST.value,
            )
        return RankingMode.LATEST

    def rank(
        self,
        viewer: ViewerContext,
        page_request: PageRequest | None = None,
        mode: RankingMode | str | None = RankingMode.LATEST,
        now: datetime | None = None,
    ) -> FeedPage:
        """Produce one page of the viewer's feed.

        This is the main entry point for the ranker.

        Args:
            viewer: Viewer identity and connected set.
            page_request: Page to serve; defaults to the first page.
            mode: Ranking mode selector; unrecognized values mean ``latest``.
            now: Request time; defaults to the current UTC time.

        Returns:
            FeedPage with posts, pagination and connection stats.

        Raises:
            StoreError: If any store access fails.
        """
        start = time.perf_counter()
        request = self._within_limits(page_request or self.page_request())
        resolved = self.resolve_mode(mode)
        now = as_utc(now) if now else utc_now()
        cutoff = now - timedelta(hours=self._config.recency_window_hours)
        log = self._log.bind(viewer_id=viewer.viewer_id, mode=resolved.value)

        self._metrics.record_request(resolved.value)
        log.info(
            "feed_requested",
            page=request.page,
            page_size=request.page_size,
            connections_count=viewer.connections_count,
        )

        total_published = call_store(
            log, "count_posts", self._store.count_posts, PostQuery.published()
        )
        if total_published == 0:
            self._metrics.record_empty_feed()
            log.info("feed_empty")
            return FeedPage(
                posts=[],
                mode=resolved,
                pagination=Pagination.empty(),
                connection_stats=ConnectionStats(
                    connections_count=viewer.connections_count
                ),
                message=EMPTY_FEED_MESSAGE,
            )

        scores: dict[str, float] = {}
        if resolved is RankingMode.RANDOM:
            page_posts = self._sample_page(log, request, total_published)
            total = total_published
            recent_connection_posts = self._count_recent_connection_posts(
                log, viewer, cutoff
            )
        else:
            buckets = self._retrieve(log, viewer, cutoff)
            merged = buckets.merged()
            scorer = FeedScorer(self._config, now, log=log)
            ordered, scores = scorer.reorder(merged, resolved)
            total = len(ordered)
            page_posts = ordered[request.skip : request.skip + request.page_size]
            recent_connection_posts = (
                len(buckets.recent_connection) if viewer.has_connections else 0
            )

        posts = [
            self._decorate(post, viewer, cutoff, scores.get(post.post_id))
            for post in page_posts
        ]
        page = FeedPage(
            posts=posts,
            mode=resolved,
            pagination=Pagination.compute(request, total),
            connection_stats=ConnectionStats(
                connections_count=viewer.connections_count,
                recent_connection_posts=recent_connection_posts,
            ),
        )

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_posts_returned(len(posts), duration_ms)
        log.info(
            "feed_ranked",
            total_posts=total,
            posts_returned=len(posts),
            recent_connection_posts=recent_connection_posts,
            duration_ms=round(duration_ms, 2),
        )
        return page

    def author_posts(
        self,
        author_id: str,
        page_request: PageRequest | None = None,
        viewer: ViewerContext | None = None,
        now: datetime | None = None,
    ) -> FeedPage:
        """List one author's published posts, newest first.

        Pagination is pushed down to the store; totals come from a count.

        Args:
            author_id: Author whose posts to list.
            page_request: Page to serve.
            viewer: Optional viewer for like/connection display fields.
            now: Request time; defaults to the current UTC time.

        Returns:
            FeedPage in ``latest`` order.
        """
        request = self._within_limits(page_request or self.page_request())
        now = as_utc(now) if now else utc_now()
        cutoff = now - timedelta(hours=self._config.recency_window_hours)
        log = self._log.bind(author_id=author_id)
        query = PostQuery.published(author_in=frozenset({author_id}))

        total = call_store(log, "count_posts", self._store.count_posts, query)
        stats = ConnectionStats(
            connections_count=viewer.connections_count if viewer else 0
        )
        if total == 0:
            log.info("author_posts_empty")
            return FeedPage(
                mode=RankingMode.LATEST,
                pagination=Pagination.empty(),
                connection_stats=stats,
                message=EMPTY_FEED_MESSAGE,
            )

        found = call_store(
            log,
            "find_posts",
            self._store.find_posts,
            query,
            newest_first=True,
            limit=request.page_size,
            skip=request.skip,
        )
        viewer = viewer or ViewerContext.solo(author_id)
        return FeedPage(
            posts=[self._decorate(p, viewer, cutoff) for p in found],
            mode=RankingMode.LATEST,
            pagination=Pagination.compute(request, total),
            connection_stats=stats,
        )

    def _retrieve(
        self,
        log: structlog.typing.FilteringBoundLogger,
        viewer: ViewerContext,
        cutoff: datetime,
    ) -> FeedBuckets:
        """Fetch candidate posts partitioned for the connection-priority merge.

        A viewer without connections gets a single newest-first bucket.
        """

        def find(query: PostQuery) -> list[Post]:
            return call_store(
                log, "find_posts", self._store.find_posts, query, newest_first=True
            )

        if not viewer.has_connections:
            return FeedBuckets(other=find(PostQuery.published()))

        buckets = fetch_buckets(find, viewer, cutoff)
        log.debug(
            "feed_buckets_loaded",
            recent_connection=len(buckets.recent_connection),
            other=len(buckets.other),
            older_connection=len(buckets.older_connection),
        )
        return buckets

    def _sample_page(
        self,
        log: structlog.typing.FilteringBoundLogger,
        request: PageRequest,
        total_published: int,
    ) -> list[Post]:
        """Draw a random sample at least a page deep and slice the page."""
        sample_size = min(
            total_published,
            max(
                request.page * request.page_size,
                request.page_size * self._config.random_oversample_factor,
            ),
        )
        sampled = call_store(
            log,
            "sample_posts",
            self._store.sample_posts,
            PostQuery.published(),
            sample_size,
        )
        log.debug("feed_sampled", sample_size=sample_size, sampled=len(sampled))
        return sampled[request.skip : request.skip + request.page_size]

    def _count_recent_connection_posts(
        self,
        log: structlog.typing.FilteringBoundLogger,
        viewer: ViewerContext,
        cutoff: datetime,
    ) -> int:
        """Count published connection posts inside the recency window."""
        if not viewer.has_connections:
            return 0
        return call_store(
            log,
            "count_posts",
            self._store.count_posts,
            PostQuery.published(author_in=viewer.connected_ids, created_gte=cutoff),
        )

    @staticmethod
    def _decorate(
        post: Post,
        viewer: ViewerContext,
        cutoff: datetime,
        rank_score: float | None = None,
    ) -> FeedPost:
        """Attach per-response display fields to a post."""
        return FeedPost(
            post=post,
            likes_count=post.likes_count,
            comments_count=post.comments_count,
            is_liked=post.is_liked_by(viewer.viewer_id),
            is_from_connection=viewer.is_connected(post.author_id),
            is_recent=post.created_at >= cutoff,
            rank_score=rank_score,
        )


def rank_feed(
    store: DocumentStore,
    viewer: ViewerContext,
    page: Any = 1,
    page_size: Any = None,
    mode: RankingMode | str | None = RankingMode.LATEST,
    config: RankingConfig | None = None,
    now: datetime | None = None,
) -> FeedPage:
    """Function API for a single feed request.

    Args:
        store: Document store to read from.
        viewer: Viewer identity and connected set.
        page: Raw page number.
        page_size: Raw page size.
        mode: Ranking mode selector.
        config: Ranking parameters.
        now: Request time.

    Returns:
        FeedPage for the request.
    """
    ranker = FeedRanker(store, config=config)
    return ranker.rank(viewer, ranker.page_request(page, page_size), mode, now=now)
