"""Secondary ordering policies applied to the merged feed."""

from datetime import datetime

import structlog

from community_feed.ranker.config import RankingConfig
from community_feed.ranker.models import RankingMode
from community_feed.store.models import Post


logger = structlog.get_logger()

_SECONDS_PER_DAY = 24 * 60 * 60


def days_since(created_at: datetime, now: datetime) -> float:
    """Fractional days elapsed between creation and ``now``.

    Args:
        created_at: Creation timestamp.
        now: Reference time of the request.

    Returns:
        Age in days, not floored; negative for future timestamps.
    """
    return (now - created_at).total_seconds() / _SECONDS_PER_DAY


class FeedScorer:
    """Re-sorts a merged feed according to a ranking mode.

    Every re-sort is stable, so the incoming order breaks any ties the
    mode's own keys leave.

    Scoring formula for trending/mixed:
        score = max(0, freshness_days - days_since_created)
              + engagement_weight * (likes + comment_weight * comments)
    """

    def __init__(
        self,
        config: RankingConfig,
        now: datetime,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the scorer.

        Args:
            config: Ranking weights.
            now: Request time used for recency.
            log: Optional logger; defaults to a module logger bound to
                ``component="ranker"``.
        """
        self._config = config
        self._now = now
        self._log = log or logger.bind(component="ranker")

    def mixed_score(self, post: Post) -> float:
        """Compute the recency-plus-engagement score of a post.

        Args:
            post: Post to score.

        Returns:
            Non-negative score; higher ranks first.
        """
        freshness = max(
            0.0, self._config.freshness_days - days_since(post.created_at, self._now)
        )
        engagement = post.likes_count + self._config.comment_weight * post.comments_count
        return freshness + self._config.engagement_weight * engagement

    def reorder(
        self, posts: list[Post], mode: RankingMode
    ) -> tuple[list[Post], dict[str, float]]:
        """Apply a mode's ordering to an already merged sequence.

        Args:
            posts: Posts in connection-priority merge order.
            mode: Ranking mode; RANDOM is not handled here.

        Returns:
            Tuple of (reordered posts, post_id -> score for scored modes).
        """
        if mode is RankingMode.OLDEST:
            return sorted(posts, key=lambda p: p.created_at), {}

        if mode is RankingMode.POPULAR:
            return (
                sorted(
                    posts,
                    key=lambda p: (-p.likes_count, -p.created_at.timestamp()),
                ),
                {},
            )

        if mode.is_scored:
            scores = {p.post_id: self.mixed_score(p) for p in posts}
            ordered = sorted(
                posts,
                key=lambda p: (-scores[p.post_id], -p.created_at.timestamp()),
            )
            self._log.debug(
                "feed_scored",
                posts_scored=len(scores),
                max_score=max(scores.values(), default=0.0),
            )
            return ordered, scores

        return list(posts), {}
