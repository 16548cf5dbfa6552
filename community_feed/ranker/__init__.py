"""Feed ranker module.

This module provides connection-priority feed ranking with secondary
ordering modes, page slicing and per-response display fields, plus
trending tag aggregation and community activity counts.
"""

from community_feed.ranker.config import RankingConfig
from community_feed.ranker.merge import FeedBuckets, fetch_buckets
from community_feed.ranker.metrics import FeedMetrics
from community_feed.ranker.models import (
    AVAILABLE_MODES,
    ConnectionStats,
    FeedPage,
    FeedPost,
    OverviewStats,
    PageRequest,
    Pagination,
    RankingMode,
)
from community_feed.ranker.overview import CommunityOverview
from community_feed.ranker.ranker import FeedRanker, rank_feed
from community_feed.ranker.scorer import FeedScorer, days_since
from community_feed.ranker.trends import TagTrendAggregator, sort_tag_trends


__all__ = [
    "AVAILABLE_MODES",
    "CommunityOverview",
    "ConnectionStats",
    "FeedBuckets",
    "FeedMetrics",
    "FeedPage",
    "FeedPost",
    "FeedRanker",
    "FeedScorer",
    "OverviewStats",
    "PageRequest",
    "Pagination",
    "RankingConfig",
    "RankingMode",
    "TagTrendAggregator",
    "days_since",
    "fetch_buckets",
    "rank_feed",
    "sort_tag_trends",
]
