"""Ranking configuration schema."""

from typing import Annotated

from pydantic import Field

from community_feed.data_model import StrictBaseModel
from community_feed.ranker.constants import (
    COMMENT_WEIGHT,
    DEFAULT_PAGE_SIZE,
    ENGAGEMENT_WEIGHT,
    FRESHNESS_DAYS,
    MAX_PAGE_SIZE,
    RANDOM_OVERSAMPLE_FACTOR,
    RECENCY_WINDOW_HOURS,
)


class RankingConfig(StrictBaseModel):
    """Tunable parameters for the feed ranker.

    Attributes:
        recency_window_hours: Window for promoting connection posts.
        default_page_size: Page size used when none is requested.
        max_page_size: Upper bound on requested page size.
        freshness_days: Age at which the mixed score's recency term reaches 0.
        engagement_weight: Multiplier on the engagement term of the mixed score.
        comment_weight: Weight of a comment relative to a like.
        random_oversample_factor: Pages worth of posts drawn in random mode.
    """

    recency_window_hours: Annotated[int, Field(ge=1, le=24 * 30)] = RECENCY_WINDOW_HOURS
    default_page_size: Annotated[int, Field(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE
    max_page_size: Annotated[int, Field(ge=1, le=MAX_PAGE_SIZE)] = MAX_PAGE_SIZE
    freshness_days: Annotated[float, Field(ge=0.0, le=365.0)] = FRESHNESS_DAYS
    engagement_weight: Annotated[float, Field(ge=0.0, le=100.0)] = ENGAGEMENT_WEIGHT
    comment_weight: Annotated[float, Field(ge=0.0, le=100.0)] = COMMENT_WEIGHT
    random_oversample_factor: Annotated[int, Field(ge=1, le=20)] = (
        RANDOM_OVERSAMPLE_FACTOR
    )
