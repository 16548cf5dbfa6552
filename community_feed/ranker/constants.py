"""Constants for feed ranking and tag trends."""

# Posts by connections newer than this are promoted to the top of the feed
RECENCY_WINDOW_HOURS: int = 24

# Page size bounds; the cap bounds per-request aggregation cost
DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 50

# Mixed/trending score: max(0, FRESHNESS_DAYS - age_days)
#   + ENGAGEMENT_WEIGHT * (likes + COMMENT_WEIGHT * comments)
FRESHNESS_DAYS: float = 30.0
ENGAGEMENT_WEIGHT: float = 2.0
COMMENT_WEIGHT: float = 1.5

# Random mode draws at least this many pages worth of posts per request
RANDOM_OVERSAMPLE_FACTOR: int = 3

# Tag trend defaults
DEFAULT_TRENDING_WINDOW_DAYS: int = 7
DEFAULT_TRENDING_LIMIT: int = 10

EMPTY_FEED_MESSAGE: str = "No published posts found"
