"""Application settings powered by Pydantic BaseSettings."""

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from community_feed.ranker.config import RankingConfig
from community_feed.ranker.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_TRENDING_LIMIT,
    DEFAULT_TRENDING_WINDOW_DAYS,
    MAX_PAGE_SIZE,
    RANDOM_OVERSAMPLE_FACTOR,
    RECENCY_WINDOW_HOURS,
)


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="COMMUNITY_FEED_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: Path = Field(default=Path("data/community_feed.sqlite"))
    log_level: str = "INFO"
    json_logs: bool = True

    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    max_page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    recency_window_hours: int = Field(default=RECENCY_WINDOW_HOURS, ge=1)
    random_oversample_factor: int = Field(default=RANDOM_OVERSAMPLE_FACTOR, ge=1)
    trending_window_days: int = Field(default=DEFAULT_TRENDING_WINDOW_DAYS, ge=1)
    trending_limit: int = Field(default=DEFAULT_TRENDING_LIMIT, ge=1)

    @property
    def log_level_value(self) -> int:
        """Numeric logging level, defaulting to INFO for unknown names."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    def ranking_config(self) -> RankingConfig:
        """Build the validated ranking configuration."""
        return RankingConfig(
            recency_window_hours=self.recency_window_hours,
            default_page_size=self.default_page_size,
            max_page_size=self.max_page_size,
            random_oversample_factor=self.random_oversample_factor,
        )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
