"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime, timedelta


# Fixed request time so recency windows and scores are reproducible.
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


def hours_ago(hours: float) -> datetime:
    """Timestamp ``hours`` before FIXED_NOW."""
    return FIXED_NOW - timedelta(hours=hours)


def days_ago(days: float) -> datetime:
    """Timestamp ``days`` before FIXED_NOW."""
    return FIXED_NOW - timedelta(days=days)
