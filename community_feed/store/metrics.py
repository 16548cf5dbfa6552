"""Metrics collection for the document store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for document store operations.

    Attributes:
        queries_total: Query count per operation name.
        failures_total: Failed query count per operation name.
        last_query_duration_ms: Duration of the most recent query.
    """

    queries_total: dict[str, int] = field(default_factory=dict)
    failures_total: dict[str, int] = field(default_factory=dict)
    last_query_duration_ms: float = 0.0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_query(self, operation: str, duration_ms: float) -> None:
        """Record a completed query.

        Args:
            operation: Store operation name.
            duration_ms: Query duration in milliseconds.
        """
        self.queries_total[operation] = self.queries_total.get(operation, 0) + 1
        self.last_query_duration_ms = duration_ms

    def record_failure(self, operation: str) -> None:
        """Record a failed query.

        Args:
            operation: Store operation name.
        """
        self.failures_total[operation] = self.failures_total.get(operation, 0) + 1

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        return {
            "queries_total": dict(self.queries_total),
            "failures_total": dict(self.failures_total),
            "last_query_duration_ms": self.last_query_duration_ms,
        }
