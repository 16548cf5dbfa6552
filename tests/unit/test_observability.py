"""Tests for structured logging configuration."""

import io
import json
import logging
from collections.abc import Generator

import pytest
import structlog

from community_feed.observability import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None]:
    """Restore structlog defaults after each test."""
    yield
    clear_request_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_output_with_request_context(self) -> None:
        """JSON lines carry level, timestamp and bound request context."""
        output = io.StringIO()
        configure_logging(output=output, json_format=True)
        bind_request_context("req-1", viewer_id="vic")

        structlog.get_logger().info("feed_ranked", posts_returned=3)

        record = json.loads(output.getvalue().strip())
        assert record["event"] == "feed_ranked"
        assert record["level"] == "info"
        assert record["request_id"] == "req-1"
        assert record["viewer_id"] == "vic"
        assert record["posts_returned"] == 3
        assert "timestamp" in record

    def test_level_filtering(self) -> None:
        """Messages below the configured level are dropped."""
        output = io.StringIO()
        configure_logging(level=logging.WARNING, output=output)

        structlog.get_logger().info("quiet")
        structlog.get_logger().warning("loud")

        lines = output.getvalue().strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "loud"

    def test_clear_request_context(self) -> None:
        """Cleared context no longer appears."""
        output = io.StringIO()
        configure_logging(output=output)
        bind_request_context("req-2")
        clear_request_context()

        structlog.get_logger().info("after_clear")

        assert "request_id" not in json.loads(output.getvalue().strip())
