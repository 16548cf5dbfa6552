"""Integration tests for feed ranking over the SQLite store."""

from collections.abc import Generator
from pathlib import Path

import pytest

from community_feed.graph import SocialGraph
from community_feed.ranker import (
    CommunityOverview,
    FeedRanker,
    PageRequest,
    RankingMode,
    TagTrendAggregator,
)
from community_feed.store import (
    ConnectionStatus,
    InMemoryDocumentStore,
    Post,
    SqliteDocumentStore,
)
from tests.helpers.documents import make_connection, make_post
from tests.helpers.time import FIXED_NOW, days_ago, hours_ago


def _seed_posts() -> list[Post]:
    """Posts by a connection, a stranger and the viewer."""
    return [
        make_post("P1", author_id="carl", created_at=hours_ago(2), tags=["python"]),
        make_post("P2", author_id="sam", created_at=hours_ago(10), likes={"vic", "carl"}),
        make_post("P3", author_id="carl", created_at=hours_ago(48), tags=["python", "ai"]),
        make_post("P4", author_id="vic", created_at=days_ago(4), comments=2),
        make_post("P5", author_id="sam", created_at=days_ago(9), tags=["ai"], likes={"a"}),
        make_post("P6", author_id="carl", created_at=hours_ago(1), is_published=False),
    ]


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Generator[SqliteDocumentStore]:
    """SQLite store seeded with posts and connections."""
    with SqliteDocumentStore(tmp_path / "feed.sqlite") as store:
        for post in _seed_posts():
            store.save_post(post)
        store.insert_connection(make_connection("carl", "vic"))
        store.insert_connection(
            make_connection("vic", "sam", status=ConnectionStatus.PENDING)
        )
        yield store


class TestSqliteFeed:
    """Feed ranking end to end."""

    def test_latest_feed_for_connected_viewer(
        self, sqlite_store: SqliteDocumentStore
    ) -> None:
        """Recent connection posts lead; the rest follow chronologically."""
        viewer = SocialGraph(sqlite_store).viewer_context("vic")

        result = FeedRanker(sqlite_store).rank(viewer, now=FIXED_NOW)

        assert viewer.connected_ids == frozenset({"vic", "carl"})
        assert [p.post_id for p in result.posts] == ["P1", "P2", "P3", "P4", "P5"]
        assert result.connection_stats.connections_count == 1
        assert result.connection_stats.recent_connection_posts == 1
        assert result.posts[1].is_liked

    def test_matches_in_memory_store(self, sqlite_store: SqliteDocumentStore) -> None:
        """Both stores produce identical deterministic feeds."""
        memory = InMemoryDocumentStore(
            posts=_seed_posts(),
            connections=[
                make_connection("carl", "vic"),
                make_connection("vic", "sam", status=ConnectionStatus.PENDING),
            ],
        )

        for mode in [m for m in RankingMode if m.is_deterministic]:
            for page in (1, 2, 3):
                request = PageRequest(page=page, page_size=2)
                from_sql = FeedRanker(sqlite_store).rank(
                    SocialGraph(sqlite_store).viewer_context("vic"),
                    request,
                    mode,
                    now=FIXED_NOW,
                )
                from_memory = FeedRanker(memory).rank(
                    SocialGraph(memory).viewer_context("vic"),
                    request,
                    mode,
                    now=FIXED_NOW,
                )
                assert from_sql.to_json_dict() == from_memory.to_json_dict()

    def test_random_mode(self, sqlite_store: SqliteDocumentStore) -> None:
        """Random pages contain published posts only."""
        viewer = SocialGraph(sqlite_store).viewer_context("vic")

        result = FeedRanker(sqlite_store).rank(
            viewer, PageRequest(page_size=10), RankingMode.RANDOM, now=FIXED_NOW
        )

        assert {p.post_id for p in result.posts} == {"P1", "P2", "P3", "P4", "P5"}
        assert result.pagination.total_posts == 5

    def test_author_posts(self, sqlite_store: SqliteDocumentStore) -> None:
        """Author listing paginates in SQL."""
        result = FeedRanker(sqlite_store).author_posts(
            "carl", PageRequest(page_size=1), now=FIXED_NOW
        )

        assert [p.post_id for p in result.posts] == ["P1"]
        assert result.pagination.total_pages == 2

    def test_trending_tags(self, sqlite_store: SqliteDocumentStore) -> None:
        """Tag trends come from published posts only."""
        trends = TagTrendAggregator(sqlite_store).trending_tags(now=FIXED_NOW)

        assert [(t.tag, t.recent_count, t.total_count) for t in trends] == [
            ("python", 2, 2),
            ("ai", 1, 2),
        ]

    def test_overview(self, sqlite_store: SqliteDocumentStore) -> None:
        """Overview counts published posts and accepted connections."""
        stats = CommunityOverview(sqlite_store).overview(now=FIXED_NOW)

        assert (stats.total_posts, stats.total_connections, stats.recent_posts) == (
            5,
            1,
            4,
        )
