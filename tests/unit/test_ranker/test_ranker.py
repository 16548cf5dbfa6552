"""Unit tests for the feed ranker orchestrator."""

import random
from collections.abc import Generator

import pytest
from structlog.testing import capture_logs

from community_feed.graph import ViewerContext
from community_feed.ranker import (
    FeedMetrics,
    FeedRanker,
    PageRequest,
    RankingConfig,
    RankingMode,
    rank_feed,
)
from community_feed.ranker.constants import EMPTY_FEED_MESSAGE
from community_feed.store import (
    InMemoryDocumentStore,
    Post,
    PostQuery,
    StoreNotConnectedError,
    StoreUnavailableError,
)
from tests.helpers.documents import make_post
from tests.helpers.time import FIXED_NOW, days_ago, hours_ago


VIEWER = ViewerContext(viewer_id="viewer", connected_ids=frozenset({"friend"}))
SOLO = ViewerContext.solo("viewer")


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None]:
    """Give each test fresh singleton metrics."""
    FeedMetrics.reset()
    yield
    FeedMetrics.reset()


def _make_store(posts: list[Post], seed: int = 7) -> InMemoryDocumentStore:
    """Create a store with a seeded random source."""
    return InMemoryDocumentStore(posts=posts, rng=random.Random(seed))


def _mixed_posts() -> list[Post]:
    """A mix of connection, non-connection and draft posts over several days."""
    return [
        make_post("f1", author_id="friend", created_at=hours_ago(2), likes={"a"}),
        make_post("f2", author_id="friend", created_at=hours_ago(30), likes={"a", "b"}),
        make_post("f3", author_id="friend", created_at=days_ago(5), comments=3),
        make_post("s1", author_id="stranger", created_at=hours_ago(1)),
        make_post("s2", author_id="stranger", created_at=hours_ago(12), likes={"viewer"}),
        make_post("s3", author_id="stranger", created_at=days_ago(3), likes={"a", "b", "c"}),
        make_post("v1", author_id="viewer", created_at=hours_ago(6)),
        make_post("d1", author_id="friend", created_at=hours_ago(1), is_published=False),
        make_post("d2", author_id="stranger", created_at=days_ago(1), is_published=False),
    ]


def _rank(
    store: InMemoryDocumentStore,
    viewer: ViewerContext = VIEWER,
    mode: RankingMode | str = RankingMode.LATEST,
    page: int = 1,
    page_size: int = 10,
) -> list[str]:
    """Rank and return post ids."""
    result = FeedRanker(store).rank(
        viewer, PageRequest(page=page, page_size=page_size), mode, now=FIXED_NOW
    )
    return [p.post_id for p in result.posts]


class TestScenarios:
    """End-to-end ordering scenarios."""

    def test_recent_connection_promoted_then_chronological(self) -> None:
        """A recent connection post leads; the rest merge by time."""
        store = _make_store(
            [
                make_post("P1", author_id="friend", created_at=hours_ago(2)),
                make_post("P2", author_id="stranger", created_at=hours_ago(10)),
                make_post("P3", author_id="friend", created_at=hours_ago(48)),
            ]
        )

        assert _rank(store) == ["P1", "P2", "P3"]

    def test_popular_tie_prefers_newer(self) -> None:
        """Tied like counts order the newer post first."""
        five = {"a", "b", "c", "d", "e"}
        store = _make_store(
            [
                make_post("older", author_id="x", created_at=days_ago(3), likes=five),
                make_post("newer", author_id="y", created_at=days_ago(2), likes=five),
                make_post("newest", author_id="z", created_at=days_ago(1), likes={"a", "b"}),
            ]
        )

        assert _rank(store, SOLO, RankingMode.POPULAR) == ["newer", "older", "newest"]


class TestPublicationFilter:
    """Drafts never appear in any mode."""

    @pytest.mark.parametrize("mode", list(RankingMode))
    def test_no_drafts(self, mode: RankingMode) -> None:
        """Every returned post is published."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(
            VIEWER, PageRequest(page_size=50), mode, now=FIXED_NOW
        )

        assert result.posts
        assert all(p.post.is_published for p in result.posts)
        assert {"d1", "d2"}.isdisjoint(p.post_id for p in result.posts)


class TestPagination:
    """Pagination over the fully ordered sequence."""

    @pytest.mark.parametrize(
        "mode",
        [m for m in RankingMode if m.is_deterministic],
    )
    @pytest.mark.parametrize("page_size", [1, 2, 3, 7, 50])
    def test_slices_match_full_sequence(self, mode: RankingMode, page_size: int) -> None:
        """Each page equals the matching slice of the full ordering."""
        store = _make_store(_mixed_posts())
        full = _rank(store, mode=mode, page_size=50)
        total = len(full)
        total_pages = -(-total // page_size)

        for page in range(1, total_pages + 2):
            result = FeedRanker(store).rank(
                VIEWER, PageRequest(page=page, page_size=page_size), mode, now=FIXED_NOW
            )
            p = result.pagination

            assert [x.post_id for x in result.posts] == full[
                (page - 1) * page_size : page * page_size
            ]
            assert p.total_posts == total
            assert p.total_pages == total_pages
            assert p.current_page == page
            assert p.has_next is (page < total_pages)
            assert p.has_prev is (page > 1)

    def test_page_beyond_end_is_empty(self) -> None:
        """Requesting past the last page returns no posts but real totals."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(
            VIEWER, PageRequest(page=9, page_size=5), now=FIXED_NOW
        )

        assert result.posts == []
        assert result.pagination.total_posts == 7
        assert result.message is None


class TestConnectionPromotion:
    """Recent connection posts lead the latest feed."""

    def test_recent_connection_posts_before_everything(self) -> None:
        """Connection posts inside the window precede all others."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, now=FIXED_NOW)
        flags = [
            p.is_from_connection and p.is_recent for p in result.posts
        ]

        first_false = flags.index(False)
        assert all(flags[:first_false])
        assert not any(flags[first_false:])

    def test_latest_full_order(self) -> None:
        """Promoted posts first, then a single chronological timeline."""
        store = _make_store(_mixed_posts())

        assert _rank(store) == ["f1", "v1", "s1", "s2", "f2", "s3", "f3"]

    def test_viewer_without_connections_is_chronological(self) -> None:
        """Without connections the feed is newest first."""
        store = _make_store(_mixed_posts())

        assert _rank(store, SOLO) == ["s1", "f1", "v1", "s2", "f2", "s3", "f3"]

    def test_oldest_ignores_promotion(self) -> None:
        """Oldest sorts the whole merged set ascending."""
        store = _make_store(_mixed_posts())

        assert _rank(store, mode=RankingMode.OLDEST) == [
            "f3", "s3", "f2", "s2", "v1", "f1", "s1",
        ]


class TestPopularOrdering:
    """Popular mode ordering invariant."""

    def test_likes_then_recency(self) -> None:
        """Adjacent posts never violate (likes desc, created desc)."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, mode=RankingMode.POPULAR, now=FIXED_NOW)
        posts = result.posts

        for a, b in zip(posts, posts[1:], strict=False):
            assert a.likes_count > b.likes_count or (
                a.likes_count == b.likes_count
                and a.post.created_at >= b.post.created_at
            )


class TestScoredModes:
    """Trending and mixed attach rank scores."""

    @pytest.mark.parametrize("mode", [RankingMode.TRENDING, RankingMode.MIXED])
    def test_scores_descending(self, mode: RankingMode) -> None:
        """Scores are present and non-increasing."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, mode=mode, now=FIXED_NOW)
        scores = [p.rank_score for p in result.posts]

        assert all(s is not None for s in scores)
        assert scores == sorted(scores, reverse=True)  # type: ignore[type-var]

    def test_unscored_modes_have_no_score(self) -> None:
        """Latest posts carry no rank score."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, now=FIXED_NOW)

        assert all(p.rank_score is None for p in result.posts)


class TestRandomMode:
    """Random sampling mode."""

    def test_page_is_sample_of_published(self) -> None:
        """Random pages hold distinct published posts with published totals."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(
            VIEWER, PageRequest(page_size=3), RankingMode.RANDOM, now=FIXED_NOW
        )

        ids = [p.post_id for p in result.posts]
        assert len(ids) == 3
        assert len(set(ids)) == 3
        assert result.pagination.total_posts == 7
        assert result.pagination.total_pages == 3
        assert result.connection_stats.recent_connection_posts == 2

    def test_sample_size_policy(self) -> None:
        """The sample is at least page-deep and oversampled."""
        requested: list[int] = []

        class RecordingStore(InMemoryDocumentStore):
            def sample_posts(self, query: PostQuery, size: int) -> list[Post]:
                requested.append(size)
                return super().sample_posts(query, size)

        store = RecordingStore(
            posts=[make_post(f"p{i}", author_id="x") for i in range(100)]
        )
        ranker = FeedRanker(store, config=RankingConfig(random_oversample_factor=3))

        ranker.rank(SOLO, PageRequest(page=1, page_size=10), "random", now=FIXED_NOW)
        ranker.rank(SOLO, PageRequest(page=5, page_size=10), "random", now=FIXED_NOW)
        ranker.rank(SOLO, PageRequest(page=20, page_size=10), "random", now=FIXED_NOW)

        assert requested == [30, 50, 100]

    def test_later_page_filled_from_sample(self) -> None:
        """A later page within the published count is not empty."""
        store = _make_store([make_post(f"p{i}", author_id="x") for i in range(25)])

        result = FeedRanker(store).rank(
            SOLO, PageRequest(page=3, page_size=10), RankingMode.RANDOM, now=FIXED_NOW
        )

        assert len(result.posts) == 5


class TestEmptyStore:
    """Zero-result fast path."""

    @pytest.mark.parametrize("mode", list(RankingMode))
    @pytest.mark.parametrize("page", [1, 4])
    def test_empty_response(self, mode: RankingMode, page: int) -> None:
        """No published posts gives an empty, zeroed page."""
        store = _make_store([make_post("draft", is_published=False)])

        result = FeedRanker(store).rank(
            VIEWER, PageRequest(page=page), mode, now=FIXED_NOW
        )

        assert result.posts == []
        assert result.pagination.total_pages == 0
        assert result.pagination.total_posts == 0
        assert result.pagination.current_page == 0
        assert not result.pagination.has_next
        assert not result.pagination.has_prev
        assert result.message == EMPTY_FEED_MESSAGE
        assert result.mode == mode
        assert result.connection_stats.connections_count == 1

    def test_empty_skips_retrieval(self) -> None:
        """The fast path issues no find or sample calls."""

        class CountOnlyStore(InMemoryDocumentStore):
            def find_posts(self, *args: object, **kwargs: object) -> list[Post]:
                raise AssertionError("find_posts called")

            def sample_posts(self, *args: object, **kwargs: object) -> list[Post]:
                raise AssertionError("sample_posts called")

        FeedRanker(CountOnlyStore()).rank(VIEWER, now=FIXED_NOW)
        FeedRanker(CountOnlyStore()).rank(VIEWER, mode="random", now=FIXED_NOW)

        assert FeedMetrics.get_instance().empty_feeds == 2


class TestDerivedFields:
    """Per-response display fields."""

    def test_fields_computed(self) -> None:
        """Likes, connection and recency flags reflect the viewer."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, PageRequest(page_size=50), now=FIXED_NOW)
        by_id = {p.post_id: p for p in result.posts}

        assert by_id["s2"].is_liked
        assert not by_id["s3"].is_liked
        assert by_id["s3"].likes_count == 3
        assert by_id["f3"].comments_count == 3
        assert by_id["f1"].is_from_connection
        assert by_id["v1"].is_from_connection
        assert not by_id["s1"].is_from_connection
        assert by_id["s2"].is_recent
        assert not by_id["f2"].is_recent

    def test_connection_stats(self) -> None:
        """Stats count connections and their recent posts."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, now=FIXED_NOW)

        assert result.connection_stats.connections_count == 1
        # f1 and the viewer's own v1; the draft d1 is excluded
        assert result.connection_stats.recent_connection_posts == 2

    def test_solo_stats_zero(self) -> None:
        """A viewer without connections has zero connection stats."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(SOLO, now=FIXED_NOW)

        assert result.connection_stats.connections_count == 0
        assert result.connection_stats.recent_connection_posts == 0

    def test_custom_recency_window(self) -> None:
        """The recency window comes from RankingConfig."""
        store = _make_store(_mixed_posts())
        ranker = FeedRanker(store, config=RankingConfig(recency_window_hours=48))

        result = ranker.rank(VIEWER, now=FIXED_NOW)

        assert [p.post_id for p in result.posts][:3] == ["f1", "v1", "f2"]


class TestModeFallback:
    """Unrecognized modes fall back to latest."""

    def test_unknown_mode_uses_latest(self) -> None:
        """An unknown selector ranks as latest and warns."""
        store = _make_store(_mixed_posts())

        with capture_logs() as logs:
            result = FeedRanker(store).rank(VIEWER, mode="hottest", now=FIXED_NOW)

        assert result.mode == RankingMode.LATEST
        assert [p.post_id for p in result.posts] == _rank(store)
        assert FeedMetrics.get_instance().mode_fallbacks == 1
        warnings = [e for e in logs if e["event"] == "ranking_mode_fallback"]
        assert warnings[0]["requested"] == "hottest"
        assert warnings[0]["log_level"] == "warning"

    def test_case_insensitive_mode(self) -> None:
        """Mode selectors ignore case."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).rank(VIEWER, mode="Popular", now=FIXED_NOW)

        assert result.mode == RankingMode.POPULAR
        assert FeedMetrics.get_instance().mode_fallbacks == 0


class TestStoreFailures:
    """Store failures abort the request."""

    def test_store_error_propagates(self) -> None:
        """StoreError subclasses propagate unchanged."""

        class Disconnected(InMemoryDocumentStore):
            def count_posts(self, query: PostQuery) -> int:
                raise StoreNotConnectedError()

        with pytest.raises(StoreNotConnectedError):
            FeedRanker(Disconnected()).rank(VIEWER, now=FIXED_NOW)

    def test_foreign_error_translated(self) -> None:
        """Foreign exceptions become StoreUnavailableError."""

        class Broken(InMemoryDocumentStore):
            def find_posts(self, *args: object, **kwargs: object) -> list[Post]:
                raise TimeoutError("backend timed out")

        store = Broken(posts=[make_post("p1")])

        with pytest.raises(StoreUnavailableError) as exc_info:
            FeedRanker(store).rank(VIEWER, now=FIXED_NOW)

        assert exc_info.value.operation == "find_posts"
        assert isinstance(exc_info.value.__cause__, TimeoutError)


class TestAuthorPosts:
    """Author timeline listing."""

    def test_author_posts_paginated(self) -> None:
        """Only the author's published posts, newest first, paginated."""
        store = _make_store(_mixed_posts())
        ranker = FeedRanker(store)

        first = ranker.author_posts("friend", PageRequest(page_size=2), now=FIXED_NOW)
        second = ranker.author_posts(
            "friend", PageRequest(page=2, page_size=2), now=FIXED_NOW
        )

        assert [p.post_id for p in first.posts] == ["f1", "f2"]
        assert [p.post_id for p in second.posts] == ["f3"]
        assert first.pagination.total_posts == 3
        assert first.pagination.has_next
        assert not second.pagination.has_next

    def test_author_posts_with_viewer(self) -> None:
        """A viewer drives like and connection fields."""
        store = _make_store(_mixed_posts())

        result = FeedRanker(store).author_posts(
            "stranger", viewer=VIEWER, now=FIXED_NOW
        )
        by_id = {p.post_id: p for p in result.posts}

        assert by_id["s2"].is_liked
        assert not by_id["s1"].is_from_connection
        assert result.connection_stats.connections_count == 1

    def test_unknown_author_empty(self) -> None:
        """An author without posts gets the empty page."""
        result = FeedRanker(_make_store(_mixed_posts())).author_posts(
            "nobody", now=FIXED_NOW
        )

        assert result.posts == []
        assert result.message == EMPTY_FEED_MESSAGE


class TestRankFeed:
    """Function API."""

    def test_rank_feed_clamps_params(self) -> None:
        """Raw parameters are clamped before ranking."""
        store = _make_store(_mixed_posts())

        result = rank_feed(store, VIEWER, page="0", page_size="2", mode="LATEST", now=FIXED_NOW)

        assert result.pagination.current_page == 1
        assert [p.post_id for p in result.posts] == ["f1", "v1"]

    def test_metrics_recorded(self) -> None:
        """Requests and returned posts are counted."""
        store = _make_store(_mixed_posts())

        rank_feed(store, VIEWER, page_size=3, mode="popular", now=FIXED_NOW)

        metrics = FeedMetrics.get_instance()
        assert metrics.requests_by_mode == {"popular": 1}
        assert metrics.posts_returned == 3


class TestRequestTime:
    """Naive request times are read as UTC."""

    @pytest.mark.parametrize(
        ("viewer", "mode"),
        [
            (VIEWER, RankingMode.LATEST),
            (VIEWER, RankingMode.MIXED),
            (SOLO, RankingMode.TRENDING),
        ],
    )
    def test_naive_now_matches_aware(self, viewer: ViewerContext, mode: RankingMode) -> None:
        """A naive ``now`` yields the same page as the aware UTC one."""
        ranker = FeedRanker(_make_store(_mixed_posts()))

        naive = ranker.rank(viewer, mode=mode, now=FIXED_NOW.replace(tzinfo=None))

        assert naive == ranker.rank(viewer, mode=mode, now=FIXED_NOW)

    def test_author_posts_naive_now(self) -> None:
        """Recency flags on author timelines use the UTC reading."""
        ranker = FeedRanker(_make_store(_mixed_posts()))

        result = ranker.author_posts("friend", now=FIXED_NOW.replace(tzinfo=None))

        assert [p.is_recent for p in result.posts] == [True, False, False]


class TestPageSizeLimit:
    """Caller-built page requests respect the configured cap."""

    def test_explicit_request_capped(self) -> None:
        """A request above max_page_size is served at the cap."""
        ranker = FeedRanker(
            _make_store(_mixed_posts()), config=RankingConfig(max_page_size=3)
        )

        result = ranker.rank(VIEWER, PageRequest(page_size=10), now=FIXED_NOW)

        assert len(result.posts) == 3
        assert result.pagination.total_pages == 3
        assert result.pagination.has_next

    def test_author_posts_capped(self) -> None:
        """Author timelines use the same cap."""
        ranker = FeedRanker(
            _make_store(_mixed_posts()), config=RankingConfig(max_page_size=2)
        )

        result = ranker.author_posts("friend", PageRequest(page_size=10), now=FIXED_NOW)

        assert [p.post_id for p in result.posts] == ["f1", "f2"]
        assert result.pagination.total_pages == 2
