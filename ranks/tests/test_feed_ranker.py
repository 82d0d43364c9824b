"""
Tests for ranks/ranker.py — end-to-end ranking, filters, caching and stats.
"""

import dataclasses

import pytest

from tclogger import logger

from caches.result_cache import ResultCache, payload_digest
from ranks.cursor import InvalidCursorError
from ranks.explain import BreakdownMismatchError, verify_breakdown
from ranks.ranker import FeedRanker
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext

NOW = 1_700_000_000.0
MINUTE = 60.0
DAY = 86400.0

FOLLOWED = [f"friend{i}" for i in range(15)]
STRANGERS = [f"stranger{i}" for i in range(15)]


def _make_candidates():
    """30 posts: 15 from followed authors (boosted), 15 from strangers."""
    posts, authors = [], {}
    for i, user_id in enumerate(FOLLOWED + STRANGERS):
        authors[user_id] = AuthorSnapshot(
            user_id=user_id,
            account_created_at=NOW - (20 + i * 15) * DAY,
            follower_count=i * 50,
            verified=(i % 4 == 0),
        )
        posts.append(
            PostSnapshot(
                id=f"post-{user_id}",
                author_id=user_id,
                created_at=NOW - (i * 13) * MINUTE,
                content=f"Release notes for build {i}, what should we fix next?",
                media_count=1 if i % 3 == 0 else 0,
                like_count=i * 4,
                reply_count=i % 5,
                view_count=i * 30,
                unique_engager_count=i * 2,
            )
        )
    return posts, authors


def _make_viewer() -> ViewerContext:
    return ViewerContext(
        viewer_id="me",
        following_ids=frozenset(FOLLOWED),
        follower_ids=frozenset(FOLLOWED[:5]),
    )


def test_rank_posts_end_to_end():
    logger.note("> Test: FeedRanker.rank_posts")
    ranker = FeedRanker()
    posts, authors = _make_candidates()
    page = ranker.rank_posts(posts, authors, _make_viewer(), limit=10, now_ts=NOW)

    assert len(page.results) == 10
    assert page.total_candidates == 30
    assert page.discovery_count >= 3
    assert page.has_more
    for item in page.results:
        verify_breakdown(item.breakdown)
    logger.success("  PASSED")


def test_rank_posts_paging_is_stable():
    logger.note("> Test: paging with the returned cursor")
    ranker = FeedRanker()
    posts, authors = _make_candidates()
    viewer = _make_viewer()
    seen = []
    cursor = None
    while True:
        page = ranker.rank_posts(
            posts, authors, viewer, limit=7, cursor=cursor, now_ts=NOW
        )
        seen.extend(item.post.id for item in page.results)
        if not page.has_more:
            break
        cursor = page.next_cursor
    assert sorted(seen) == sorted(post.id for post in posts)
    logger.success("  PASSED")


def test_filters():
    logger.note("> Test: network / discovery / media filters")
    ranker = FeedRanker()
    posts, authors = _make_candidates()
    viewer = _make_viewer()

    network = ranker.rank_posts(posts, authors, viewer, limit=50, filter="network", now_ts=NOW)
    assert len(network.results) == 15
    assert network.discovery_count == 0

    discovery = ranker.rank_posts(
        posts, authors, viewer, limit=50, filter="discovery", now_ts=NOW
    )
    assert len(discovery.results) == 15
    assert discovery.discovery_count == 15

    media = ranker.rank_posts(posts, authors, viewer, limit=50, filter="media", now_ts=NOW)
    assert media.results
    assert all(item.post.media_count > 0 for item in media.results)

    with pytest.raises(ValueError):
        ranker.rank_posts(posts, authors, viewer, filter="trending", now_ts=NOW)
    logger.success("  PASSED")


def test_limit_is_clamped():
    logger.note("> Test: limit clamped to [1, 50]")
    assert FeedRanker.clamp_limit(None) == 20
    assert FeedRanker.clamp_limit(0) == 1
    assert FeedRanker.clamp_limit(500) == 50
    assert FeedRanker.clamp_limit(12) == 12
    logger.success("  PASSED")


def test_anonymous_viewer_sees_only_discovery():
    logger.note("> Test: anonymous viewer")
    ranker = FeedRanker()
    posts, authors = _make_candidates()
    page = ranker.rank_posts(posts, authors, None, limit=10, now_ts=NOW)
    assert page.discovery_count == 10
    logger.success("  PASSED")


def test_rank_feed_uses_cache():
    logger.note("> Test: rank_feed fetches once per fingerprint")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    viewer = _make_viewer()
    fetches = []

    def fetcher():
        fetches.append(1)
        return posts, authors

    first = ranker.rank_feed(viewer, fetcher, limit=10)
    second = ranker.rank_feed(viewer, fetcher, limit=10)
    assert second is first
    assert len(fetches) == 1

    ranker.rank_feed(viewer, fetcher, limit=10, filter="media")
    ranker.rank_feed(viewer, fetcher, limit=10, cursor=first.next_cursor)
    assert len(fetches) == 3
    logger.success("  PASSED")


def test_rank_feed_keys_by_candidates_digest():
    logger.note("> Test: different candidate digests get separate cache entries")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    viewer = _make_viewer()
    first_half, second_half = posts[:10], posts[10:]

    first = ranker.rank_feed(
        viewer, lambda: (first_half, authors), limit=50, candidates_digest="aaa"
    )
    second = ranker.rank_feed(
        viewer, lambda: (second_half, authors), limit=50, candidates_digest="bbb"
    )
    assert {item.post.id for item in first.results} == {p.id for p in first_half}
    assert {item.post.id for item in second.results} == {p.id for p in second_half}
    assert payload_digest([1, {"a": 1, "b": 2}]) == payload_digest([1, {"b": 2, "a": 1}])
    assert payload_digest(["p1"]) != payload_digest(["p2"])
    logger.success("  PASSED")


def test_cached_page_is_immutable():
    logger.note("> Test: cached pages cannot be changed by callers")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    page = ranker.rank_feed(_make_viewer(), lambda: (posts, authors), limit=10)
    assert isinstance(page.results, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        page.results = ()
    with pytest.raises(AttributeError):
        page.results.append(page.results[0])
    again = ranker.rank_feed(_make_viewer(), lambda: (posts, authors), limit=10)
    assert len(again.results) == 10

    stats = ranker.profile_stats(authors["friend1"], posts, _make_viewer(), now_ts=NOW)
    stats["post_count"] = -1
    cached = ranker.profile_stats(authors["friend1"], posts, _make_viewer(), now_ts=NOW)
    assert cached["post_count"] == 1
    logger.success("  PASSED")


def test_rank_feed_failure_is_not_cached():
    logger.note("> Test: failed fetch propagates and is retried")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    attempts = []

    def flaky_fetcher():
        attempts.append(1)
        if len(attempts) == 1:
            raise ConnectionError("data layer unavailable")
        return posts, authors

    with pytest.raises(ConnectionError):
        ranker.rank_feed(_make_viewer(), flaky_fetcher, limit=10)
    page = ranker.rank_feed(_make_viewer(), flaky_fetcher, limit=10)
    assert len(page.results) == 10
    assert len(attempts) == 2
    logger.success("  PASSED")


def test_rank_feed_invalid_cursor():
    logger.note("> Test: invalid cursor surfaces InvalidCursorError")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    with pytest.raises(InvalidCursorError):
        ranker.rank_feed(_make_viewer(), lambda: (posts, authors), cursor="@@bad@@")
    logger.success("  PASSED")


def test_explain_matches_ranked_breakdown():
    logger.note("> Test: explain re-emits the ranked breakdown")
    ranker = FeedRanker()
    posts, authors = _make_candidates()
    viewer = _make_viewer()
    page = ranker.rank_posts(posts, authors, viewer, limit=5, now_ts=NOW)
    item = page.results[0]
    info = ranker.explain(item.post, authors[item.post.author_id], viewer, now_ts=NOW)
    assert info["breakdown"] == item.breakdown.to_dict()

    # a ranked post serialized and read back explains to the same breakdown
    deep_post = dataclasses.replace(
        posts[0], id="post-deep", reply_count=4, reply_lengths=(80, 90, 100, 120)
    )
    deep_item = ranker.rank_posts([deep_post], authors, viewer, now_ts=NOW).results[0]
    restored = PostSnapshot.from_dict(deep_item.post.to_dict())
    assert restored == deep_post
    deep_info = ranker.explain(restored, authors[deep_post.author_id], viewer, now_ts=NOW)
    assert deep_info["breakdown"] == deep_item.breakdown.to_dict()

    tampered = dataclasses.replace(item.breakdown, network_multiplier=9.0)
    with pytest.raises(BreakdownMismatchError):
        verify_breakdown(tampered)
    logger.success("  PASSED")


def test_profile_stats():
    logger.note("> Test: profile_stats aggregates one author's posts")
    ranker = FeedRanker(cache=ResultCache(ttl=60))
    posts, authors = _make_candidates()
    author = authors["friend3"]
    extra = dataclasses.replace(posts[3], id="post-friend3-b", like_count=100)

    stats = ranker.profile_stats(author, posts + [extra], _make_viewer(), now_ts=NOW)
    assert stats["user_id"] == "friend3"
    assert stats["post_count"] == 2
    assert stats["total_engagement"] == posts[3].total_engagement + extra.total_engagement
    assert stats["max_final_score"] >= stats["avg_final_score"] > 0

    cached = ranker.profile_stats(author, [], _make_viewer(), now_ts=NOW)
    assert cached == stats
    fresh = ranker.profile_stats(author, [], _make_viewer(), now_ts=NOW, use_cache=False)
    assert fresh["post_count"] == 0
    assert fresh["avg_final_score"] == 0.0
    logger.success("  PASSED")


if __name__ == "__main__":
    test_rank_posts_end_to_end()
    test_rank_posts_paging_is_stable()
    test_filters()
    test_limit_is_clamped()
    test_anonymous_viewer_sees_only_discovery()
    test_rank_feed_uses_cache()
    test_rank_feed_keys_by_candidates_digest()
    test_cached_page_is_immutable()
    test_rank_feed_failure_is_not_cached()
    test_rank_feed_invalid_cursor()
    test_explain_matches_ranked_breakdown()
    test_profile_stats()
    logger.success("\n✓ All feed ranker tests passed")
