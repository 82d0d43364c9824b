"""
Feed Ranker

This module provides the main FeedRanker class that turns a candidate
snapshot into a ranked, paginated feed page for one viewer:

    candidates -> ScoreAggregator (per-post breakdowns, parallel)
               -> filter (all / network / discovery / media)
               -> DiversityRanker (final-score order + discovery floor)
               -> ResultCache (60s single-flight, keyed by fingerprint)

Usage:
    >>> from ranks.ranker import FeedRanker
    >>> ranker = FeedRanker()
    >>> page = ranker.rank_feed(viewer, fetcher=lambda: (posts, authors), limit=20)
    >>> page.has_more, page.next_cursor
    (True, 'eyJvZmZzZXQiOjIwfQ==')
"""

import time as _time

from typing import Callable, Optional

from tclogger import logger, dict_to_str

from caches.result_cache import ResultCache, build_fingerprint
from ranks.aggregator import ScoreAggregator, RankedItem
from ranks.constants import (
    FEED_PAGE_SIZE,
    FEED_MAX_PAGE_SIZE,
    FEED_FILTER_TYPE,
    FEED_FILTERS,
    FEED_FILTER,
)
from ranks.diversified import DiversityRanker, RankedPage
from ranks.explain import ScoreExplainer
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext
from ranks.weights import RankingWeights, DEFAULT_WEIGHTS

CANDIDATES_FETCHER_TYPE = Callable[
    [], tuple[list[PostSnapshot], dict[str, AuthorSnapshot]]
]


class FeedRanker:
    """Main ranker class composing scoring, diversity ranking and caching.

    Example:
        >>> ranker = FeedRanker()
        >>> # Rank an in-memory candidate set (no cache)
        >>> page = ranker.rank_posts(posts, authors, viewer, limit=10)
        >>> # Read-through cached ranking; the fetcher runs only on a miss
        >>> page = ranker.rank_feed(viewer, fetcher=fetch_candidates, limit=10)
    """

    def __init__(
        self,
        weights: RankingWeights = DEFAULT_WEIGHTS,
        cache: ResultCache = None,
        max_workers: int = 8,
    ):
        self.weights = weights
        self.aggregator = ScoreAggregator(weights, max_workers=max_workers)
        self.diversity_ranker = DiversityRanker(weights.discovery_min_ratio)
        # a filtered feed has a single relationship class: no floor to enforce
        self.plain_ranker = DiversityRanker(min_discovery_ratio=0.0)
        self.explainer = ScoreExplainer(self.aggregator)
        self.cache = cache if cache is not None else ResultCache()

    @staticmethod
    def clamp_limit(limit: int) -> int:
        if limit is None:
            return FEED_PAGE_SIZE
        return max(1, min(int(limit), FEED_MAX_PAGE_SIZE))

    @staticmethod
    def filter_items(
        items: list[RankedItem], filter: FEED_FILTER_TYPE = FEED_FILTER
    ) -> list[RankedItem]:
        if filter in (None, "all"):
            return items
        if filter == "network":
            return [item for item in items if not item.breakdown.is_discovery]
        if filter == "discovery":
            return [item for item in items if item.breakdown.is_discovery]
        if filter == "media":
            return [item for item in items if item.post.media_count > 0]
        raise ValueError(f"Unknown feed filter: {filter}. Use one of {FEED_FILTERS}")

    def rank_posts(
        self,
        posts: list[PostSnapshot],
        authors: dict[str, AuthorSnapshot],
        viewer: Optional[ViewerContext] = None,
        limit: int = FEED_PAGE_SIZE,
        cursor: str = None,
        filter: FEED_FILTER_TYPE = FEED_FILTER,
        now_ts: float = None,
        verbose: bool = False,
    ) -> RankedPage:
        """Score, filter and rank a candidate set without caching.

        Raises:
            ValueError: for an unknown filter.
            InvalidCursorError: for an undecodable cursor.
        """
        if filter not in (None, *FEED_FILTERS):
            raise ValueError(f"Unknown feed filter: {filter}. Use one of {FEED_FILTERS}")
        limit = self.clamp_limit(limit)
        if now_ts is None:
            now_ts = _time.time()

        start = _time.perf_counter()
        items = self.aggregator.score_all(posts, authors, viewer, now_ts=now_ts)
        items = self.filter_items(items, filter)
        ranker = self.plain_ranker if filter in ("network", "discovery") else self.diversity_ranker
        page = ranker.rank(items, limit=limit, cursor=cursor, verbose=verbose)

        if verbose:
            took_ms = (_time.perf_counter() - start) * 1000
            viewer_id = viewer.viewer_id if viewer else None
            logger.mesg(
                f"  Ranked {len(posts)} candidates for viewer={viewer_id} "
                f"filter={filter} in {took_ms:.1f}ms"
            )
        return page

    def rank_feed(
        self,
        viewer: Optional[ViewerContext],
        fetcher: CANDIDATES_FETCHER_TYPE,
        limit: int = FEED_PAGE_SIZE,
        cursor: str = None,
        filter: FEED_FILTER_TYPE = FEED_FILTER,
        timeout: float = None,
        candidates_digest: str = None,
        verbose: bool = False,
    ) -> RankedPage:
        """Read-through cached ranking.

        `fetcher` is the data-layer collaborator returning (posts, authors);
        it runs only on a cache miss. A failing fetch propagates to the caller
        and is not cached.

        When the candidates come from the caller rather than a shared data
        layer, `candidates_digest` (see `caches.result_cache.payload_digest`)
        must identify them, so different candidate sets get different keys.
        """
        limit = self.clamp_limit(limit)
        viewer_id = viewer.viewer_id if viewer else None
        key = build_fingerprint(
            "feed",
            viewer_id=viewer_id,
            filter=filter,
            cursor=cursor,
            limit=limit,
            digest=candidates_digest,
        )

        def _compute() -> RankedPage:
            posts, authors = fetcher()
            return self.rank_posts(
                posts,
                authors,
                viewer,
                limit=limit,
                cursor=cursor,
                filter=filter,
                verbose=verbose,
            )

        return self.cache.get_or_set(key, _compute, timeout=timeout)

    def explain(
        self,
        post: PostSnapshot,
        author: Optional[AuthorSnapshot] = None,
        viewer: Optional[ViewerContext] = None,
        now_ts: float = None,
    ) -> dict:
        return self.explainer.explain(post, author, viewer, now_ts=now_ts)

    def profile_stats(
        self,
        author: AuthorSnapshot,
        posts: list[PostSnapshot],
        viewer: Optional[ViewerContext] = None,
        now_ts: float = None,
        use_cache: bool = True,
    ) -> dict:
        """Score aggregates of one author's posts, cached per viewer."""

        def _compute() -> dict:
            own_posts = [post for post in posts if post.author_id == author.user_id]
            items = self.aggregator.score_all(
                own_posts, {author.user_id: author}, viewer, now_ts=now_ts
            )
            scores = [item.final_score for item in items]
            return {
                "user_id": author.user_id,
                "post_count": len(items),
                "total_engagement": sum(p.total_engagement for p in own_posts),
                "avg_final_score": sum(scores) / len(scores) if scores else 0.0,
                "max_final_score": max(scores) if scores else 0.0,
            }

        if not use_cache:
            return _compute()
        viewer_id = viewer.viewer_id if viewer else None
        key = build_fingerprint("profile", viewer_id=viewer_id, filter=author.user_id)
        # copy: the cached dict is shared by every hit
        return dict(self.cache.get_or_set(key, _compute))

    def log_weights(self):
        logger.note("> Ranking weights:")
        logger.mesg(dict_to_str(self.weights.to_dict()), indent=2)
