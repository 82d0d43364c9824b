"""
Score Aggregation

Composes the four additive scorers and the two multipliers into a
`ScoreBreakdown`, keeping every intermediate value so the final score can be
re-derived by the explanation view:

    base_score             = temporal + engagement + audience + content
    network_adjusted_score = base_score * network_multiplier
    final_score            = network_adjusted_score * verified_multiplier
"""

import time as _time

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict
from typing import Optional

from ranks.network import Relationship, NetworkResolver, VerificationScorer
from ranks.scorers import TemporalScorer, EngagementScorer, AudienceScorer, ContentScorer
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext
from ranks.weights import RankingWeights, DEFAULT_WEIGHTS

# Below this many candidates, thread dispatch costs more than it saves
PARALLEL_MIN_CANDIDATES = 64


@dataclass(frozen=True)
class ScoreBreakdown:
    temporal: float
    engagement: float
    audience: float
    content: float
    base_score: float
    network_multiplier: float
    network_adjusted_score: float
    verified_multiplier: float
    final_score: float
    relationship: Relationship = Relationship.DISCOVERY

    @property
    def is_discovery(self) -> bool:
        return self.relationship.is_discovery

    def to_dict(self) -> dict:
        info = asdict(self)
        info["relationship"] = self.relationship.value
        return info


@dataclass(frozen=True)
class RankedItem:
    """A post paired with the breakdown of its score."""

    post: PostSnapshot
    breakdown: ScoreBreakdown

    @property
    def final_score(self) -> float:
        return self.breakdown.final_score

    def sort_key(self) -> tuple:
        """final_score desc, then created_at desc, then id asc."""
        return (-self.breakdown.final_score, -self.post.created_at, self.post.id)

    def to_dict(self) -> dict:
        return {"post": self.post.to_dict(), "breakdown": self.breakdown.to_dict()}


class ScoreAggregator:
    """Scores posts for a viewer.

    Example:
        >>> aggregator = ScoreAggregator()
        >>> breakdown = aggregator.score(post, author, viewer, now_ts=now)
        >>> breakdown.final_score == (
        ...     breakdown.base_score
        ...     * breakdown.network_multiplier
        ...     * breakdown.verified_multiplier
        ... )
        True
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS, max_workers: int = 8):
        self.weights = weights
        self.max_workers = max_workers
        self.temporal_scorer = TemporalScorer(weights)
        self.engagement_scorer = EngagementScorer(weights)
        self.audience_scorer = AudienceScorer(weights)
        self.content_scorer = ContentScorer(weights)
        self.network_resolver = NetworkResolver(weights)
        self.verification_scorer = VerificationScorer(weights)

    def score(
        self,
        post: PostSnapshot,
        author: Optional[AuthorSnapshot],
        viewer: Optional[ViewerContext] = None,
        now_ts: float = None,
    ) -> ScoreBreakdown:
        if now_ts is None:
            now_ts = _time.time()
        if author is None:
            author = AuthorSnapshot.unknown(post.author_id)

        temporal = self.temporal_scorer.calc(post, now_ts=now_ts)
        engagement = self.engagement_scorer.calc(post)
        audience = self.audience_scorer.calc(author, now_ts=now_ts)
        content = self.content_scorer.calc(post, author)

        relationship = self.network_resolver.resolve(viewer, post, author)
        network_multiplier = self.network_resolver.multiplier(relationship)
        verified_multiplier = self.verification_scorer.calc(author)

        base_score = temporal + engagement + audience + content
        network_adjusted_score = base_score * network_multiplier
        final_score = network_adjusted_score * verified_multiplier

        return ScoreBreakdown(
            temporal=temporal,
            engagement=engagement,
            audience=audience,
            content=content,
            base_score=base_score,
            network_multiplier=network_multiplier,
            network_adjusted_score=network_adjusted_score,
            verified_multiplier=verified_multiplier,
            final_score=final_score,
            relationship=relationship,
        )

    def score_all(
        self,
        posts: list[PostSnapshot],
        authors: dict[str, AuthorSnapshot],
        viewer: Optional[ViewerContext] = None,
        now_ts: float = None,
    ) -> list[RankedItem]:
        """Score every candidate, in input order.

        All candidates share one `now_ts` so that a batch is scored against a
        single clock reading.
        """
        if now_ts is None:
            now_ts = _time.time()

        def _score_one(post: PostSnapshot) -> RankedItem:
            author = authors.get(post.author_id)
            return RankedItem(post, self.score(post, author, viewer, now_ts=now_ts))

        if len(posts) < PARALLEL_MIN_CANDIDATES or self.max_workers <= 1:
            return [_score_one(post) for post in posts]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(_score_one, posts))
