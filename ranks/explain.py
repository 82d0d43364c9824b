"""
Score Explanation

Re-emits the full breakdown of a single post on demand (same inputs give the
same breakdown), with per-bonus content explanations, and checks the
aggregation identity the analytics view relies on:

    final_score == base_score * network_multiplier * verified_multiplier
"""

import math
import time as _time

from typing import Optional

from ranks.aggregator import ScoreAggregator, ScoreBreakdown
from ranks.constants import BREAKDOWN_TOLERANCE
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext


class BreakdownMismatchError(AssertionError):
    """A breakdown whose parts do not multiply out to its final score."""


def verify_breakdown(
    breakdown: ScoreBreakdown, tolerance: float = BREAKDOWN_TOLERANCE
) -> ScoreBreakdown:
    """Raise BreakdownMismatchError unless the breakdown is self-consistent."""
    base = (
        breakdown.temporal
        + breakdown.engagement
        + breakdown.audience
        + breakdown.content
    )
    checks = {
        "base_score": (breakdown.base_score, base),
        "network_adjusted_score": (
            breakdown.network_adjusted_score,
            breakdown.base_score * breakdown.network_multiplier,
        ),
        "final_score": (
            breakdown.final_score,
            breakdown.base_score
            * breakdown.network_multiplier
            * breakdown.verified_multiplier,
        ),
    }
    for name, (actual, expected) in checks.items():
        if not math.isfinite(actual) or abs(actual - expected) > tolerance * max(
            1.0, abs(expected)
        ):
            raise BreakdownMismatchError(
                f"{name} mismatch: got {actual}, recomputed {expected}"
            )
    return breakdown


class ScoreExplainer:
    """Transparency view over the aggregator.

    Example:
        >>> explainer = ScoreExplainer()
        >>> info = explainer.explain(post, author, viewer, now_ts=now)
        >>> info["content"]["media"]["points"]  # post with one image
        15.0
    """

    def __init__(self, aggregator: ScoreAggregator = None):
        self.aggregator = aggregator or ScoreAggregator()

    def explain(
        self,
        post: PostSnapshot,
        author: Optional[AuthorSnapshot] = None,
        viewer: Optional[ViewerContext] = None,
        now_ts: float = None,
    ) -> dict:
        if now_ts is None:
            now_ts = _time.time()
        breakdown = verify_breakdown(
            self.aggregator.score(post, author, viewer, now_ts=now_ts)
        )
        content = self.aggregator.content_scorer.breakdown(post, author)
        return {
            "post_id": post.id,
            "scored_at": now_ts,
            "breakdown": breakdown.to_dict(),
            "content": content,
        }
