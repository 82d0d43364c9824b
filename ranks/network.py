"""
Network Relationship Resolution

Classifies the relationship between a viewer and a post's author into one of
five mutually exclusive states. Each state carries a score multiplier and a
class ("network" or "discovery") used by the diversity ranker.

Resolution order (first match wins):
    1. SELF       viewer is the author                        x1.5  network
    2. MUTUAL     viewer follows author and author follows back x2.0 network
    3. FOLLOWING  viewer follows author only                  x1.5  network
    4. DIVERSE    no follow, topical affinity from a different
                  interest graph                              x1.2  discovery
    5. DISCOVERY  anything else, including anonymous viewers  x1.0  discovery
"""

from enum import Enum
from typing import Optional

from ranks.constants import NETWORK_RELATIONSHIPS
from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext
from ranks.weights import RankingWeights, DEFAULT_WEIGHTS


class Relationship(str, Enum):
    SELF = "self"
    MUTUAL = "mutual"
    FOLLOWING = "following"
    DIVERSE = "diverse"
    DISCOVERY = "discovery"

    @property
    def is_network(self) -> bool:
        return self.value in NETWORK_RELATIONSHIPS

    @property
    def is_discovery(self) -> bool:
        return not self.is_network


def interest_overlap(interests_a: frozenset, interests_b: frozenset) -> float:
    """Jaccard overlap of two interest sets; 0 when either is empty."""
    if not interests_a or not interests_b:
        return 0.0
    return len(interests_a & interests_b) / len(interests_a | interests_b)


class NetworkResolver:
    """Resolves viewer/author relationships and their multipliers.

    Example:
        >>> resolver = NetworkResolver()
        >>> viewer = ViewerContext("u1", following_ids=frozenset({"u2"}),
        ...                        follower_ids=frozenset({"u2"}))
        >>> resolver.resolve(viewer, post_by_u2, author_u2)
        <Relationship.MUTUAL: 'mutual'>
        >>> resolver.multiplier(Relationship.MUTUAL)
        2.0
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def is_diverse_interest(
        self,
        viewer: ViewerContext,
        post: PostSnapshot,
        author: Optional[AuthorSnapshot] = None,
    ) -> bool:
        """Topical affinity through a different interest graph.

        The post's hashtags share at least `diverse_min_shared_tags` tags with
        the viewer's interests, while the author's own interests overlap the
        viewer's by less than `diverse_max_interest_overlap`.
        """
        if not viewer.interests:
            return False
        shared_tags = post.hashtags & viewer.interests
        if len(shared_tags) < self.weights.diverse_min_shared_tags:
            return False
        author_interests = author.interests if author else frozenset()
        overlap = interest_overlap(author_interests, viewer.interests)
        return overlap < self.weights.diverse_max_interest_overlap

    def resolve(
        self,
        viewer: Optional[ViewerContext],
        post: PostSnapshot,
        author: Optional[AuthorSnapshot] = None,
    ) -> Relationship:
        if viewer is None or viewer.is_anonymous:
            return Relationship.DISCOVERY
        author_id = post.author_id
        if viewer.viewer_id == author_id:
            return Relationship.SELF
        if viewer.follows(author_id):
            if viewer.followed_by(author_id):
                return Relationship.MUTUAL
            return Relationship.FOLLOWING
        if self.is_diverse_interest(viewer, post, author):
            return Relationship.DIVERSE
        return Relationship.DISCOVERY

    def multiplier(self, relationship: Relationship) -> float:
        return self.weights.network.get(relationship.value, 1.0)


class VerificationScorer:
    """Binary multiplier from author verification state."""

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def calc(self, author: Optional[AuthorSnapshot]) -> float:
        if author is not None and author.verified:
            return self.weights.verified_multiplier
        return 1.0
