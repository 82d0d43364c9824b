"""
Ranks Module - Feed Scoring and Ranking

This module assigns every candidate post a visibility score and orders the
main feed from it, keeping every intermediate value for explanation.

Core Design:
    Each post gets four additive component scores and two multipliers:
    1. Temporal: age band (100 for < 10 minutes ... 1 for > 24 hours)
       scaled by engagement velocity (capped at 3x)
    2. Engagement: replies 25, reposts 15, likes 5, views 0.5 points each,
       scaled by an authenticity multiplier from unique engagers (capped)
    3. Audience: account-age band (new creators get the largest boost)
       plus a capped follower term and a profile-type bonus
    4. Content: media +15, poll +12, optimal length +8, originality up to +20
    5. Network multiplier: self 1.5, mutual 2.0, following 1.5,
       diverse-interest 1.2, discovery 1.0
    6. Verified multiplier: 1.5 for verified authors

        final = (temporal + engagement + audience + content) * network * verified

    The diversity ranker then sorts by final score while guaranteeing each page
    window at least 30% discovery content (authors the viewer does not follow).

Module Structure:
    - constants.py: All default weights, bands and thresholds
    - weights.py: RankingWeights, the overridable configuration map
    - snapshots.py: PostSnapshot, AuthorSnapshot, ViewerContext input records
    - scorers.py: Temporal, Engagement, Audience and Content scorers
    - network.py: Relationship enum, NetworkResolver, VerificationScorer
    - aggregator.py: ScoreBreakdown and ScoreAggregator
    - diversified.py: DiversityRanker and RankedPage (discovery floor, paging)
    - cursor.py: Opaque pagination cursors
    - explain.py: ScoreExplainer and breakdown verification
    - ranker.py: FeedRanker orchestrating scoring, ranking and caching

Usage:
    from ranks.ranker import FeedRanker
    from ranks.snapshots import PostSnapshot, AuthorSnapshot, ViewerContext
    from ranks.weights import RankingWeights
"""
