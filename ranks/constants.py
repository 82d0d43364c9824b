"""
Ranking Constants and Configuration

This module contains all default weights, bands and thresholds used by the
feed ranking engine. `ranks.weights.RankingWeights` is built from these
defaults and can be overridden per deployment (see configs/envs.json).

Organization:
    1. Temporal Scoring - age bands and engagement velocity
    2. Engagement Scoring - interaction weights and authenticity
    3. Audience Scoring - account age bands and follower term
    4. Content Quality Scoring - structural bonuses and originality
    5. Network Relationships - relationship multipliers and diverse-interest rule
    6. Verification
    7. Diversity Ranking - discovery floor and window limits
    8. Result Cache - TTL and namespaces
    9. Explanation - aggregation tolerance
    10. Feed Filters - candidate filters accepted by the feed ranker
"""

from typing import Literal

# =============================================================================
# Temporal Scoring
# =============================================================================

# Age bands in minutes: (lower_bound_inclusive, score).
# A post falls into the last band whose lower bound is <= its age.
TEMPORAL_BANDS = [
    (0, 100.0),  # 0-10 minutes
    (10, 80.0),  # 10-30 minutes
    (30, 60.0),  # 30-60 minutes
    (60, 40.0),  # 1-2 hours
    (120, 20.0),  # 2-6 hours
    (360, 10.0),  # 6-12 hours
    (720, 5.0),  # 12-24 hours
    (1440, 1.0),  # 24+ hours
]

# velocity_multiplier = min(1 + velocity / VELOCITY_SCALE, VELOCITY_MAX_MULTIPLIER)
# velocity is total engagement per hour of post age.
# 600/h equals +0.1 per engagement-per-minute.
VELOCITY_SCALE = 600.0
VELOCITY_MAX_MULTIPLIER = 3.0

# Smallest age (hours) used as velocity denominator: one minute
VELOCITY_MIN_AGE_HOURS = 1.0 / 60

# =============================================================================
# Engagement Scoring
# =============================================================================

# Points per unit of interaction. Replies weigh most: they show real conversation.
ENGAGEMENT_WEIGHTS = {
    "reply": 25.0,
    "repost": 15.0,
    "like": 5.0,
    "view": 0.5,
    "save": 0.0,
}

# authenticity = min(1 + unique_engagers * PER_ENGAGER, CAP)
AUTHENTICITY_PER_ENGAGER = 0.05
AUTHENTICITY_CAP = 3.0

# Thoughtful replies: when mean reply length exceeds the threshold,
# each reply earns REPLY_DEPTH_BONUS extra points
REPLY_DEPTH_MIN_AVG_LENGTH = 50
REPLY_DEPTH_BONUS = 2.0

# =============================================================================
# Audience Scoring
# =============================================================================

# Account-age bands in days: (lower_bound_inclusive, score)
AUDIENCE_AGE_BANDS = [
    (0, 50.0),  # new creators: 0-30 days
    (30, 30.0),  # growing creators: 30-180 days
    (180, 10.0),  # established creators: 180+ days
]

AUDIENCE_SCORE_PER_FOLLOWER = 0.1
# Caps the follower term so high-follower authors cannot dominate a feed
AUDIENCE_FOLLOWER_TERM_CAP = 500.0

PROFILE_TYPE_BONUSES = {
    "Developer": 3.0,
    "Designer": 3.0,
    "Influencer": 2.0,
    "Studio": 4.0,
    "Client": 1.0,
}

# =============================================================================
# Content Quality Scoring
# =============================================================================

CONTENT_WEIGHTS = {
    "media": 15.0,
    "poll": 12.0,
    "optimal_length": 8.0,
    "originality": 20.0,
}

CONTENT_OPTIMAL_LENGTH_MIN = 50
CONTENT_OPTIMAL_LENGTH_MAX = 500

# Originality signal in [0, 1], multiplied by CONTENT_WEIGHTS["originality"]
ORIGINALITY_SPAM_PHRASES = [
    "follow me",
    "like this if",
    "comment below",
    "share this",
    "check out my",
]
ORIGINALITY_SPAM_PENALTY = 0.3
ORIGINALITY_LONG_CONTENT_LENGTH = 100
ORIGINALITY_LONG_CONTENT_BONUS = 0.3
ORIGINALITY_QUESTION_BONUS = 0.2
ORIGINALITY_HASHTAG_BONUS = 0.1
ORIGINALITY_MENTION_BONUS = 0.1

# Token Jaccard similarity against an author's recent posts at or above
# this value marks the post as a near-duplicate (originality signal -> 0)
ORIGINALITY_DUPLICATE_SIMILARITY = 0.8

# =============================================================================
# Network Relationships
# =============================================================================

RELATIONSHIP_TYPE = Literal["self", "mutual", "following", "diverse", "discovery"]

NETWORK_MULTIPLIERS = {
    "self": 1.5,
    "mutual": 2.0,
    "following": 1.5,
    "diverse": 1.2,
    "discovery": 1.0,
}

# Relationships counted as "network" content by the diversity ranker.
# Everything else is "discovery" content.
NETWORK_RELATIONSHIPS = ("self", "mutual", "following")

# Diverse-interest: the post shares at least DIVERSE_MIN_SHARED_TAGS hashtags
# with the viewer's interests, while the author's interest graph overlaps the
# viewer's by less than DIVERSE_MAX_INTEREST_OVERLAP (Jaccard).
DIVERSE_MIN_SHARED_TAGS = 1
DIVERSE_MAX_INTEREST_OVERLAP = 0.25

# =============================================================================
# Verification
# =============================================================================

VERIFIED_MULTIPLIER = 1.5

# =============================================================================
# Diversity Ranking
# =============================================================================

DISCOVERY_MIN_RATIO = 0.30
FEED_PAGE_SIZE = 20
FEED_MAX_PAGE_SIZE = 50

# =============================================================================
# Result Cache
# =============================================================================

CACHE_TTL_SECONDS = 60.0
CACHE_NAMESPACE_TYPE = Literal["feed", "profile", "query", "object"]
CACHE_NAMESPACES = ("feed", "profile", "query", "object")

# =============================================================================
# Explanation
# =============================================================================

BREAKDOWN_TOLERANCE = 1e-6

# =============================================================================
# Feed Filters
# =============================================================================

# all: every candidate; network / discovery: only that relationship class;
# media: only posts with attached media
FEED_FILTER_TYPE = Literal["all", "network", "discovery", "media"]
FEED_FILTERS = ("all", "network", "discovery", "media")
FEED_FILTER = "all"
