"""
Scoring Classes for Feed Ranking

This module provides scorer classes that convert raw post/author attributes
into additive score components. Each scorer handles one signal and is a pure
function of its inputs and the weights it was built with.

Scorers:
    - TemporalScorer: age band score x engagement velocity multiplier
    - EngagementScorer: weighted interactions x authenticity multiplier
    - AudienceScorer: account-age band + follower term + profile-type bonus
    - ContentScorer: media / poll / length / originality bonuses

Functions:
    - band_score: look up a value in a (lower_bound, score) band table
    - token_similarity: Jaccard similarity between word sets of two texts
"""

import re
import time as _time

from ranks.constants import (
    ORIGINALITY_SPAM_PHRASES,
    ORIGINALITY_SPAM_PENALTY,
    ORIGINALITY_LONG_CONTENT_LENGTH,
    ORIGINALITY_LONG_CONTENT_BONUS,
    ORIGINALITY_QUESTION_BONUS,
    ORIGINALITY_HASHTAG_BONUS,
    ORIGINALITY_MENTION_BONUS,
    ORIGINALITY_DUPLICATE_SIMILARITY,
)
from ranks.snapshots import PostSnapshot, AuthorSnapshot
from ranks.weights import RankingWeights, DEFAULT_WEIGHTS

SECONDS_PER_MINUTE = 60.0
SECONDS_PER_DAY = 86400.0


def band_score(value: float, bands: list[tuple[float, float]]) -> float:
    """Score of the last band whose inclusive lower bound is <= value.

    Example:
        >>> band_score(15, [(0, 100), (10, 80), (30, 60)])
        80
    """
    score = bands[0][1]
    for lower, band_val in bands:
        if value >= lower:
            score = band_val
        else:
            break
    return score


def token_similarity(text_a: str, text_b: str) -> float:
    tokens_a = set(re.findall(r"\w+", text_a.lower()))
    tokens_b = set(re.findall(r"\w+", text_b.lower()))
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


class TemporalScorer:
    """Recency scorer: age band score scaled by engagement velocity.

    Time bands (minutes, inclusive lower bound):
        - [0, 10):     100
        - [10, 30):     80
        - [30, 60):     60
        - [60, 120):    40
        - [120, 360):   20
        - [360, 720):   10
        - [720, 1440):   5
        - [1440, inf):   1

    velocity = total_engagement / max(age_hours, epsilon)
    multiplier = min(1 + velocity / velocity_scale, velocity_max_multiplier)

    Example:
        >>> scorer = TemporalScorer()
        >>> scorer.calc(post_5_minutes_old_no_engagement, now_ts=now)
        100.0
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def calc_age_minutes(self, created_at: float, now_ts: float) -> float:
        # clock skew: posts "from the future" are treated as brand new
        return max(0.0, now_ts - created_at) / SECONDS_PER_MINUTE

    def calc_velocity(self, total_engagement: int, age_minutes: float) -> float:
        age_hours = max(age_minutes / 60.0, self.weights.velocity_min_age_hours)
        return total_engagement / age_hours

    def calc_velocity_multiplier(self, velocity: float) -> float:
        w = self.weights
        return min(1.0 + velocity / w.velocity_scale, w.velocity_max_multiplier)

    def calc(self, post: PostSnapshot, now_ts: float = None) -> float:
        if now_ts is None:
            now_ts = _time.time()
        age_minutes = self.calc_age_minutes(post.created_at, now_ts)
        base = band_score(age_minutes, self.weights.temporal_bands)
        velocity = self.calc_velocity(post.total_engagement, age_minutes)
        return base * self.calc_velocity_multiplier(velocity)


class EngagementScorer:
    """Weighted interaction score with an authenticity multiplier.

    raw = likes*5 + reposts*15 + replies*25 + views*0.5 (+ saves*save_weight)
    authenticity = min(1 + unique_engagers*0.05, authenticity_cap)
    score = (raw + reply_depth_bonus) * authenticity

    Example:
        >>> scorer = EngagementScorer()
        >>> # 10 likes, 2 reposts, 1 reply, 100 views, 5 unique engagers
        >>> scorer.calc(post)
        193.75  # 155 * 1.25
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def calc_raw(self, post: PostSnapshot) -> float:
        w = self.weights.engagement
        return (
            post.like_count * w["like"]
            + post.repost_count * w["repost"]
            + post.reply_count * w["reply"]
            + post.view_count * w["view"]
            + post.save_count * w["save"]
        )

    def calc_reply_depth_bonus(self, post: PostSnapshot) -> float:
        """Bonus for thoughtful replies, only when reply lengths are known."""
        if post.reply_count <= 0 or not post.reply_lengths:
            return 0.0
        avg_length = sum(post.reply_lengths) / len(post.reply_lengths)
        if avg_length > self.weights.reply_depth_min_avg_length:
            return post.reply_count * self.weights.reply_depth_bonus
        return 0.0

    def calc_authenticity(self, post: PostSnapshot) -> float:
        w = self.weights
        multiplier = 1.0 + post.unique_engager_count * w.authenticity_per_engager
        return min(multiplier, w.authenticity_cap)

    def calc(self, post: PostSnapshot) -> float:
        raw = self.calc_raw(post) + self.calc_reply_depth_bonus(post)
        return raw * self.calc_authenticity(post)


class AudienceScorer:
    """Discovery boost from the author's account age and audience.

    score = age_band(days) + min(followers * 0.1, follower_term_cap)
            + profile_type_bonus
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def calc_account_age_days(self, author: AuthorSnapshot, now_ts: float) -> float:
        return max(0.0, now_ts - author.account_created_at) / SECONDS_PER_DAY

    def calc_follower_term(self, follower_count: int) -> float:
        w = self.weights
        return min(follower_count * w.score_per_follower, w.follower_term_cap)

    def calc(self, author: AuthorSnapshot, now_ts: float = None) -> float:
        if now_ts is None:
            now_ts = _time.time()
        age_days = self.calc_account_age_days(author, now_ts)
        age_boost = band_score(age_days, self.weights.audience_age_bands)
        profile_bonus = self.weights.profile_type_bonuses.get(author.profile_type, 0.0)
        return age_boost + self.calc_follower_term(author.follower_count) + profile_bonus


class OriginalityDetector:
    """Rule-based originality signal in [0, 1].

    Starts at 0 (no free points):
        - each spam/bait phrase: -0.3
        - content longer than 100 chars: +0.3
        - contains a question: +0.2
        - contains a hashtag: +0.1
        - contains a mention: +0.1
    Near-duplicates of the author's recent posts get 0.
    """

    def find_spam_phrases(self, content: str) -> list[str]:
        lowered = content.lower()
        return [p for p in ORIGINALITY_SPAM_PHRASES if p in lowered]

    def is_near_duplicate(self, content: str, recent_contents: tuple) -> bool:
        return any(
            token_similarity(content, recent) >= ORIGINALITY_DUPLICATE_SIMILARITY
            for recent in recent_contents
        )

    def explain(self, content: str, recent_contents: tuple = ()) -> tuple[float, list]:
        """Return (signal, reasons) where reasons are (delta, text) pairs."""
        if recent_contents and self.is_near_duplicate(content, recent_contents):
            return 0.0, [(0.0, "near-duplicate of a recent post")]
        reasons = []
        for phrase in self.find_spam_phrases(content):
            reasons.append((-ORIGINALITY_SPAM_PENALTY, f"spam phrase '{phrase}'"))
        if len(content) > ORIGINALITY_LONG_CONTENT_LENGTH:
            reasons.append((ORIGINALITY_LONG_CONTENT_BONUS, "thoughtful content"))
        if "?" in content:
            reasons.append((ORIGINALITY_QUESTION_BONUS, "asks a question"))
        if "#" in content:
            reasons.append((ORIGINALITY_HASHTAG_BONUS, "hashtags"))
        if "@" in content:
            reasons.append((ORIGINALITY_MENTION_BONUS, "mentions"))
        signal = sum(delta for delta, _ in reasons)
        return max(0.0, min(1.0, signal)), reasons

    def calc(self, content: str, recent_contents: tuple = ()) -> float:
        signal, _ = self.explain(content, recent_contents)
        return signal


class ContentScorer:
    """Structural quality bonuses, each independently testable.

    - media present: +15
    - poll present: +12
    - length within [50, 500] chars: +8
    - originality: 20 x signal, signal in [0, 1]
    """

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights
        self.originality_detector = OriginalityDetector()

    def is_optimal_length(self, content: str) -> bool:
        w = self.weights
        return w.optimal_length_min <= len(content) <= w.optimal_length_max

    def breakdown(self, post: PostSnapshot, author: AuthorSnapshot = None) -> dict:
        """Points and explanation for each content bonus.

        Returns:
            Dict of {"media"|"poll"|"length"|"originality": {"points", "explanation"}}.
        """
        w = self.weights.content
        recent_contents = author.recent_contents if author else ()
        length = len(post.content)

        if post.media_count > 0:
            media = {
                "points": w["media"],
                "explanation": f"Has {post.media_count} media file(s) = {w['media']:g} points",
            }
        else:
            media = {"points": 0.0, "explanation": "No media = 0 points"}

        if post.has_poll:
            poll = {
                "points": w["poll"],
                "explanation": f"Has interactive poll = {w['poll']:g} points",
            }
        else:
            poll = {"points": 0.0, "explanation": "No poll = 0 points"}

        if self.is_optimal_length(post.content):
            length_info = {
                "points": w["optimal_length"],
                "explanation": f"Optimal length ({length} chars) = {w['optimal_length']:g} points",
            }
        else:
            length_info = {
                "points": 0.0,
                "explanation": (
                    f"Length {length} chars (not optimal "
                    f"{self.weights.optimal_length_min}-{self.weights.optimal_length_max}) = 0 points"
                ),
            }

        signal, reasons = self.originality_detector.explain(
            post.content, recent_contents
        )
        originality_points = signal * w["originality"]
        if reasons:
            parts = ", ".join(
                f"{delta * w['originality']:+g} pts for {text}" for delta, text in reasons
            )
        else:
            parts = "basic content"
        originality = {
            "points": originality_points,
            "explanation": f"{originality_points:.1f} points: {parts}",
        }

        return {
            "media": media,
            "poll": poll,
            "length": length_info,
            "originality": originality,
        }

    def calc(self, post: PostSnapshot, author: AuthorSnapshot = None) -> float:
        return sum(item["points"] for item in self.breakdown(post, author).values())
