"""
Ranking Weights

The externalized configuration map of every weight, band and threshold used
by the scorers. Defaults come from `ranks.constants`; deployments override
them with a nested dict (e.g. the "ranking" section of configs/envs.json)
without touching the scoring logic.

Example:
    >>> weights = RankingWeights.from_dict({"engagement": {"reply": 30.0}})
    >>> weights.engagement["reply"], weights.engagement["like"]
    (30.0, 5.0)
"""

from copy import deepcopy
from dataclasses import dataclass, field, fields, asdict

from ranks.constants import (
    TEMPORAL_BANDS,
    VELOCITY_SCALE,
    VELOCITY_MAX_MULTIPLIER,
    VELOCITY_MIN_AGE_HOURS,
    ENGAGEMENT_WEIGHTS,
    AUTHENTICITY_PER_ENGAGER,
    AUTHENTICITY_CAP,
    REPLY_DEPTH_MIN_AVG_LENGTH,
    REPLY_DEPTH_BONUS,
    AUDIENCE_AGE_BANDS,
    AUDIENCE_SCORE_PER_FOLLOWER,
    AUDIENCE_FOLLOWER_TERM_CAP,
    PROFILE_TYPE_BONUSES,
    CONTENT_WEIGHTS,
    CONTENT_OPTIMAL_LENGTH_MIN,
    CONTENT_OPTIMAL_LENGTH_MAX,
    NETWORK_MULTIPLIERS,
    DIVERSE_MIN_SHARED_TAGS,
    DIVERSE_MAX_INTEREST_OVERLAP,
    VERIFIED_MULTIPLIER,
    DISCOVERY_MIN_RATIO,
)


def _bands(bands) -> list[tuple[float, float]]:
    """Normalize bands to a sorted list of (lower_bound, score) tuples."""
    return sorted((float(lower), float(score)) for lower, score in bands)


@dataclass
class RankingWeights:
    """All tunable numbers of the ranking engine.

    Dict-valued fields (engagement, content, network, ...) may be partially
    overridden; scalar fields are replaced. Band lists are replaced whole.
    """

    temporal_bands: list = field(default_factory=lambda: _bands(TEMPORAL_BANDS))
    velocity_scale: float = VELOCITY_SCALE
    velocity_max_multiplier: float = VELOCITY_MAX_MULTIPLIER
    velocity_min_age_hours: float = VELOCITY_MIN_AGE_HOURS

    engagement: dict = field(default_factory=lambda: dict(ENGAGEMENT_WEIGHTS))
    authenticity_per_engager: float = AUTHENTICITY_PER_ENGAGER
    authenticity_cap: float = AUTHENTICITY_CAP
    reply_depth_min_avg_length: float = REPLY_DEPTH_MIN_AVG_LENGTH
    reply_depth_bonus: float = REPLY_DEPTH_BONUS

    audience_age_bands: list = field(
        default_factory=lambda: _bands(AUDIENCE_AGE_BANDS)
    )
    score_per_follower: float = AUDIENCE_SCORE_PER_FOLLOWER
    follower_term_cap: float = AUDIENCE_FOLLOWER_TERM_CAP
    profile_type_bonuses: dict = field(
        default_factory=lambda: dict(PROFILE_TYPE_BONUSES)
    )

    content: dict = field(default_factory=lambda: dict(CONTENT_WEIGHTS))
    optimal_length_min: int = CONTENT_OPTIMAL_LENGTH_MIN
    optimal_length_max: int = CONTENT_OPTIMAL_LENGTH_MAX

    network: dict = field(default_factory=lambda: dict(NETWORK_MULTIPLIERS))
    diverse_min_shared_tags: int = DIVERSE_MIN_SHARED_TAGS
    diverse_max_interest_overlap: float = DIVERSE_MAX_INTEREST_OVERLAP

    verified_multiplier: float = VERIFIED_MULTIPLIER
    discovery_min_ratio: float = DISCOVERY_MIN_RATIO

    @classmethod
    def from_dict(cls, overrides: dict = None) -> "RankingWeights":
        """Build weights from defaults updated with `overrides`.

        Raises:
            KeyError: if an override names an unknown field or dict key.
            ValueError: if an integer field gets a non-integral value.
        """
        weights = cls()
        if not overrides:
            return weights
        field_types = {f.name: f.type for f in fields(cls)}
        for key, val in overrides.items():
            if key not in field_types:
                raise KeyError(f"Unknown ranking weight: {key}")
            current = getattr(weights, key)
            if key.endswith("_bands"):
                setattr(weights, key, _bands(val))
            elif isinstance(current, dict):
                merged = dict(current)
                for sub_key, sub_val in (val or {}).items():
                    # profile types are an open set; other dicts are closed
                    if sub_key not in current and key != "profile_type_bonuses":
                        raise KeyError(f"Unknown ranking weight: {key}.{sub_key}")
                    merged[sub_key] = float(sub_val)
                setattr(weights, key, merged)
            elif field_types[key] is int:
                if isinstance(val, bool) or not float(val).is_integer():
                    raise ValueError(f"Ranking weight {key} must be an integer, got {val!r}")
                setattr(weights, key, int(float(val)))
            else:
                setattr(weights, key, float(val))
        return weights

    def to_dict(self) -> dict:
        return deepcopy(asdict(self))


DEFAULT_WEIGHTS = RankingWeights()
