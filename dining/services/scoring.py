"""
Scoring engine for group restaurant recommendations.

Each candidate restaurant gets four sub-scores:
- overall_avg: mean overall rating of the event participants (1-5)
- nutrition_avg: mean nutrition rating of the event participants (1-5)
- cost_score: cheaper price tier scores higher (0-100)
- recency_score: restaurants the group has not eaten at lately score higher (0-100)

Missing ratings are filled per participant with fixed defaults, so a
restaurant nobody has rated yet is assumed to be above average.

final_score = 0.40 * overall_scaled + 0.30 * recency
            + 0.15 * nutrition_scaled + 0.15 * cost

where the two averages are rescaled from [1, 5] onto [0, 100].
"""

import math
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, List, Optional

SCORE_MIN = 0.0
SCORE_MAX = 100.0
SCORE_TOLERANCE = 1e-9
RATING_MIN = 1
RATING_MAX = 5

OVERALL_VALUES = frozenset({1, 2, 3, 4, 5})
NUTRITION_VALUES = frozenset({1, 3, 5})
PRICE_TIERS = (0, 1, 2, 3, 4)


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and defaults used by the scoring engine."""
    weight_overall: float = 0.40
    weight_recency: float = 0.30
    weight_nutrition: float = 0.15
    weight_cost: float = 0.15
    default_overall: int = 4
    default_nutrition: int = 3
    neutral_cost_score: float = 50.0
    recency_horizon_days: float = 30.0

    def __post_init__(self):
        total = self.weight_overall + self.weight_recency + self.weight_nutrition + self.weight_cost
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        if self.default_overall not in OVERALL_VALUES:
            raise ValueError(f"default_overall must be one of {sorted(OVERALL_VALUES)}")
        if self.default_nutrition not in NUTRITION_VALUES:
            raise ValueError(f"default_nutrition must be one of {sorted(NUTRITION_VALUES)}")
        if self.recency_horizon_days <= 0:
            raise ValueError("recency_horizon_days must be positive")

    @classmethod
    def from_app_config(cls, config) -> 'ScoringConfig':
        """Build from a Flask config mapping (only the horizon is tunable per deployment)."""
        return cls(recency_horizon_days=float(config.get('RECENCY_HORIZON_DAYS', 30)))


DEFAULT_CONFIG = ScoringConfig()


@dataclass(frozen=True)
class SignalScores:
    """The four sub-scores for one restaurant."""
    overall_avg: float
    nutrition_avg: float
    cost_score: float
    recency_score: float


@dataclass(frozen=True)
class ScoredRestaurant:
    """A restaurant with its sub-scores and combined score."""
    restaurant_id: str
    name: str
    address: Optional[str]
    price_level: Optional[int]
    overall_avg: float
    nutrition_avg: float
    recency_score: float
    cost_score: float
    final_score: float

    def to_dict(self) -> dict:
        return {
            'restaurant_id': self.restaurant_id,
            'name': self.name,
            'address': self.address,
            'price_level': self.price_level,
            'overall_avg': self.overall_avg,
            'nutrition_avg': self.nutrition_avg,
            'recency_score': self.recency_score,
            'cost_score': self.cost_score,
            'final_score': self.final_score,
        }


# ============== DEFAULT SUBSTITUTION ==============

def effective_overall(value: Optional[int], config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Overall rating to use for one participant."""
    return config.default_overall if value is None else value


def effective_nutrition(value: Optional[int], config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Nutrition rating to use for one participant."""
    return config.default_nutrition if value is None else value


# ============== SIGNAL AGGREGATION ==============

def cost_score(price_level: Optional[int], config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """Map price tier 0-4 onto 100-0. Unknown tier is neutral."""
    if price_level is None or price_level not in PRICE_TIERS:
        return config.neutral_cost_score
    return SCORE_MAX - price_level * (SCORE_MAX / PRICE_TIERS[-1])


def recency_score(last_visited_at: Optional[datetime], now: datetime,
                  config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """
    Score how long ago the group last ate here.

    Never visited -> maximum. Visited at `now` -> minimum. Grows linearly
    with elapsed time and saturates after the recency horizon.
    """
    if last_visited_at is None:
        return SCORE_MAX

    elapsed_days = (now - last_visited_at).total_seconds() / 86400.0
    score = SCORE_MAX * elapsed_days / config.recency_horizon_days
    return max(SCORE_MIN, min(SCORE_MAX, score))


def aggregate_signals(participant_ids: Iterable[str], ratings: Iterable[dict],
                      price_level: Optional[int], last_visited_at: Optional[datetime],
                      now: datetime, config: ScoringConfig = DEFAULT_CONFIG) -> SignalScores:
    """
    Compute the four sub-scores for one restaurant.

    Args:
        participant_ids: The event's fixed participant set
        ratings: Rating rows as dicts with 'user_id', 'overall', 'nutrition'.
            Rows from users outside the participant set are ignored.
        price_level: Restaurant price tier (0-4) or None
        last_visited_at: When this group last ate here, or None
        now: Reference time for the recency signal
        config: Scoring constants

    Returns:
        SignalScores
    """
    participants = sorted(set(participant_ids))
    if not participants:
        raise ValueError("participant set must not be empty")

    by_user = {row['user_id']: row for row in ratings if row['user_id'] in participants}

    overall_total = 0
    nutrition_total = 0
    for user_id in participants:
        row = by_user.get(user_id, {})
        overall_total += effective_overall(row.get('overall'), config)
        nutrition_total += effective_nutrition(row.get('nutrition'), config)

    return SignalScores(
        overall_avg=overall_total / len(participants),
        nutrition_avg=nutrition_total / len(participants),
        cost_score=cost_score(price_level, config),
        recency_score=recency_score(last_visited_at, now, config),
    )


# ============== COMBINATION ==============

def rescale_rating(avg: float) -> float:
    """Linearly map a 1-5 average onto 0-100."""
    return (avg - RATING_MIN) / (RATING_MAX - RATING_MIN) * SCORE_MAX


def combine(signals: SignalScores, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """Weighted sum of the four commensurable sub-scores."""
    return (
        config.weight_overall * rescale_rating(signals.overall_avg)
        + config.weight_recency * signals.recency_score
        + config.weight_nutrition * rescale_rating(signals.nutrition_avg)
        + config.weight_cost * signals.cost_score
    )


def _compare_desc(a: float, b: float) -> int:
    if math.isclose(a, b, rel_tol=0.0, abs_tol=SCORE_TOLERANCE):
        return 0
    return -1 if a > b else 1


def compare_ranked(a: ScoredRestaurant, b: ScoredRestaurant) -> int:
    """
    Order by final_score desc, then overall_avg desc, then id asc.

    Scores within SCORE_TOLERANCE of each other tie, so float noise never
    decides the order.
    """
    result = _compare_desc(a.final_score, b.final_score)
    if result == 0:
        result = _compare_desc(a.overall_avg, b.overall_avg)
    if result == 0 and a.restaurant_id != b.restaurant_id:
        result = -1 if a.restaurant_id < b.restaurant_id else 1
    return result


def rank(items: List[ScoredRestaurant]) -> List[ScoredRestaurant]:
    return sorted(items, key=cmp_to_key(compare_ranked))
