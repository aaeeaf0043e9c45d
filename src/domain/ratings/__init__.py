"""MMR calculation and rating configuration."""

from domain.ratings.calculator import (
    MatchMmrCalculator,
    MatchRatingChange,
    MmrParameters,
    PlayerRatingEvent,
    calculate_expected_score,
    compute_rating_change,
    round_rating_delta,
    team_rating,
)
from domain.ratings.config import KickerConfig, load_kicker_config

__all__ = [
    "KickerConfig",
    "MatchMmrCalculator",
    "MatchRatingChange",
    "MmrParameters",
    "PlayerRatingEvent",
    "calculate_expected_score",
    "compute_rating_change",
    "load_kicker_config",
    "round_rating_delta",
    "team_rating",
]
