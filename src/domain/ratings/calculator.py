"""Match-level MMR logic."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from domain.common import Gamemode, MatchOutcome, Team

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_MMR = 1000
DEFAULT_K_FACTOR = 32.0
DEFAULT_SCALE_FACTOR = 400.0


@dataclass(frozen=True)
class MmrParameters:
    initial_mmr: int = DEFAULT_INITIAL_MMR
    k_factor: float = DEFAULT_K_FACTOR
    scale_factor: float = DEFAULT_SCALE_FACTOR


@dataclass(frozen=True)
class PlayerRatingEvent:
    player_id: int
    team: Team
    won: bool
    expected_score: float
    pre_mmr: int
    mmr_delta: int
    post_mmr: int


@dataclass(frozen=True)
class MatchRatingChange:
    match_id: int
    gamemode: Gamemode
    event_time: datetime | None
    winner: Team
    team1_rating: float
    team2_rating: float
    team1_delta: int
    team2_delta: int
    events: tuple[PlayerRatingEvent, ...]

    def delta_for(self, team: Team) -> int:
        return self.team1_delta if team is Team.ONE else self.team2_delta


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def compute_rating_change(
    rating_a: float,
    rating_b: float,
    result_for_a: int,
    *,
    k_factor: float = DEFAULT_K_FACTOR,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> float:
    """Return the unrounded rating delta for side A; side B receives the negation.

    ``result_for_a`` is 1 when A won and 0 when A lost. Draws are not rated.
    """
    if result_for_a not in (0, 1):
        raise ValueError(f"result_for_a must be 0 or 1, got {result_for_a!r}")
    expected_a = calculate_expected_score(rating_a, rating_b, scale_factor)
    return k_factor * (result_for_a - expected_a)


def round_rating_delta(delta: float) -> int:
    """Round half away from zero so that ``round_rating_delta(-x) == -round_rating_delta(x)``."""
    return int(math.copysign(math.floor(abs(delta) + 0.5), delta))


def team_rating(ratings: Iterable[float]) -> float:
    """Average rating of one side; a 1-on-1 side is its single player."""
    values = list(ratings)
    if not values:
        raise ValueError("team rating requires at least one player")
    return sum(values) / len(values)


class MatchMmrCalculator:
    """Turns a finished match into per-player rating events.

    Both sides are compared once: a 2-on-2 match is a single comparison of the
    two team averages, and every teammate receives the identical delta.
    """

    def __init__(self, params: MmrParameters | None = None) -> None:
        self.params = params or MmrParameters()

    def process_match(self, outcome: MatchOutcome) -> MatchRatingChange:
        self._validate_outcome(outcome)

        team1_rating = team_rating(rating for _, rating in outcome.team1_ratings)
        team2_rating = team_rating(rating for _, rating in outcome.team2_ratings)
        winner = outcome.winner
        team1_result = 1 if winner is Team.ONE else 0

        team1_expected = calculate_expected_score(
            rating=team1_rating,
            opponent_rating=team2_rating,
            scale_factor=self.params.scale_factor,
        )
        raw_delta = compute_rating_change(
            team1_rating,
            team2_rating,
            team1_result,
            k_factor=self.params.k_factor,
            scale_factor=self.params.scale_factor,
        )
        team1_delta = round_rating_delta(raw_delta)
        team2_delta = -team1_delta

        logger.debug(
            "match_id=%s gamemode=%s team1_rating=%.1f team2_rating=%.1f raw_delta=%.3f applied=%d",
            outcome.match_id,
            outcome.gamemode.value,
            team1_rating,
            team2_rating,
            raw_delta,
            team1_delta,
        )

        events = self._team_events(
            outcome.team1_ratings,
            team=Team.ONE,
            won=winner is Team.ONE,
            expected_score=team1_expected,
            delta=team1_delta,
        ) + self._team_events(
            outcome.team2_ratings,
            team=Team.TWO,
            won=winner is Team.TWO,
            expected_score=1.0 - team1_expected,
            delta=team2_delta,
        )

        return MatchRatingChange(
            match_id=outcome.match_id,
            gamemode=outcome.gamemode,
            event_time=outcome.event_time,
            winner=winner,
            team1_rating=team1_rating,
            team2_rating=team2_rating,
            team1_delta=team1_delta,
            team2_delta=team2_delta,
            events=events,
        )

    @staticmethod
    def _team_events(
        members: Sequence[tuple[int, float]],
        *,
        team: Team,
        won: bool,
        expected_score: float,
        delta: int,
    ) -> tuple[PlayerRatingEvent, ...]:
        return tuple(
            PlayerRatingEvent(
                player_id=player_id,
                team=team,
                won=won,
                expected_score=expected_score,
                pre_mmr=int(rating),
                mmr_delta=delta,
                post_mmr=int(rating) + delta,
            )
            for player_id, rating in members
        )

    @staticmethod
    def _validate_outcome(outcome: MatchOutcome) -> None:
        expected_size = outcome.gamemode.team_size
        if len(outcome.team1_ratings) != expected_size or len(outcome.team2_ratings) != expected_size:
            raise ValueError(
                f"match_id={outcome.match_id} is {outcome.gamemode.value} but has team sizes "
                f"{len(outcome.team1_ratings)}/{len(outcome.team2_ratings)}"
            )

        player_ids = [player_id for player_id, _ in outcome.team1_ratings + outcome.team2_ratings]
        if len(player_ids) != len(set(player_ids)):
            raise ValueError(f"match_id={outcome.match_id} lists a player more than once: {player_ids}")

        if outcome.score_team1 == outcome.score_team2:
            raise ValueError(
                f"match_id={outcome.match_id} has no winner "
                f"({outcome.score_team1}:{outcome.score_team2})"
            )


__all__ = [
    "DEFAULT_INITIAL_MMR",
    "DEFAULT_K_FACTOR",
    "DEFAULT_SCALE_FACTOR",
    "MatchMmrCalculator",
    "MatchRatingChange",
    "MmrParameters",
    "PlayerRatingEvent",
    "calculate_expected_score",
    "compute_rating_change",
    "round_rating_delta",
    "team_rating",
]
