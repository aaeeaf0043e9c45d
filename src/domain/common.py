"""Shared enums and payload types for the match domain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Gamemode(str, Enum):
    """Team formation of a match."""

    ONE_ON_ONE = "1on1"
    TWO_ON_TWO = "2on2"

    @property
    def team_size(self) -> int:
        return 1 if self is Gamemode.ONE_ON_ONE else 2


class MatchStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class GoalType(str, Enum):
    """Closed set of goal kinds recorded in the goal log."""

    STANDARD = "standard_goal"
    OWN = "own_goal"
    GENERATED = "generated_goal"


class Team(int, Enum):
    ONE = 1
    TWO = 2

    @property
    def opponent(self) -> Team:
        return Team.TWO if self is Team.ONE else Team.ONE


class MidSeasonJoinPolicy(str, Enum):
    """What happens to players that have no ranking row in the running season."""

    SEED = "seed"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class MatchOutcome:
    """Canonical finished-match payload used by the MMR calculator."""

    match_id: int
    gamemode: Gamemode
    team1_ratings: tuple[tuple[int, float], ...]
    team2_ratings: tuple[tuple[int, float], ...]
    score_team1: int
    score_team2: int
    event_time: datetime | None = None

    @property
    def winner(self) -> Team:
        return Team.ONE if self.score_team1 > self.score_team2 else Team.TWO


__all__ = [
    "Gamemode",
    "GoalType",
    "MatchOutcome",
    "MatchStatus",
    "MidSeasonJoinPolicy",
    "Team",
]
