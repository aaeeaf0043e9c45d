"""ORM models."""

from models.base import Base
from models.goal import Goal
from models.kicker import Kicker
from models.match import Match
from models.player import Player
from models.season import Season, SeasonRanking
from models.team import KickerTeam, TeamSeasonRanking

__all__ = [
    "Base",
    "Goal",
    "Kicker",
    "KickerTeam",
    "Match",
    "Player",
    "Season",
    "SeasonRanking",
    "TeamSeasonRanking",
]
