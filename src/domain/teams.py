"""Registered 2-on-2 teams: registration, dissolution and lookups."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import MidSeasonJoinPolicy
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.ratings.calculator import MmrParameters
from domain.seasons import clean_name
from domain.unit_of_work import transaction, utcnow
from models import KickerTeam
from repositories import player_repository, season_repository, team_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamSnapshot:
    id: int
    kicker_id: int
    name: str
    player_ids: tuple[int, int]
    mmr: int
    wins: int
    losses: int
    is_active: bool

    @classmethod
    def from_model(cls, team: KickerTeam) -> TeamSnapshot:
        return cls(
            id=team.id,
            kicker_id=team.kicker_id,
            name=team.name,
            player_ids=team.player_ids,
            mmr=team.mmr,
            wins=team.wins,
            losses=team.losses,
            is_active=team.is_active,
        )


class TeamService:
    """Registers fixed pairings that carry a rating of their own.

    A 2-on-2 match where both sides are active registered teams moves the team
    ratings by the same delta as the players' 2-on-2 ratings.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        params: MmrParameters | None = None,
        mid_season_join: MidSeasonJoinPolicy = MidSeasonJoinPolicy.SEED,
    ) -> None:
        self._session_factory = session_factory
        self.params = params or MmrParameters()
        self.mid_season_join = mid_season_join

    def register_team(self, kicker_id: int, name: str, player_ids: Sequence[int]) -> TeamSnapshot:
        name = clean_name(name, label="Team name")
        player_ids = tuple(player_ids)
        if len(player_ids) != 2 or player_ids[0] == player_ids[1]:
            raise ValidationError("A team needs exactly two different players")

        with transaction(self._session_factory, action="register the team") as session:
            if player_repository.get_kicker(session, kicker_id) is None:
                raise NotFoundError(f"Kicker {kicker_id} does not exist")
            for player_id in player_ids:
                player = player_repository.get_player(session, player_id)
                if player is None:
                    raise NotFoundError(f"Player {player_id} does not exist")
                if player.kicker_id != kicker_id:
                    raise ValidationError(f"Player {player_id} does not belong to kicker {kicker_id}")

            if team_repository.get_team_by_name(session, kicker_id=kicker_id, name=name) is not None:
                raise ConflictError(f"A team named {name!r} already exists in this kicker")
            existing = team_repository.get_active_team_for_pair(
                session,
                kicker_id=kicker_id,
                player_ids=player_ids,
            )
            if existing is not None:
                raise ConflictError(f"These players already play as team {existing.name!r}")

            try:
                team = team_repository.insert_team(
                    session,
                    kicker_id=kicker_id,
                    name=name,
                    player_ids=player_ids,
                    initial_mmr=self.params.initial_mmr,
                )
            except IntegrityError as exc:
                raise ConflictError("The team was registered concurrently") from exc

            season = season_repository.get_active_season(session, kicker_id)
            if season is not None and self.mid_season_join is MidSeasonJoinPolicy.SEED:
                team_repository.insert_team_season_ranking(
                    session,
                    season_id=season.id,
                    team_id=team.id,
                    initial_mmr=self.params.initial_mmr,
                )
            snapshot = TeamSnapshot.from_model(team)

        logger.info(
            "team registered team_id=%s kicker_id=%s players=%s",
            snapshot.id,
            kicker_id,
            snapshot.player_ids,
        )
        return snapshot

    def dissolve_team(self, team_id: int, *, now: datetime | None = None) -> TeamSnapshot:
        """Retire a team; its record stays, and the pairing may register a new team."""
        with transaction(self._session_factory, action="dissolve the team") as session:
            team = self._require_team(session, team_id)
            if not team.is_active:
                raise ConflictError("Team has already been dissolved")
            team.is_active = False
            team.dissolved_at = now or utcnow()
            snapshot = TeamSnapshot.from_model(team)

        logger.info("team dissolved team_id=%s kicker_id=%s", team_id, snapshot.kicker_id)
        return snapshot

    def get_team(self, team_id: int) -> TeamSnapshot:
        with transaction(self._session_factory, action="load the team") as session:
            return TeamSnapshot.from_model(self._require_team(session, team_id))

    def list_teams(self, kicker_id: int, *, active_only: bool = True) -> list[TeamSnapshot]:
        with transaction(self._session_factory, action="load the teams") as session:
            return [
                TeamSnapshot.from_model(team)
                for team in team_repository.list_teams(session, kicker_id, active_only=active_only)
            ]

    @staticmethod
    def _require_team(session: Session, team_id: int) -> KickerTeam:
        team = team_repository.get_team(session, team_id)
        if team is None:
            raise NotFoundError(f"Team {team_id} does not exist")
        return team


__all__ = ["TeamService", "TeamSnapshot"]
