"""Season lifecycle and player registration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import MidSeasonJoinPolicy
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.ratings.calculator import MmrParameters
from domain.unit_of_work import transaction, utcnow
from models import Player, Season
from repositories import player_repository, season_repository, team_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeasonSnapshot:
    id: int
    kicker_id: int
    season_number: int
    name: str | None
    start_date: datetime
    end_date: datetime | None
    is_active: bool

    @classmethod
    def from_model(cls, season: Season) -> SeasonSnapshot:
        return cls(
            id=season.id,
            kicker_id=season.kicker_id,
            season_number=season.season_number,
            name=season.name,
            start_date=season.start_date,
            end_date=season.end_date,
            is_active=season.is_active,
        )


@dataclass(frozen=True)
class PlayerSnapshot:
    id: int
    kicker_id: int
    name: str
    mmr: int
    wins: int
    losses: int
    mmr2on2: int
    wins2on2: int
    losses2on2: int

    @classmethod
    def from_model(cls, player: Player) -> PlayerSnapshot:
        return cls(
            id=player.id,
            kicker_id=player.kicker_id,
            name=player.name,
            mmr=player.mmr,
            wins=player.wins,
            losses=player.losses,
            mmr2on2=player.mmr2on2,
            wins2on2=player.wins2on2,
            losses2on2=player.losses2on2,
        )


class SeasonService:
    """Creates kickers and players, and opens and closes seasons.

    Starting a season seeds a ranking row at the initial rating for every
    player and every active team of the kicker. Players and teams registered
    while a season runs get a row right away under ``MidSeasonJoinPolicy.SEED``
    and none under ``EXCLUDE``.
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

    def create_kicker(self, name: str) -> int:
        name = clean_name(name, label="Kicker name")
        with transaction(self._session_factory, action="create the kicker") as session:
            if player_repository.get_kicker_by_name(session, name) is not None:
                raise ConflictError(f"A kicker named {name!r} already exists")
            kicker_id = player_repository.insert_kicker(session, name=name).id
        logger.info("kicker created kicker_id=%s name=%s", kicker_id, name)
        return kicker_id

    def register_player(self, kicker_id: int, name: str) -> PlayerSnapshot:
        name = clean_name(name, label="Player name")
        with transaction(self._session_factory, action="register the player") as session:
            self._require_kicker(session, kicker_id)
            if player_repository.get_player_by_name(session, kicker_id=kicker_id, name=name) is not None:
                raise ConflictError(f"A player named {name!r} already exists in this kicker")

            try:
                player = player_repository.insert_player(
                    session,
                    kicker_id=kicker_id,
                    name=name,
                    initial_mmr=self.params.initial_mmr,
                )
            except IntegrityError as exc:
                raise ConflictError(f"A player named {name!r} already exists in this kicker") from exc

            season = season_repository.get_active_season(session, kicker_id)
            if season is not None and self.mid_season_join is MidSeasonJoinPolicy.SEED:
                season_repository.insert_season_ranking(
                    session,
                    season_id=season.id,
                    player_id=player.id,
                    initial_mmr=self.params.initial_mmr,
                )
            snapshot = PlayerSnapshot.from_model(player)

        logger.info("player registered player_id=%s kicker_id=%s", snapshot.id, kicker_id)
        return snapshot

    def get_player(self, player_id: int) -> PlayerSnapshot:
        with transaction(self._session_factory, action="load the player") as session:
            player = player_repository.get_player(session, player_id)
            if player is None:
                raise NotFoundError(f"Player {player_id} does not exist")
            return PlayerSnapshot.from_model(player)

    def start_season(
        self,
        kicker_id: int,
        name: str | None = None,
        *,
        now: datetime | None = None,
    ) -> SeasonSnapshot:
        with transaction(self._session_factory, action="start the season") as session:
            self._require_kicker(session, kicker_id)
            if season_repository.get_active_season(session, kicker_id) is not None:
                raise ConflictError(
                    "Cannot create a new season while another season is active. "
                    "Please end the current season first."
                )

            season_number = season_repository.next_season_number(session, kicker_id)
            try:
                season = season_repository.insert_season(
                    session,
                    kicker_id=kicker_id,
                    season_number=season_number,
                    name=name.strip() if name and name.strip() else f"Season {season_number}",
                    start_date=now or utcnow(),
                )
            except IntegrityError as exc:
                raise ConflictError("Another season was started concurrently") from exc

            player_ids = [player.id for player in player_repository.list_players(session, kicker_id)]
            season_repository.seed_season_rankings(
                session,
                season_id=season.id,
                player_ids=player_ids,
                initial_mmr=self.params.initial_mmr,
            )
            team_ids = [team.id for team in team_repository.list_teams(session, kicker_id)]
            team_repository.seed_team_season_rankings(
                session,
                season_id=season.id,
                team_ids=team_ids,
                initial_mmr=self.params.initial_mmr,
            )
            snapshot = SeasonSnapshot.from_model(season)

        logger.info(
            "season started season_id=%s kicker_id=%s number=%s seeded_players=%s seeded_teams=%s",
            snapshot.id,
            kicker_id,
            snapshot.season_number,
            len(player_ids),
            len(team_ids),
        )
        return snapshot

    def end_season(self, season_id: int, *, now: datetime | None = None) -> SeasonSnapshot:
        """Close a season; its ranking rows are frozen from here on."""
        with transaction(self._session_factory, action="end the season") as session:
            season = season_repository.get_season(session, season_id)
            if season is None:
                raise NotFoundError(f"Season {season_id} does not exist")
            if not season.is_active:
                raise ConflictError("Season has already ended")
            season.is_active = False
            season.end_date = now or utcnow()
            snapshot = SeasonSnapshot.from_model(season)

        logger.info("season ended season_id=%s kicker_id=%s", season_id, snapshot.kicker_id)
        return snapshot

    def current_season(self, kicker_id: int) -> SeasonSnapshot | None:
        with transaction(self._session_factory, action="load the current season") as session:
            season = season_repository.get_active_season(session, kicker_id)
            return SeasonSnapshot.from_model(season) if season is not None else None

    def list_seasons(self, kicker_id: int) -> list[SeasonSnapshot]:
        with transaction(self._session_factory, action="load the seasons") as session:
            return [
                SeasonSnapshot.from_model(season)
                for season in season_repository.list_seasons(session, kicker_id)
            ]

    @staticmethod
    def _require_kicker(session: Session, kicker_id: int) -> None:
        if player_repository.get_kicker(session, kicker_id) is None:
            raise NotFoundError(f"Kicker {kicker_id} does not exist")


def clean_name(value: str, *, label: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{label} cannot be empty")
    if len(cleaned) > 128:
        raise ValidationError(f"{label} cannot be longer than 128 characters")
    return cleaned


__all__ = ["PlayerSnapshot", "SeasonService", "SeasonSnapshot", "clean_name"]
