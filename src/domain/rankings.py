"""All-time and seasonal rankings of players and teams, plus a replay audit of stored ratings."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.common import Gamemode, MatchOutcome, Team
from domain.errors import NotFoundError
from domain.ratings.calculator import MatchMmrCalculator, MmrParameters
from models import KickerTeam, Player, Season, SeasonRanking, TeamSeasonRanking
from repositories import match_repository, player_repository


@dataclass(frozen=True)
class RankingEntry:
    rank: int
    player_id: int
    name: str
    mmr: int
    wins: int
    losses: int

    @property
    def games(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.games if self.games else 0.0


def get_rankings(
    session: Session,
    kicker_id: int,
    gamemode: Gamemode,
    season_id: int | None = None,
    *,
    include_unplayed: bool = True,
) -> list[RankingEntry]:
    """Rank players by MMR, then wins, then name.

    With ``season_id`` the season ranking rows are used, otherwise the
    all-time player records.
    """
    if season_id is None:
        mmr_column, wins_column, losses_column = _record_attributes(Player, gamemode)
        statement = select(Player.id, Player.name, mmr_column, wins_column, losses_column).where(
            Player.kicker_id == kicker_id
        )
    else:
        season = session.get(Season, season_id)
        if season is None or season.kicker_id != kicker_id:
            raise NotFoundError(f"Season {season_id} does not exist in kicker {kicker_id}")
        mmr_column, wins_column, losses_column = _record_attributes(SeasonRanking, gamemode)
        statement = (
            select(Player.id, Player.name, mmr_column, wins_column, losses_column)
            .join(SeasonRanking, SeasonRanking.player_id == Player.id)
            .where(Player.kicker_id == kicker_id, SeasonRanking.season_id == season_id)
        )

    statement = statement.order_by(mmr_column.desc(), wins_column.desc(), Player.name)

    entries: list[RankingEntry] = []
    for player_id, name, mmr, wins, losses in session.execute(statement).all():
        if not include_unplayed and wins + losses == 0:
            continue
        entries.append(
            RankingEntry(
                rank=len(entries) + 1,
                player_id=player_id,
                name=name,
                mmr=mmr,
                wins=wins,
                losses=losses,
            )
        )
    return entries


@dataclass(frozen=True)
class TeamRankingEntry:
    rank: int
    team_id: int
    name: str
    player_ids: tuple[int, int]
    mmr: int
    wins: int
    losses: int

    @property
    def games(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.games if self.games else 0.0


def get_team_rankings(
    session: Session,
    kicker_id: int,
    season_id: int | None = None,
    *,
    include_unplayed: bool = True,
) -> list[TeamRankingEntry]:
    """Rank registered teams by MMR, then wins, then name.

    The all-time table lists active teams only. A season table lists every
    team with a ranking row in that season, dissolved ones included.
    """
    columns = [KickerTeam.id, KickerTeam.name, KickerTeam.player1_id, KickerTeam.player2_id]
    if season_id is None:
        record = KickerTeam
        statement = select(*columns, KickerTeam.mmr, KickerTeam.wins, KickerTeam.losses).where(
            KickerTeam.kicker_id == kicker_id,
            KickerTeam.is_active.is_(True),
        )
    else:
        season = session.get(Season, season_id)
        if season is None or season.kicker_id != kicker_id:
            raise NotFoundError(f"Season {season_id} does not exist in kicker {kicker_id}")
        record = TeamSeasonRanking
        statement = (
            select(*columns, TeamSeasonRanking.mmr, TeamSeasonRanking.wins, TeamSeasonRanking.losses)
            .join(TeamSeasonRanking, TeamSeasonRanking.team_id == KickerTeam.id)
            .where(KickerTeam.kicker_id == kicker_id, TeamSeasonRanking.season_id == season_id)
        )

    statement = statement.order_by(record.mmr.desc(), record.wins.desc(), KickerTeam.name)

    entries: list[TeamRankingEntry] = []
    for team_id, name, player1_id, player2_id, mmr, wins, losses in session.execute(statement).all():
        if not include_unplayed and wins + losses == 0:
            continue
        entries.append(
            TeamRankingEntry(
                rank=len(entries) + 1,
                team_id=team_id,
                name=name,
                player_ids=(player1_id, player2_id),
                mmr=mmr,
                wins=wins,
                losses=losses,
            )
        )
    return entries


@dataclass(frozen=True)
class RatingDrift:
    player_id: int
    name: str
    field: str
    stored: int
    replayed: int


@dataclass
class RatingAudit:
    processed_matches: int = 0
    drifts: list[RatingDrift] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.drifts


def audit_ratings(
    session: Session,
    kicker_id: int,
    params: MmrParameters | None = None,
) -> RatingAudit:
    """Replay every ended match in order and compare the result with the stored records.

    Read-only: the replay never writes ratings back.
    """
    params = params or MmrParameters()
    if player_repository.get_kicker(session, kicker_id) is None:
        raise NotFoundError(f"Kicker {kicker_id} does not exist")

    players = player_repository.list_players(session, kicker_id)
    replayed: DefaultDict[int, dict[str, int]] = defaultdict(
        lambda: {
            "mmr": params.initial_mmr,
            "wins": 0,
            "losses": 0,
            "mmr2on2": params.initial_mmr,
            "wins2on2": 0,
            "losses2on2": 0,
        }
    )
    calculator = MatchMmrCalculator(params)
    audit = RatingAudit()

    for match in match_repository.fetch_ended_matches(session, kicker_id):
        mmr_key, wins_key, losses_key = _record_keys(match.gamemode)

        def side(team: Team) -> tuple[tuple[int, float], ...]:
            return tuple(
                (player_id, float(replayed[player_id][mmr_key]))
                for player_id in match.team_player_ids(team)
            )

        change = calculator.process_match(
            MatchOutcome(
                match_id=match.id,
                gamemode=match.gamemode,
                team1_ratings=side(Team.ONE),
                team2_ratings=side(Team.TWO),
                score_team1=match.score_team1,
                score_team2=match.score_team2,
                event_time=match.end_time,
            )
        )
        for rating_event in change.events:
            record = replayed[rating_event.player_id]
            record[mmr_key] = rating_event.post_mmr
            record[wins_key if rating_event.won else losses_key] += 1
        audit.processed_matches += 1

    for player in players:
        record = replayed[player.id]
        for field_name, replayed_value in record.items():
            stored_value = getattr(player, field_name)
            if stored_value != replayed_value:
                audit.drifts.append(
                    RatingDrift(
                        player_id=player.id,
                        name=player.name,
                        field=field_name,
                        stored=stored_value,
                        replayed=replayed_value,
                    )
                )
    return audit


def _record_keys(gamemode: Gamemode) -> tuple[str, str, str]:
    if gamemode is Gamemode.ONE_ON_ONE:
        return "mmr", "wins", "losses"
    return "mmr2on2", "wins2on2", "losses2on2"


def _record_attributes(model: type, gamemode: Gamemode) -> tuple:
    return tuple(getattr(model, key) for key in _record_keys(gamemode))


__all__ = [
    "RankingEntry",
    "RatingAudit",
    "RatingDrift",
    "TeamRankingEntry",
    "audit_ratings",
    "get_rankings",
    "get_team_rankings",
]
