"""Per-match rating history of players and teams, read from ended matches."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from domain.common import Gamemode, Team
from domain.errors import NotFoundError, ValidationError
from models import Match
from repositories import match_repository, player_repository, team_repository


@dataclass(frozen=True)
class RatingHistoryEntry:
    """One rated appearance of a player or team.

    ``mmr_before`` is the all-time rating for the match's gamemode when the
    match ended; ``mmr_after`` adds the side's change.
    """

    match_id: int
    subject_id: int
    gamemode: Gamemode
    season_id: int | None
    played_at: datetime
    mmr_before: int
    mmr_change: int
    won: bool

    @property
    def mmr_after(self) -> int:
        return self.mmr_before + self.mmr_change


def get_player_history(
    session: Session,
    kicker_id: int,
    player_id: int | None = None,
    season_id: int | None = None,
    *,
    off_season_only: bool = False,
    gamemode: Gamemode | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[RatingHistoryEntry]:
    """Rating history of one player, or of every player of the kicker.

    ``season_id`` keeps matches of that season; ``off_season_only`` keeps
    matches played while no season ran. ``since`` is inclusive and ``until``
    exclusive. Entries are ordered by match end time, then player id.
    """
    _check_filters(season_id, off_season_only, since, until)
    if player_repository.get_kicker(session, kicker_id) is None:
        raise NotFoundError(f"Kicker {kicker_id} does not exist")
    if player_id is not None:
        player = player_repository.get_player(session, player_id)
        if player is None or player.kicker_id != kicker_id:
            raise NotFoundError(f"Player {player_id} does not exist in kicker {kicker_id}")

    matches = match_repository.fetch_history_matches(
        session,
        kicker_id,
        player_id=player_id,
        season_id=season_id,
        off_season_only=off_season_only,
    )
    entries: list[RatingHistoryEntry] = []
    for match in _within(matches, gamemode, since, until):
        slots = sorted(
            (slot_player, pre_mmr, team)
            for slot_player, pre_mmr, team in (
                (match.player1, match.mmr_player1, Team.ONE),
                (match.player2, match.mmr_player2, Team.TWO),
                (match.player3, match.mmr_player3, Team.ONE),
                (match.player4, match.mmr_player4, Team.TWO),
            )
            if slot_player is not None and (player_id is None or slot_player == player_id)
        )
        for slot_player, pre_mmr, team in slots:
            entries.append(_entry(match, slot_player, pre_mmr, team))
    return entries


def get_team_history(
    session: Session,
    team_id: int,
    season_id: int | None = None,
    *,
    off_season_only: bool = False,
) -> list[RatingHistoryEntry]:
    """Rating history of one registered team, oldest match first."""
    _check_filters(season_id, off_season_only, None, None)
    team = team_repository.get_team(session, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} does not exist")

    matches = match_repository.fetch_history_matches(
        session,
        team.kicker_id,
        team_id=team_id,
        season_id=season_id,
        off_season_only=off_season_only,
    )
    entries = []
    for match in matches:
        side = Team.ONE if match.team1_id == team_id else Team.TWO
        pre_mmr = match.mmr_team1 if side is Team.ONE else match.mmr_team2
        entries.append(_entry(match, team_id, pre_mmr, side))
    return entries


def _entry(match: Match, subject_id: int, pre_mmr: int | None, team: Team) -> RatingHistoryEntry:
    if team is Team.ONE:
        change, scored, conceded = match.mmr_change_team1, match.score_team1, match.score_team2
    else:
        change, scored, conceded = match.mmr_change_team2, match.score_team2, match.score_team1
    if pre_mmr is None or change is None or match.end_time is None:
        raise ValueError(f"Ended match {match.id} is missing its rating snapshot")
    return RatingHistoryEntry(
        match_id=match.id,
        subject_id=subject_id,
        gamemode=match.gamemode,
        season_id=match.season_id,
        played_at=match.end_time,
        mmr_before=pre_mmr,
        mmr_change=change,
        won=scored > conceded,
    )


def _within(
    matches: list[Match],
    gamemode: Gamemode | None,
    since: datetime | None,
    until: datetime | None,
) -> list[Match]:
    return [
        match
        for match in matches
        if (gamemode is None or match.gamemode is gamemode)
        and (since is None or match.end_time >= since)
        and (until is None or match.end_time < until)
    ]


def _check_filters(
    season_id: int | None,
    off_season_only: bool,
    since: datetime | None,
    until: datetime | None,
) -> None:
    if season_id is not None and off_season_only:
        raise ValidationError("A season filter and the off-season filter exclude each other")
    if since is not None and until is not None and since >= until:
        raise ValidationError("The history window must end after it starts")


__all__ = ["RatingHistoryEntry", "get_player_history", "get_team_history"]
