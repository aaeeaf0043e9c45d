"""Persistence helpers for registered teams and their season rankings."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from models import KickerTeam, TeamSeasonRanking


def get_team(session: Session, team_id: int) -> KickerTeam | None:
    return session.get(KickerTeam, team_id)


def get_team_by_name(session: Session, *, kicker_id: int, name: str) -> KickerTeam | None:
    statement = select(KickerTeam).where(KickerTeam.kicker_id == kicker_id, KickerTeam.name == name)
    return session.execute(statement).scalar_one_or_none()


def get_active_team_for_pair(
    session: Session,
    *,
    kicker_id: int,
    player_ids: Sequence[int],
) -> KickerTeam | None:
    """Active team of exactly these two players, in either slot order."""
    low, high = sorted(player_ids)
    statement = select(KickerTeam).where(
        KickerTeam.kicker_id == kicker_id,
        KickerTeam.player1_id == low,
        KickerTeam.player2_id == high,
        KickerTeam.is_active.is_(True),
    )
    return session.execute(statement).scalar_one_or_none()


def list_teams(session: Session, kicker_id: int, *, active_only: bool = True) -> list[KickerTeam]:
    statement = select(KickerTeam).where(KickerTeam.kicker_id == kicker_id)
    if active_only:
        statement = statement.where(KickerTeam.is_active.is_(True))
    return list(session.execute(statement.order_by(KickerTeam.id)).scalars().all())


def lock_teams(session: Session, team_ids: Sequence[int]) -> dict[int, KickerTeam]:
    """Load teams for a rating update, row-locked where the backend supports it."""
    if not team_ids:
        return {}
    statement = (
        select(KickerTeam)
        .where(KickerTeam.id.in_(list(team_ids)))
        .order_by(KickerTeam.id)
        .with_for_update()
    )
    return {team.id: team for team in session.execute(statement).scalars().all()}


def insert_team(
    session: Session,
    *,
    kicker_id: int,
    name: str,
    player_ids: Sequence[int],
    initial_mmr: int,
) -> KickerTeam:
    """Create one active team; the pairing is stored lower id first."""
    low, high = sorted(player_ids)
    team = KickerTeam(
        kicker_id=kicker_id,
        name=name,
        player1_id=low,
        player2_id=high,
        mmr=initial_mmr,
        wins=0,
        losses=0,
        is_active=True,
    )
    session.add(team)
    session.flush()
    return team


def seed_team_season_rankings(
    session: Session,
    *,
    season_id: int,
    team_ids: Sequence[int],
    initial_mmr: int,
) -> None:
    if not team_ids:
        return
    payload = [
        {"team_id": team_id, "season_id": season_id, "mmr": initial_mmr, "wins": 0, "losses": 0}
        for team_id in team_ids
    ]
    session.execute(insert(TeamSeasonRanking), payload)


def get_team_season_rankings(
    session: Session,
    *,
    season_id: int,
    team_ids: Sequence[int] | None = None,
) -> dict[int, TeamSeasonRanking]:
    """Team ranking rows of one season keyed by team id."""
    statement = select(TeamSeasonRanking).where(TeamSeasonRanking.season_id == season_id)
    if team_ids is not None:
        statement = statement.where(TeamSeasonRanking.team_id.in_(list(team_ids)))
    return {row.team_id: row for row in session.execute(statement).scalars().all()}


def insert_team_season_ranking(
    session: Session,
    *,
    season_id: int,
    team_id: int,
    initial_mmr: int,
) -> TeamSeasonRanking:
    ranking = TeamSeasonRanking(
        team_id=team_id,
        season_id=season_id,
        mmr=initial_mmr,
        wins=0,
        losses=0,
    )
    session.add(ranking)
    session.flush()
    return ranking
