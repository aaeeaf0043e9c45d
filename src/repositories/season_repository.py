"""Persistence helpers for seasons and season rankings."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session

from models import Season, SeasonRanking


def get_season(session: Session, season_id: int) -> Season | None:
    return session.get(Season, season_id)


def get_active_season(session: Session, kicker_id: int) -> Season | None:
    statement = select(Season).where(Season.kicker_id == kicker_id, Season.is_active.is_(True))
    return session.execute(statement).scalar_one_or_none()


def list_seasons(session: Session, kicker_id: int) -> list[Season]:
    """Seasons of one kicker, newest first."""
    statement = (
        select(Season)
        .where(Season.kicker_id == kicker_id)
        .order_by(Season.season_number.desc())
    )
    return list(session.execute(statement).scalars().all())


def next_season_number(session: Session, kicker_id: int) -> int:
    statement = select(func.coalesce(func.max(Season.season_number), 0)).where(
        Season.kicker_id == kicker_id
    )
    return int(session.scalar(statement) or 0) + 1


def insert_season(
    session: Session,
    *,
    kicker_id: int,
    season_number: int,
    name: str,
    start_date: datetime,
) -> Season:
    season = Season(
        kicker_id=kicker_id,
        season_number=season_number,
        name=name,
        start_date=start_date,
        is_active=True,
    )
    session.add(season)
    session.flush()
    return season


def seed_season_rankings(
    session: Session,
    *,
    season_id: int,
    player_ids: Sequence[int],
    initial_mmr: int,
) -> None:
    """Bulk insert fresh ranking rows for the given players."""
    if not player_ids:
        return

    payload = [
        {
            "player_id": player_id,
            "season_id": season_id,
            "mmr": initial_mmr,
            "wins": 0,
            "losses": 0,
            "mmr2on2": initial_mmr,
            "wins2on2": 0,
            "losses2on2": 0,
        }
        for player_id in player_ids
    ]
    session.execute(insert(SeasonRanking), payload)


def get_season_rankings(
    session: Session,
    *,
    season_id: int,
    player_ids: Sequence[int] | None = None,
) -> dict[int, SeasonRanking]:
    """Ranking rows of one season keyed by player id."""
    statement = select(SeasonRanking).where(SeasonRanking.season_id == season_id)
    if player_ids is not None:
        statement = statement.where(SeasonRanking.player_id.in_(list(player_ids)))
    rows = session.execute(statement).scalars().all()
    return {row.player_id: row for row in rows}


def insert_season_ranking(
    session: Session,
    *,
    season_id: int,
    player_id: int,
    initial_mmr: int,
) -> SeasonRanking:
    ranking = SeasonRanking(
        player_id=player_id,
        season_id=season_id,
        mmr=initial_mmr,
        wins=0,
        losses=0,
        mmr2on2=initial_mmr,
        wins2on2=0,
        losses2on2=0,
    )
    session.add(ranking)
    session.flush()
    return ranking
