"""Persistence helpers for kickers and players."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Kicker, Player


def get_kicker(session: Session, kicker_id: int) -> Kicker | None:
    return session.get(Kicker, kicker_id)


def get_kicker_by_name(session: Session, name: str) -> Kicker | None:
    return session.execute(select(Kicker).where(Kicker.name == name)).scalar_one_or_none()


def insert_kicker(session: Session, *, name: str) -> Kicker:
    """Create one kicker and flush to obtain its id."""
    kicker = Kicker(name=name)
    session.add(kicker)
    session.flush()
    return kicker


def get_player(session: Session, player_id: int) -> Player | None:
    return session.get(Player, player_id)


def get_player_by_name(session: Session, *, kicker_id: int, name: str) -> Player | None:
    statement = select(Player).where(Player.kicker_id == kicker_id, Player.name == name)
    return session.execute(statement).scalar_one_or_none()


def list_players(session: Session, kicker_id: int) -> list[Player]:
    """All players of one kicker ordered by id."""
    statement = select(Player).where(Player.kicker_id == kicker_id).order_by(Player.id)
    return list(session.execute(statement).scalars().all())


def lock_players(session: Session, player_ids: Sequence[int]) -> dict[int, Player]:
    """Load players for a rating update, row-locked where the backend supports it."""
    if not player_ids:
        return {}
    statement = (
        select(Player)
        .where(Player.id.in_(list(player_ids)))
        .order_by(Player.id)
        .with_for_update()
    )
    return {player.id: player for player in session.execute(statement).scalars().all()}


def insert_player(session: Session, *, kicker_id: int, name: str, initial_mmr: int) -> Player:
    """Create one player at the initial rating for both gamemodes."""
    player = Player(
        kicker_id=kicker_id,
        name=name,
        mmr=initial_mmr,
        wins=0,
        losses=0,
        mmr2on2=initial_mmr,
        wins2on2=0,
        losses2on2=0,
    )
    session.add(player)
    session.flush()
    return player
