"""Tests for transaction scoping and database error translation."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from domain.errors import ConflictError, PersistenceError, ValidationError
from domain.seasons import SeasonService
from domain.unit_of_work import transaction
from models import Player


def test_commits_on_success(session_factory, kicker_id: int, player_ids: list[int]) -> None:
    with transaction(session_factory, action="rename") as session:
        session.get(Player, player_ids[0]).name = "annika"

    with session_factory() as session:
        assert session.get(Player, player_ids[0]).name == "annika"


def test_domain_errors_roll_back_and_pass_through(session_factory, player_ids: list[int]) -> None:
    with pytest.raises(ValidationError, match="nope"):
        with transaction(session_factory, action="rename") as session:
            session.get(Player, player_ids[0]).name = "annika"
            session.flush()
            raise ValidationError("nope")

    with session_factory() as session:
        assert session.get(Player, player_ids[0]).name == "anna"


def test_stale_rating_write_becomes_conflict(session_factory, player_ids: list[int]) -> None:
    with pytest.raises(ConflictError, match="changed concurrently"):
        with transaction(session_factory, action="end the match") as session:
            player = session.get(Player, player_ids[0])
            with session_factory() as other, other.begin():
                other.get(Player, player_ids[0]).mmr = 1050
            player.mmr = 1016

    with session_factory() as session:
        assert session.get(Player, player_ids[0]).mmr == 1050


def test_stale_data_error_is_mapped(session_factory) -> None:
    with pytest.raises(ConflictError) as exc_info:
        with transaction(session_factory, action="end the match"):
            raise StaleDataError("version mismatch")

    assert isinstance(exc_info.value.__cause__, StaleDataError)


def test_integrity_error_becomes_conflict(session_factory, seasons: SeasonService, kicker_id: int) -> None:
    seasons.register_player(kicker_id, "erik")

    with pytest.raises(ConflictError, match="Could not add the player"):
        with transaction(session_factory, action="add the player") as session:
            session.add(Player(kicker_id=kicker_id, name="erik"))
            session.flush()


def test_other_database_errors_become_persistence_errors(session_factory) -> None:
    with pytest.raises(PersistenceError, match="Could not load the table") as exc_info:
        with transaction(session_factory, action="load the table"):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    assert isinstance(exc_info.value.__cause__, OperationalError)
