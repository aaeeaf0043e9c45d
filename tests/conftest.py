"""Shared fixtures: a throwaway SQLite database per test and the services on top of it."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.events import MatchEventPublisher
from domain.matches import MatchResolver
from domain.seasons import SeasonService
from domain.teams import TeamService
from repositories import drop_kicker_schema, ensure_kicker_schema


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'kicker.db'}"


@pytest.fixture
def engine(db_url: str) -> Iterator[Engine]:
    engine = create_db_engine(db_url)
    ensure_kicker_schema(engine)
    yield engine
    drop_kicker_schema(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def publisher() -> MatchEventPublisher:
    return MatchEventPublisher()


@pytest.fixture
def seasons(session_factory: sessionmaker[Session]) -> SeasonService:
    return SeasonService(session_factory)


@pytest.fixture
def teams(session_factory: sessionmaker[Session]) -> TeamService:
    return TeamService(session_factory)


@pytest.fixture
def resolver(
    session_factory: sessionmaker[Session],
    publisher: MatchEventPublisher,
) -> MatchResolver:
    return MatchResolver(session_factory, publisher=publisher)


@pytest.fixture
def kicker_id(seasons: SeasonService) -> int:
    return seasons.create_kicker("Office")


@pytest.fixture
def player_ids(seasons: SeasonService, kicker_id: int) -> list[int]:
    """Four registered players: anna, ben, cara, dan."""
    return [seasons.register_player(kicker_id, name).id for name in ("anna", "ben", "cara", "dan")]
