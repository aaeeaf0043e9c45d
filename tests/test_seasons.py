"""Integration tests for season lifecycle and season ranking updates."""

from __future__ import annotations

from datetime import datetime

import pytest

from domain.common import MidSeasonJoinPolicy
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.matches import MatchResolver
from domain.seasons import SeasonService
from repositories import season_repository


def _rankings(session_factory, season_id: int) -> dict:
    with session_factory() as session:
        return season_repository.get_season_rankings(session, season_id=season_id)


def test_register_player_starts_at_initial_mmr(seasons: SeasonService, kicker_id: int) -> None:
    player = seasons.register_player(kicker_id, "  erik ")

    assert player.name == "erik"
    assert (player.mmr, player.wins, player.losses) == (1000, 0, 0)
    assert (player.mmr2on2, player.wins2on2, player.losses2on2) == (1000, 0, 0)


def test_register_player_rejects_duplicates_and_blank_names(seasons: SeasonService, kicker_id: int) -> None:
    seasons.register_player(kicker_id, "erik")

    with pytest.raises(ConflictError, match="already exists"):
        seasons.register_player(kicker_id, "erik")
    with pytest.raises(ValidationError, match="cannot be empty"):
        seasons.register_player(kicker_id, "   ")
    with pytest.raises(NotFoundError):
        seasons.register_player(9999, "erik")


def test_same_name_is_allowed_in_another_kicker(seasons: SeasonService, kicker_id: int) -> None:
    seasons.register_player(kicker_id, "erik")
    other = seasons.create_kicker("Basement")

    assert seasons.register_player(other, "erik").kicker_id == other


def test_create_kicker_rejects_duplicate_name(seasons: SeasonService, kicker_id: int) -> None:
    with pytest.raises(ConflictError):
        seasons.create_kicker("Office")


def test_start_season_seeds_every_player(
    seasons: SeasonService, session_factory, kicker_id: int, player_ids: list[int]
) -> None:
    started_at = datetime(2026, 4, 1, 9, 0, 0)
    season = seasons.start_season(kicker_id, now=started_at)

    assert season.season_number == 1
    assert season.name == "Season 1"
    assert season.is_active
    assert season.start_date == started_at
    assert seasons.current_season(kicker_id) == season

    rankings = _rankings(session_factory, season.id)
    assert set(rankings) == set(player_ids)
    assert all(row.mmr == 1000 and row.mmr2on2 == 1000 for row in rankings.values())
    assert all(row.wins == row.losses == 0 for row in rankings.values())


def test_only_one_active_season(seasons: SeasonService, kicker_id: int) -> None:
    seasons.start_season(kicker_id, "Spring")

    with pytest.raises(ConflictError, match="another season is active"):
        seasons.start_season(kicker_id)


def test_seasons_are_numbered_sequentially(seasons: SeasonService, kicker_id: int) -> None:
    first = seasons.start_season(kicker_id, "Spring")
    seasons.end_season(first.id)
    second = seasons.start_season(kicker_id)

    assert first.name == "Spring"
    assert second.season_number == 2
    assert second.name == "Season 2"
    assert [season.season_number for season in seasons.list_seasons(kicker_id)] == [2, 1]


def test_end_season_closes_it(seasons: SeasonService, kicker_id: int) -> None:
    season = seasons.start_season(kicker_id)
    ended_at = datetime(2026, 6, 30, 23, 0, 0)

    ended = seasons.end_season(season.id, now=ended_at)

    assert not ended.is_active
    assert ended.end_date == ended_at
    assert seasons.current_season(kicker_id) is None
    with pytest.raises(ConflictError, match="already ended"):
        seasons.end_season(season.id)
    with pytest.raises(NotFoundError):
        seasons.end_season(9999)


def test_season_rankings_receive_the_all_time_delta(
    seasons: SeasonService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, _, _ = player_ids
    # Build an all-time gap before the season so season and all-time ratings differ.
    warmup = resolver.create_match(kicker_id, [anna, ben])
    resolver.end_match(warmup.id, score_team1=10, score_team2=2)

    season = seasons.start_season(kicker_id)
    match = resolver.create_match(kicker_id, [anna, ben])
    assert match.season_id == season.id
    result = resolver.end_match(match.id, score_team1=3, score_team2=10)

    assert result.season_id == season.id
    assert set(result.season_player_ids) == {anna, ben}
    all_time_delta = result.rating_change.team2_delta
    assert all_time_delta == 17

    rankings = _rankings(session_factory, season.id)
    assert (rankings[ben].mmr, rankings[ben].wins, rankings[ben].losses) == (1000 + all_time_delta, 1, 0)
    assert (rankings[anna].mmr, rankings[anna].wins, rankings[anna].losses) == (1000 - all_time_delta, 0, 1)
    assert seasons.get_player(ben).mmr == 984 + all_time_delta


def test_matches_outside_a_season_leave_rankings_alone(
    seasons: SeasonService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    season = seasons.start_season(kicker_id)
    seasons.end_season(season.id)

    match = resolver.create_match(kicker_id, player_ids[:2])
    result = resolver.end_match(match.id, score_team1=10, score_team2=1)

    assert match.season_id is None
    assert result.season_id is None
    assert all(row.mmr == 1000 for row in _rankings(session_factory, season.id).values())


def test_match_running_when_season_ends_does_not_touch_frozen_rankings(
    seasons: SeasonService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    season = seasons.start_season(kicker_id)
    match = resolver.create_match(kicker_id, player_ids[:2])
    seasons.end_season(season.id)

    result = resolver.end_match(match.id, score_team1=10, score_team2=1)

    assert result.season_id is None
    assert result.rating_change.team1_delta == 16
    assert all(row.wins == 0 for row in _rankings(session_factory, season.id).values())


def test_mid_season_player_is_seeded_under_seed_policy(
    seasons: SeasonService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    season = seasons.start_season(kicker_id)
    newcomer = seasons.register_player(kicker_id, "erik").id

    assert _rankings(session_factory, season.id)[newcomer].mmr == 1000

    match = resolver.create_match(kicker_id, [newcomer, player_ids[0]])
    result = resolver.end_match(match.id, score_team1=10, score_team2=5)

    assert set(result.season_player_ids) == {newcomer, player_ids[0]}
    assert _rankings(session_factory, season.id)[newcomer].mmr == 1016


def test_seed_policy_creates_missing_row_at_match_end(
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    excluding = SeasonService(session_factory, mid_season_join=MidSeasonJoinPolicy.EXCLUDE)
    season = excluding.start_season(kicker_id)
    newcomer = excluding.register_player(kicker_id, "erik").id
    assert newcomer not in _rankings(session_factory, season.id)

    seeding_resolver = MatchResolver(session_factory, mid_season_join=MidSeasonJoinPolicy.SEED)
    match = seeding_resolver.create_match(kicker_id, [newcomer, player_ids[0]])
    seeding_resolver.end_match(match.id, score_team1=2, score_team2=10)

    rankings = _rankings(session_factory, season.id)
    assert (rankings[newcomer].mmr, rankings[newcomer].losses) == (984, 1)
    assert (rankings[player_ids[0]].mmr, rankings[player_ids[0]].wins) == (1016, 1)


def test_mid_season_player_is_skipped_under_exclude_policy(
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    seasons = SeasonService(session_factory, mid_season_join=MidSeasonJoinPolicy.EXCLUDE)
    resolver = MatchResolver(session_factory, mid_season_join=MidSeasonJoinPolicy.EXCLUDE)
    season = seasons.start_season(kicker_id)
    newcomer = seasons.register_player(kicker_id, "erik").id

    match = resolver.create_match(kicker_id, [newcomer, player_ids[0]])
    result = resolver.end_match(match.id, score_team1=10, score_team2=5)

    assert result.season_player_ids == (player_ids[0],)
    rankings = _rankings(session_factory, season.id)
    assert newcomer not in rankings
    assert (rankings[player_ids[0]].mmr, rankings[player_ids[0]].losses) == (984, 1)
    assert seasons.get_player(newcomer).mmr == 1016
