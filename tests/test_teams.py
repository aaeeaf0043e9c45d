"""Integration tests for registered teams and their ratings."""

from __future__ import annotations

import pytest

from domain.common import MidSeasonJoinPolicy
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.matches import MatchResolver
from domain.rankings import get_team_rankings
from domain.seasons import SeasonService
from domain.teams import TeamService
from models import Match
from repositories import team_repository


def _team_season_rankings(session_factory, season_id: int) -> dict:
    with session_factory() as session:
        return team_repository.get_team_season_rankings(session, season_id=season_id)


def test_register_team_stores_pairing_lower_id_first(
    teams: TeamService, kicker_id: int, player_ids: list[int]
) -> None:
    anna, ben, cara, dan = player_ids

    team = teams.register_team(kicker_id, " Sharks ", [cara, anna])

    assert team.name == "Sharks"
    assert team.player_ids == (anna, cara)
    assert (team.mmr, team.wins, team.losses, team.is_active) == (1000, 0, 0, True)
    assert [listed.id for listed in teams.list_teams(kicker_id)] == [team.id]


def test_register_team_rejects_invalid_pairings(
    seasons: SeasonService, teams: TeamService, kicker_id: int, player_ids: list[int]
) -> None:
    anna, ben, cara, dan = player_ids
    outsider = seasons.register_player(seasons.create_kicker("Basement"), "erik").id
    teams.register_team(kicker_id, "Sharks", [anna, ben])

    with pytest.raises(ValidationError, match="two different players"):
        teams.register_team(kicker_id, "Solo", [anna, anna])
    with pytest.raises(ValidationError, match="two different players"):
        teams.register_team(kicker_id, "Crowd", [anna, ben, cara])
    with pytest.raises(ValidationError, match="does not belong"):
        teams.register_team(kicker_id, "Mixed", [cara, outsider])
    with pytest.raises(NotFoundError):
        teams.register_team(kicker_id, "Ghosts", [cara, 9999])
    with pytest.raises(ConflictError, match="already exists"):
        teams.register_team(kicker_id, "Sharks", [cara, dan])
    with pytest.raises(ConflictError, match="already play as team 'Sharks'"):
        teams.register_team(kicker_id, "Reunion", [ben, anna])


def test_dissolved_pairing_can_register_again(
    teams: TeamService, kicker_id: int, player_ids: list[int]
) -> None:
    anna, ben, cara, dan = player_ids
    first = teams.register_team(kicker_id, "Sharks", [anna, ben])

    dissolved = teams.dissolve_team(first.id)
    second = teams.register_team(kicker_id, "Sharks II", [anna, ben])

    assert dissolved.is_active is False
    assert second.id != first.id
    assert [team.id for team in teams.list_teams(kicker_id)] == [second.id]
    assert len(teams.list_teams(kicker_id, active_only=False)) == 2
    with pytest.raises(ConflictError, match="already been dissolved"):
        teams.dissolve_team(first.id)
    with pytest.raises(NotFoundError):
        teams.dissolve_team(9999)


def test_match_between_registered_teams_moves_team_ratings(
    teams: TeamService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    jets = teams.register_team(kicker_id, "Jets", [ben, dan])

    # Slot order within a side does not matter: team 1 is dan/ben here.
    match = resolver.create_match(kicker_id, [dan, cara, ben, anna])
    assert (match.team1_id, match.team2_id) == (jets.id, sharks.id)

    result = resolver.end_match(match.id, score_team1=4, score_team2=10)

    assert result.rated_team_ids == (jets.id, sharks.id)
    assert (teams.get_team(sharks.id).mmr, teams.get_team(sharks.id).wins) == (1016, 1)
    assert (teams.get_team(jets.id).mmr, teams.get_team(jets.id).losses) == (984, 1)
    with session_factory() as session:
        stored = session.get(Match, match.id)
        assert (stored.mmr_team1, stored.mmr_team2) == (1000, 1000)


def test_team_delta_is_the_player_delta(
    teams: TeamService,
    resolver: MatchResolver,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    warmup = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    resolver.end_match(warmup.id, score_team1=10, score_team2=2)
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    jets = teams.register_team(kicker_id, "Jets", [ben, dan])

    match = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    result = resolver.end_match(match.id, score_team1=10, score_team2=8)

    # The favourites gain less than 16 although both teams start level.
    assert result.rating_change.team1_delta == 15
    assert teams.get_team(sharks.id).mmr == 1000 + result.rating_change.team1_delta
    assert teams.get_team(jets.id).mmr == 1000 + result.rating_change.team2_delta


@pytest.mark.parametrize("registered_side", ["none", "one"])
def test_team_ratings_need_both_sides_registered(
    registered_side: str,
    teams: TeamService,
    resolver: MatchResolver,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    sharks = None
    if registered_side == "one":
        sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])

    match = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    result = resolver.end_match(match.id, score_team1=10, score_team2=3)

    assert (match.team1_id, match.team2_id) == (None, None)
    assert result.rated_team_ids == ()
    if sharks is not None:
        assert teams.get_team(sharks.id).mmr == 1000


def test_one_on_one_matches_never_rate_teams(
    teams: TeamService,
    resolver: MatchResolver,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    teams.register_team(kicker_id, "Sharks", [anna, ben])

    match = resolver.create_match(kicker_id, [anna, ben])
    result = resolver.end_match(match.id, score_team1=10, score_team2=3)

    assert match.team1_id is None
    assert result.rated_team_ids == ()


def test_team_season_rankings_follow_the_team_delta(
    seasons: SeasonService,
    teams: TeamService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    season = seasons.start_season(kicker_id)
    jets = teams.register_team(kicker_id, "Jets", [ben, dan])
    assert set(_team_season_rankings(session_factory, season.id)) == {sharks.id, jets.id}

    match = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    resolver.end_match(match.id, score_team1=10, score_team2=7)

    rankings = _team_season_rankings(session_factory, season.id)
    assert (rankings[sharks.id].mmr, rankings[sharks.id].wins) == (1016, 1)
    assert (rankings[jets.id].mmr, rankings[jets.id].losses) == (984, 1)

    with session_factory() as session:
        table = get_team_rankings(session, kicker_id, season.id)
    assert [(entry.name, entry.mmr) for entry in table] == [("Sharks", 1016), ("Jets", 984)]


def test_ended_season_freezes_team_rankings(
    seasons: SeasonService,
    teams: TeamService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    teams.register_team(kicker_id, "Jets", [ben, dan])
    season = seasons.start_season(kicker_id)
    match = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    seasons.end_season(season.id)

    resolver.end_match(match.id, score_team1=10, score_team2=7)

    assert teams.get_team(sharks.id).mmr == 1016
    assert _team_season_rankings(session_factory, season.id)[sharks.id].mmr == 1000


def test_exclude_policy_skips_mid_season_teams(
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    policy = MidSeasonJoinPolicy.EXCLUDE
    seasons = SeasonService(session_factory, mid_season_join=policy)
    teams = TeamService(session_factory, mid_season_join=policy)
    resolver = MatchResolver(session_factory, mid_season_join=policy)
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    season = seasons.start_season(kicker_id)
    jets = teams.register_team(kicker_id, "Jets", [ben, dan])

    match = resolver.create_match(kicker_id, [anna, ben, cara, dan])
    resolver.end_match(match.id, score_team1=10, score_team2=7)

    rankings = _team_season_rankings(session_factory, season.id)
    assert set(rankings) == {sharks.id}
    assert rankings[sharks.id].mmr == 1016
    assert teams.get_team(jets.id).mmr == 984


def test_all_time_team_rankings_hide_dissolved_teams(
    teams: TeamService,
    resolver: MatchResolver,
    session_factory,
    kicker_id: int,
    player_ids: list[int],
) -> None:
    anna, ben, cara, dan = player_ids
    sharks = teams.register_team(kicker_id, "Sharks", [anna, cara])
    teams.register_team(kicker_id, "Jets", [ben, dan])
    teams.register_team(kicker_id, "Bench", [anna, dan])
    match = resolver.create_match(kicker_id, [ben, anna, dan, cara])
    resolver.end_match(match.id, score_team1=10, score_team2=5)

    with session_factory() as session:
        table = get_team_rankings(session, kicker_id)
        played = get_team_rankings(session, kicker_id, include_unplayed=False)
    assert [entry.name for entry in table] == ["Jets", "Bench", "Sharks"]
    assert [entry.name for entry in played] == ["Jets", "Sharks"]
    assert table[0].player_ids == tuple(sorted((ben, dan)))

    teams.dissolve_team(sharks.id)
    with session_factory() as session:
        assert [entry.name for entry in get_team_rankings(session, kicker_id)] == ["Jets", "Bench"]
        with pytest.raises(NotFoundError):
            get_team_rankings(session, kicker_id, season_id=9999)
