"""Persistence helpers for matches and their goal log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from domain.common import Gamemode, GoalType, MatchStatus, Team
from models import Goal, Match


def get_match(session: Session, match_id: int, *, for_update: bool = False) -> Match | None:
    statement = select(Match).where(Match.id == match_id)
    if for_update:
        statement = statement.with_for_update()
    return session.execute(statement).scalar_one_or_none()


def get_active_match(session: Session, kicker_id: int) -> Match | None:
    statement = select(Match).where(
        Match.kicker_id == kicker_id,
        Match.status == MatchStatus.ACTIVE,
    )
    return session.execute(statement).scalar_one_or_none()


def insert_match(
    session: Session,
    *,
    kicker_id: int,
    season_id: int | None,
    gamemode: Gamemode,
    team1: tuple[int, ...],
    team2: tuple[int, ...],
    start_time: datetime,
    team1_id: int | None = None,
    team2_id: int | None = None,
) -> Match:
    """Insert an active match; the partial unique index rejects a second active match on flush."""
    match = Match(
        kicker_id=kicker_id,
        season_id=season_id,
        gamemode=gamemode,
        status=MatchStatus.ACTIVE,
        player1=team1[0],
        player2=team2[0],
        player3=team1[1] if len(team1) > 1 else None,
        player4=team2[1] if len(team2) > 1 else None,
        team1_id=team1_id,
        team2_id=team2_id,
        score_team1=0,
        score_team2=0,
        last_goal_sequence=0,
        start_time=start_time,
    )
    session.add(match)
    session.flush()
    return match


def list_goals(session: Session, match_id: int) -> list[Goal]:
    """Goal log of one match in sequence order."""
    statement = select(Goal).where(Goal.match_id == match_id).order_by(Goal.sequence)
    return list(session.execute(statement).scalars().all())


def last_goal(session: Session, match_id: int) -> Goal | None:
    statement = (
        select(Goal)
        .where(Goal.match_id == match_id)
        .order_by(Goal.sequence.desc())
        .limit(1)
    )
    return session.execute(statement).scalar_one_or_none()


def count_goals_by_team(session: Session, match_id: int) -> dict[Team, int]:
    """Recompute the running score from the goal log."""
    statement = (
        select(Goal.team, func.count(Goal.id))
        .where(Goal.match_id == match_id)
        .group_by(Goal.team)
    )
    totals = {Team.ONE: 0, Team.TWO: 0}
    for team_value, goal_count in session.execute(statement).all():
        totals[Team(team_value)] = int(goal_count)
    return totals


def insert_goal(
    session: Session,
    *,
    match: Match,
    player_id: int | None,
    team: Team,
    goal_type: GoalType,
    created_at: datetime,
) -> Goal:
    """Append one goal with the next sequence number and the score snapshot of ``match``.

    Sequence numbers come from the counter on the (row-locked) match, so a
    number freed by an undo is never issued again.
    """
    match.last_goal_sequence += 1
    goal = Goal(
        match_id=match.id,
        kicker_id=match.kicker_id,
        player_id=player_id,
        team=int(team),
        goal_type=goal_type,
        sequence=match.last_goal_sequence,
        score_team1=match.score_team1,
        score_team2=match.score_team2,
        created_at=created_at,
    )
    session.add(goal)
    session.flush()
    return goal


def delete_goal(session: Session, goal: Goal) -> None:
    session.delete(goal)
    session.flush()


def delete_match(session: Session, match: Match) -> None:
    """Delete a match together with its goal log."""
    session.execute(delete(Goal).where(Goal.match_id == match.id))
    session.delete(match)
    session.flush()


def fetch_ended_matches(session: Session, kicker_id: int) -> list[Match]:
    """Ended matches of one kicker in deterministic chronological order."""
    statement = (
        select(Match)
        .where(Match.kicker_id == kicker_id, Match.status == MatchStatus.ENDED)
        .order_by(Match.end_time, Match.id)
    )
    return list(session.execute(statement).scalars().all())


def fetch_history_matches(
    session: Session,
    kicker_id: int,
    *,
    player_id: int | None = None,
    team_id: int | None = None,
    season_id: int | None = None,
    off_season_only: bool = False,
) -> list[Match]:
    """Ended matches filtered by participant and season, oldest first."""
    statement = select(Match).where(Match.kicker_id == kicker_id, Match.status == MatchStatus.ENDED)
    if player_id is not None:
        statement = statement.where(
            or_(
                Match.player1 == player_id,
                Match.player2 == player_id,
                Match.player3 == player_id,
                Match.player4 == player_id,
            )
        )
    if team_id is not None:
        statement = statement.where(or_(Match.team1_id == team_id, Match.team2_id == team_id))
    if season_id is not None:
        statement = statement.where(Match.season_id == season_id)
    elif off_season_only:
        statement = statement.where(Match.season_id.is_(None))
    statement = statement.order_by(Match.end_time, Match.id)
    return list(session.execute(statement).scalars().all())
