"""Match lifecycle: create, score, undo and end matches, applying MMR on end."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import Gamemode, GoalType, MatchOutcome, MatchStatus, MidSeasonJoinPolicy, Team
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.events import MatchEvent, MatchEventKind, MatchEventPublisher
from domain.ratings.calculator import MatchMmrCalculator, MatchRatingChange, MmrParameters
from domain.unit_of_work import transaction, utcnow
from models import Goal, Match, Player, SeasonRanking, TeamSeasonRanking
from repositories import match_repository, player_repository, season_repository, team_repository

logger = logging.getLogger(__name__)

ACTIVE_MATCH_EXISTS = "There already is an active match"
MATCH_ALREADY_ENDED = "Match has already ended"
AT_LEAST_ONE_TEAM_MUST_SCORE = "At least one team must score"


@dataclass(frozen=True)
class MatchSnapshot:
    """Detached, read-only view of a match row."""

    id: int
    kicker_id: int
    season_id: int | None
    gamemode: Gamemode
    status: MatchStatus
    team1: tuple[int, ...]
    team2: tuple[int, ...]
    team1_id: int | None
    team2_id: int | None
    score_team1: int
    score_team2: int
    start_time: datetime
    end_time: datetime | None
    mmr_change_team1: int | None
    mmr_change_team2: int | None

    @classmethod
    def from_model(cls, match: Match) -> MatchSnapshot:
        return cls(
            id=match.id,
            kicker_id=match.kicker_id,
            season_id=match.season_id,
            gamemode=match.gamemode,
            status=match.status,
            team1=match.team_player_ids(Team.ONE),
            team2=match.team_player_ids(Team.TWO),
            team1_id=match.team1_id,
            team2_id=match.team2_id,
            score_team1=match.score_team1,
            score_team2=match.score_team2,
            start_time=match.start_time,
            end_time=match.end_time,
            mmr_change_team1=match.mmr_change_team1,
            mmr_change_team2=match.mmr_change_team2,
        )


@dataclass(frozen=True)
class GoalEntry:
    sequence: int
    player_id: int | None
    team: Team
    goal_type: GoalType
    score_team1: int
    score_team2: int
    created_at: datetime

    @classmethod
    def from_model(cls, goal: Goal) -> GoalEntry:
        return cls(
            sequence=goal.sequence,
            player_id=goal.player_id,
            team=Team(goal.team),
            goal_type=goal.goal_type,
            score_team1=goal.score_team1,
            score_team2=goal.score_team2,
            created_at=goal.created_at,
        )


@dataclass(frozen=True)
class MatchResult:
    """Outcome of ending a match."""

    match: MatchSnapshot
    rating_change: MatchRatingChange
    season_id: int | None
    season_player_ids: tuple[int, ...]
    generated_goals: int
    rated_team_ids: tuple[int, ...] = ()


class MatchResolver:
    """Enforces the match lifecycle of every kicker and drives rating updates.

    ``none -> active`` via :meth:`create_match`, ``active -> active`` via goals
    and undo, ``active -> ended`` exactly once via :meth:`end_match`. Ended
    matches are never modified again.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        params: MmrParameters | None = None,
        mid_season_join: MidSeasonJoinPolicy = MidSeasonJoinPolicy.SEED,
        publisher: MatchEventPublisher | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.params = params or MmrParameters()
        self.mid_season_join = mid_season_join
        self.publisher = publisher
        self._calculator = MatchMmrCalculator(self.params)

    def create_match(
        self,
        kicker_id: int,
        player_ids: Sequence[int],
        *,
        now: datetime | None = None,
    ) -> MatchSnapshot:
        """Start a match; slots are ``player1..player4`` with odd slots on team 1."""
        player_ids = tuple(player_ids)
        if len(player_ids) not in (2, 4):
            raise ValidationError(
                f"A match needs exactly 2 or 4 players, got {len(player_ids)}"
            )
        if len(set(player_ids)) != len(player_ids):
            raise ValidationError("A player cannot take more than one slot in a match")

        gamemode = Gamemode.ONE_ON_ONE if len(player_ids) == 2 else Gamemode.TWO_ON_TWO
        team1 = player_ids[0::2]
        team2 = player_ids[1::2]
        start_time = now or utcnow()

        with transaction(self._session_factory, action="create the match") as session:
            if player_repository.get_kicker(session, kicker_id) is None:
                raise NotFoundError(f"Kicker {kicker_id} does not exist")
            self._require_kicker_players(session, kicker_id, player_ids)

            if match_repository.get_active_match(session, kicker_id) is not None:
                logger.warning("create match rejected kicker_id=%s: active match exists", kicker_id)
                raise ConflictError(ACTIVE_MATCH_EXISTS)

            team1_id, team2_id = self._registered_teams(session, kicker_id, gamemode, team1, team2)
            season = season_repository.get_active_season(session, kicker_id)
            try:
                match = match_repository.insert_match(
                    session,
                    kicker_id=kicker_id,
                    season_id=season.id if season is not None else None,
                    gamemode=gamemode,
                    team1=team1,
                    team2=team2,
                    start_time=start_time,
                    team1_id=team1_id,
                    team2_id=team2_id,
                )
            except IntegrityError as exc:
                # Lost the race against a concurrent create for the same kicker.
                logger.warning("create match rejected kicker_id=%s: active match exists", kicker_id)
                raise ConflictError(ACTIVE_MATCH_EXISTS) from exc
            snapshot = MatchSnapshot.from_model(match)

        logger.info(
            "match created match_id=%s kicker_id=%s gamemode=%s season_id=%s",
            snapshot.id,
            kicker_id,
            gamemode.value,
            snapshot.season_id,
        )
        self._publish(MatchEventKind.CREATED, snapshot, start_time)
        return snapshot

    def score_goal(self, match_id: int, player_id: int, *, now: datetime | None = None) -> MatchSnapshot:
        """Credit one goal to the scorer's own team."""
        return self._record_goal(match_id, player_id, goal_type=GoalType.STANDARD, now=now)

    def score_own_goal(self, match_id: int, player_id: int, *, now: datetime | None = None) -> MatchSnapshot:
        """Credit one goal to the opposing team, attributed to the player as an own goal."""
        return self._record_goal(match_id, player_id, goal_type=GoalType.OWN, now=now)

    def undo_last_action(self, match_id: int, *, now: datetime | None = None) -> MatchSnapshot:
        """Remove the most recent goal and recompute the score from the remaining log.

        Undoing a match without goals changes nothing.
        """
        with transaction(self._session_factory, action="undo the last goal") as session:
            match = self._require_match(session, match_id, for_update=True)
            self._require_active(match, "Goals can only be undone in an active match")

            goal = match_repository.last_goal(session, match.id)
            if goal is None:
                logger.info("undo ignored match_id=%s: no goals recorded", match_id)
                return MatchSnapshot.from_model(match)

            match_repository.delete_goal(session, goal)
            totals = match_repository.count_goals_by_team(session, match.id)
            match.score_team1 = totals[Team.ONE]
            match.score_team2 = totals[Team.TWO]
            snapshot = MatchSnapshot.from_model(match)

        logger.info(
            "goal undone match_id=%s score=%s:%s",
            match_id,
            snapshot.score_team1,
            snapshot.score_team2,
        )
        self._publish(MatchEventKind.UNDO, snapshot, now or utcnow())
        return snapshot

    def end_match(
        self,
        match_id: int,
        *,
        score_team1: int | None = None,
        score_team2: int | None = None,
        now: datetime | None = None,
    ) -> MatchResult:
        """Finish a match and apply the rating update to every participant.

        Without an explicit score the goal log decides. An explicit score that
        exceeds the log is reconciled with generated goals. Player rows, the
        rows of registered teams and, for a still-running season, the season
        ranking rows are updated in the same transaction.
        """
        explicit_score = self._validate_explicit_score(score_team1, score_team2)
        end_time = now or utcnow()

        with transaction(self._session_factory, action="end the match") as session:
            match = self._require_match(session, match_id, for_update=True)
            if match.status is not MatchStatus.ACTIVE:
                logger.warning("end match rejected match_id=%s: already ended", match_id)
                raise ConflictError(MATCH_ALREADY_ENDED)

            logged = match_repository.count_goals_by_team(session, match.id)
            final = self._final_score(logged, explicit_score)

            players = player_repository.lock_players(
                session,
                match.team_player_ids(Team.ONE) + match.team_player_ids(Team.TWO),
            )
            generated_goals = self._reconcile_goal_log(session, match, logged, final, end_time)

            change = self._calculator.process_match(
                MatchOutcome(
                    match_id=match.id,
                    gamemode=match.gamemode,
                    team1_ratings=self._team_ratings(match, Team.ONE, players),
                    team2_ratings=self._team_ratings(match, Team.TWO, players),
                    score_team1=final[Team.ONE],
                    score_team2=final[Team.TWO],
                    event_time=end_time,
                )
            )
            for rating_event in change.events:
                players[rating_event.player_id].apply_result(
                    match.gamemode,
                    mmr_delta=rating_event.mmr_delta,
                    won=rating_event.won,
                )

            season_id, season_player_ids = self._apply_season_rankings(session, match, change)
            rated_team_ids = self._apply_team_ratings(session, match, change, season_id)

            pre_mmr = {rating_event.player_id: rating_event.pre_mmr for rating_event in change.events}
            match.mmr_player1 = pre_mmr[match.player1]
            match.mmr_player2 = pre_mmr[match.player2]
            match.mmr_player3 = pre_mmr.get(match.player3)
            match.mmr_player4 = pre_mmr.get(match.player4)
            match.mmr_change_team1 = change.team1_delta
            match.mmr_change_team2 = change.team2_delta
            match.score_team1 = final[Team.ONE]
            match.score_team2 = final[Team.TWO]
            match.status = MatchStatus.ENDED
            match.end_time = end_time
            snapshot = MatchSnapshot.from_model(match)

        logger.info(
            "match ended match_id=%s score=%s:%s winner=team%s delta=%+d season_id=%s",
            match_id,
            snapshot.score_team1,
            snapshot.score_team2,
            int(change.winner),
            change.team1_delta,
            season_id,
        )
        self._publish(MatchEventKind.ENDED, snapshot, end_time)
        return MatchResult(
            match=snapshot,
            rating_change=change,
            season_id=season_id,
            season_player_ids=season_player_ids,
            generated_goals=generated_goals,
            rated_team_ids=rated_team_ids,
        )

    def abort_match(self, match_id: int, *, now: datetime | None = None) -> MatchSnapshot:
        """Delete an active match and its goal log without rating anyone."""
        with transaction(self._session_factory, action="delete the match") as session:
            match = self._require_match(session, match_id, for_update=True)
            if match.status is not MatchStatus.ACTIVE:
                raise ConflictError("Ended matches cannot be deleted")
            snapshot = MatchSnapshot.from_model(match)
            match_repository.delete_match(session, match)

        logger.info("match aborted match_id=%s kicker_id=%s", match_id, snapshot.kicker_id)
        self._publish(MatchEventKind.ABORTED, snapshot, now or utcnow())
        return snapshot

    def get_match(self, match_id: int) -> MatchSnapshot:
        with transaction(self._session_factory, action="load the match") as session:
            return MatchSnapshot.from_model(self._require_match(session, match_id))

    def get_active_match(self, kicker_id: int) -> MatchSnapshot | None:
        with transaction(self._session_factory, action="load the active match") as session:
            match = match_repository.get_active_match(session, kicker_id)
            return MatchSnapshot.from_model(match) if match is not None else None

    def goal_log(self, match_id: int) -> list[GoalEntry]:
        with transaction(self._session_factory, action="load the goals") as session:
            self._require_match(session, match_id)
            return [GoalEntry.from_model(goal) for goal in match_repository.list_goals(session, match_id)]

    def _record_goal(
        self,
        match_id: int,
        player_id: int,
        *,
        goal_type: GoalType,
        now: datetime | None,
    ) -> MatchSnapshot:
        scored_at = now or utcnow()
        with transaction(self._session_factory, action="score the goal") as session:
            match = self._require_match(session, match_id, for_update=True)
            self._require_active(match, "Goals can only be scored in an active match")

            own_team = match.team_of(player_id)
            if own_team is None:
                raise ValidationError(f"Player {player_id} is not part of match {match_id}")
            credited = own_team if goal_type is GoalType.STANDARD else own_team.opponent

            if credited is Team.ONE:
                match.score_team1 += 1
            else:
                match.score_team2 += 1
            match_repository.insert_goal(
                session,
                match=match,
                player_id=player_id,
                team=credited,
                goal_type=goal_type,
                created_at=scored_at,
            )
            snapshot = MatchSnapshot.from_model(match)

        logger.info(
            "%s match_id=%s player_id=%s score=%s:%s",
            goal_type.value,
            match_id,
            player_id,
            snapshot.score_team1,
            snapshot.score_team2,
        )
        kind = MatchEventKind.GOAL if goal_type is GoalType.STANDARD else MatchEventKind.OWN_GOAL
        self._publish(kind, snapshot, scored_at)
        return snapshot

    def _reconcile_goal_log(
        self,
        session: Session,
        match: Match,
        logged: dict[Team, int],
        final: dict[Team, int],
        created_at: datetime,
    ) -> int:
        """Append generated goals until the log adds up to the final score."""
        match.score_team1 = logged[Team.ONE]
        match.score_team2 = logged[Team.TWO]
        generated = 0
        for team in (Team.ONE, Team.TWO):
            members = match.team_player_ids(team)
            # Only a 1-on-1 side has an unambiguous player to attribute the goal to.
            attributed_player = members[0] if len(members) == 1 else None
            for _ in range(final[team] - logged[team]):
                if team is Team.ONE:
                    match.score_team1 += 1
                else:
                    match.score_team2 += 1
                match_repository.insert_goal(
                    session,
                    match=match,
                    player_id=attributed_player,
                    team=team,
                    goal_type=GoalType.GENERATED,
                    created_at=created_at,
                )
                generated += 1
        return generated

    def _apply_season_rankings(
        self,
        session: Session,
        match: Match,
        change: MatchRatingChange,
    ) -> tuple[int | None, tuple[int, ...]]:
        if match.season_id is None:
            return None, ()
        season = season_repository.get_season(session, match.season_id)
        if season is None or not season.is_active:
            logger.info(
                "season rankings untouched match_id=%s: season_id=%s is no longer active",
                match.id,
                match.season_id,
            )
            return None, ()

        player_ids = [rating_event.player_id for rating_event in change.events]
        rankings = season_repository.get_season_rankings(
            session,
            season_id=season.id,
            player_ids=player_ids,
        )
        updated: list[int] = []
        for rating_event in change.events:
            ranking = rankings.get(rating_event.player_id)
            if ranking is None:
                ranking = self._missing_season_ranking(session, season.id, rating_event.player_id)
                if ranking is None:
                    continue
            ranking.apply_result(
                match.gamemode,
                mmr_delta=rating_event.mmr_delta,
                won=rating_event.won,
            )
            updated.append(rating_event.player_id)
        return season.id, tuple(updated)

    def _missing_season_ranking(
        self,
        session: Session,
        season_id: int,
        player_id: int,
    ) -> SeasonRanking | None:
        if self.mid_season_join is MidSeasonJoinPolicy.EXCLUDE:
            logger.info(
                "player_id=%s has no ranking in season_id=%s and is excluded until next season",
                player_id,
                season_id,
            )
            return None
        return season_repository.insert_season_ranking(
            session,
            season_id=season_id,
            player_id=player_id,
            initial_mmr=self.params.initial_mmr,
        )

    @staticmethod
    def _registered_teams(
        session: Session,
        kicker_id: int,
        gamemode: Gamemode,
        team1: tuple[int, ...],
        team2: tuple[int, ...],
    ) -> tuple[int | None, int | None]:
        """Team ids of a 2-on-2 match, or ``(None, None)`` unless both pairings are registered."""
        if gamemode is not Gamemode.TWO_ON_TWO:
            return None, None
        registered = [
            team_repository.get_active_team_for_pair(session, kicker_id=kicker_id, player_ids=pairing)
            for pairing in (team1, team2)
        ]
        if any(team is None for team in registered):
            return None, None
        return registered[0].id, registered[1].id

    def _apply_team_ratings(
        self,
        session: Session,
        match: Match,
        change: MatchRatingChange,
        season_id: int | None,
    ) -> tuple[int, ...]:
        """Move both registered teams by their side's delta.

        Team season rows follow only while the match's season is still active,
        which the caller signals with a non-null ``season_id``.
        """
        if match.team1_id is None or match.team2_id is None:
            return ()

        teams = team_repository.lock_teams(session, (match.team1_id, match.team2_id))
        season_rankings: dict[int, TeamSeasonRanking] = {}
        if season_id is not None:
            season_rankings = team_repository.get_team_season_rankings(
                session,
                season_id=season_id,
                team_ids=list(teams),
            )

        deltas = {Team.ONE: change.team1_delta, Team.TWO: change.team2_delta}
        for side in Team:
            team_id = match.registered_team_id(side)
            team = teams.get(team_id)
            if team is None:
                raise NotFoundError(f"Team {team_id} of match {match.id} does not exist")
            if side is Team.ONE:
                match.mmr_team1 = team.mmr
            else:
                match.mmr_team2 = team.mmr
            won = change.winner is side
            team.apply_result(mmr_delta=deltas[side], won=won)

            if season_id is None:
                continue
            ranking = season_rankings.get(team_id)
            if ranking is None:
                ranking = self._missing_team_season_ranking(session, season_id, team_id)
            if ranking is not None:
                ranking.apply_result(mmr_delta=deltas[side], won=won)

        logger.info(
            "team ratings updated match_id=%s team1_id=%s team2_id=%s delta=%+d",
            match.id,
            match.team1_id,
            match.team2_id,
            change.team1_delta,
        )
        return match.team1_id, match.team2_id

    def _missing_team_season_ranking(
        self,
        session: Session,
        season_id: int,
        team_id: int,
    ) -> TeamSeasonRanking | None:
        if self.mid_season_join is MidSeasonJoinPolicy.EXCLUDE:
            logger.info(
                "team_id=%s has no ranking in season_id=%s and is excluded until next season",
                team_id,
                season_id,
            )
            return None
        return team_repository.insert_team_season_ranking(
            session,
            season_id=season_id,
            team_id=team_id,
            initial_mmr=self.params.initial_mmr,
        )

    @staticmethod
    def _team_ratings(
        match: Match,
        team: Team,
        players: dict[int, Player],
    ) -> tuple[tuple[int, float], ...]:
        ratings = []
        for player_id in match.team_player_ids(team):
            player = players.get(player_id)
            if player is None:
                raise NotFoundError(f"Player {player_id} of match {match.id} does not exist")
            ratings.append((player_id, float(player.rating_for(match.gamemode))))
        return tuple(ratings)

    @staticmethod
    def _validate_explicit_score(
        score_team1: int | None,
        score_team2: int | None,
    ) -> dict[Team, int] | None:
        if score_team1 is None and score_team2 is None:
            return None
        if score_team1 is None or score_team2 is None:
            raise ValidationError("Both final scores are required when entering a result")
        if score_team1 < 0 or score_team2 < 0:
            raise ValidationError("Scores cannot be negative")
        return {Team.ONE: score_team1, Team.TWO: score_team2}

    @staticmethod
    def _final_score(
        logged: dict[Team, int],
        explicit: dict[Team, int] | None,
    ) -> dict[Team, int]:
        final = dict(logged) if explicit is None else explicit
        if final[Team.ONE] == 0 and final[Team.TWO] == 0:
            raise ValidationError(AT_LEAST_ONE_TEAM_MUST_SCORE)
        if final[Team.ONE] == final[Team.TWO]:
            raise ValidationError(
                f"A match cannot end in a draw ({final[Team.ONE]}:{final[Team.TWO]})"
            )
        if explicit is not None and any(explicit[team] < logged[team] for team in Team):
            raise ValidationError(
                f"Final score {explicit[Team.ONE]}:{explicit[Team.TWO]} is lower than the "
                f"recorded goals {logged[Team.ONE]}:{logged[Team.TWO]}"
            )
        return final

    @staticmethod
    def _require_match(session: Session, match_id: int, *, for_update: bool = False) -> Match:
        match = match_repository.get_match(session, match_id, for_update=for_update)
        if match is None:
            raise NotFoundError(f"Match {match_id} does not exist")
        return match

    @staticmethod
    def _require_active(match: Match, message: str) -> None:
        if match.status is not MatchStatus.ACTIVE:
            raise ValidationError(message)

    @staticmethod
    def _require_kicker_players(session: Session, kicker_id: int, player_ids: Sequence[int]) -> None:
        for player_id in player_ids:
            player = player_repository.get_player(session, player_id)
            if player is None:
                raise NotFoundError(f"Player {player_id} does not exist")
            if player.kicker_id != kicker_id:
                raise ValidationError(f"Player {player_id} does not belong to kicker {kicker_id}")

    def _publish(self, kind: MatchEventKind, snapshot: MatchSnapshot, occurred_at: datetime) -> None:
        if self.publisher is None:
            return
        self.publisher.publish(
            MatchEvent(
                kind=kind,
                kicker_id=snapshot.kicker_id,
                match_id=snapshot.id,
                occurred_at=occurred_at,
                score_team1=snapshot.score_team1,
                score_team2=snapshot.score_team2,
            )
        )


__all__ = [
    "ACTIVE_MATCH_EXISTS",
    "AT_LEAST_ONE_TEAM_MUST_SCORE",
    "GoalEntry",
    "MATCH_ALREADY_ENDED",
    "MatchResolver",
    "MatchResult",
    "MatchSnapshot",
]
