"""matches table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import Gamemode, MatchStatus, Team
from models.base import Base


def _enum_values(enum_class: type) -> list[str]:
    return [member.value for member in enum_class]


class Match(Base):
    """One 1-on-1 or 2-on-2 match; team 1 is player1/player3, team 2 is player2/player4."""

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("score_team1 >= 0 AND score_team2 >= 0", name="scores_non_negative"),
        CheckConstraint(
            "(gamemode = '1on1' AND player3 IS NULL AND player4 IS NULL) OR "
            "(gamemode = '2on2' AND player3 IS NOT NULL AND player4 IS NOT NULL)",
            name="team_size_matches_gamemode",
        ),
        # A kicker never has more than one running match.
        Index(
            "uq_matches_one_active_per_kicker",
            "kicker_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_matches_kicker_end_time", "kicker_id", "end_time"),
        Index("idx_matches_season", "season_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kicker_id: Mapped[int] = mapped_column(ForeignKey("kickers.id"), nullable=False)
    season_id: Mapped[int | None] = mapped_column(ForeignKey("seasons.id"), nullable=True)
    gamemode: Mapped[Gamemode] = mapped_column(
        Enum(Gamemode, name="gamemode", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    status: Mapped[MatchStatus] = mapped_column(
        Enum(MatchStatus, name="match_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=MatchStatus.ACTIVE,
    )
    player1: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    player2: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    player3: Mapped[int | None] = mapped_column(ForeignKey("players.id"), nullable=True)
    player4: Mapped[int | None] = mapped_column(ForeignKey("players.id"), nullable=True)
    # Set only when both 2-on-2 pairings are registered teams.
    team1_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    team2_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    score_team1: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score_team2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Highest goal sequence ever issued; undo never lowers it.
    last_goal_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mmr_change_team1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_change_team2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_player1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_player2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_player3: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_player4: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_team1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mmr_team2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    def team_player_ids(self, team: Team) -> tuple[int, ...]:
        if team is Team.ONE:
            members = (self.player1, self.player3)
        else:
            members = (self.player2, self.player4)
        return tuple(player_id for player_id in members if player_id is not None)

    def registered_team_id(self, team: Team) -> int | None:
        return self.team1_id if team is Team.ONE else self.team2_id

    def team_of(self, player_id: int) -> Team | None:
        if player_id in self.team_player_ids(Team.ONE):
            return Team.ONE
        if player_id in self.team_player_ids(Team.TWO):
            return Team.TWO
        return None
