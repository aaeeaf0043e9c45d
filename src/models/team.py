"""teams and team_season_rankings table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.mixins import TeamRecordMixin


class KickerTeam(TeamRecordMixin, Base):
    """A registered 2-on-2 pairing with a rating of its own.

    ``player1_id`` is always the lower id, so a pairing has one canonical row.
    """

    __tablename__ = "teams"
    __table_args__ = (
        CheckConstraint("player1_id < player2_id", name="players_ordered"),
        UniqueConstraint("kicker_id", "name", name="uq_teams_kicker_name"),
        # A pairing has at most one team that still plays.
        Index(
            "uq_teams_one_active_per_pairing",
            "kicker_id",
            "player1_id",
            "player2_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kicker_id: Mapped[int] = mapped_column(ForeignKey("kickers.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    player1_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    player2_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    dissolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __mapper_args__ = {"version_id_col": version}

    @property
    def player_ids(self) -> tuple[int, int]:
        return self.player1_id, self.player2_id


class TeamSeasonRanking(TeamRecordMixin, Base):
    """Season-scoped mirror of a team's record."""

    __tablename__ = "team_season_rankings"
    __table_args__ = (
        UniqueConstraint("team_id", "season_id", name="uq_team_season_rankings_team_season"),
        Index("idx_team_season_rankings_season", "season_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
