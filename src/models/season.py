"""seasons and season_rankings table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.mixins import RatingRecordMixin


class Season(Base):
    """Bounded window in which finished matches also update season rankings."""

    __tablename__ = "seasons"
    __table_args__ = (
        UniqueConstraint("kicker_id", "season_number", name="uq_seasons_kicker_number"),
        Index(
            "uq_seasons_one_active_per_kicker",
            "kicker_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kicker_id: Mapped[int] = mapped_column(ForeignKey("kickers.id"), nullable=False)
    season_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SeasonRanking(RatingRecordMixin, Base):
    """Season-scoped mirror of a player's record."""

    __tablename__ = "season_rankings"
    __table_args__ = (
        UniqueConstraint("player_id", "season_id", name="uq_season_rankings_player_season"),
        Index("idx_season_rankings_season", "season_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)
