"""goals table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import GoalType
from models.base import Base


class Goal(Base):
    """Append-only goal log entry; ``team`` is the team credited with the point."""

    __tablename__ = "goals"
    __table_args__ = (
        UniqueConstraint("match_id", "sequence", name="uq_goals_match_sequence"),
        CheckConstraint("team IN (1, 2)", name="team"),
        CheckConstraint(
            "player_id IS NOT NULL OR goal_type = 'generated_goal'",
            name="player_required_unless_generated",
        ),
        Index("idx_goals_player", "player_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    kicker_id: Mapped[int] = mapped_column(ForeignKey("kickers.id"), nullable=False)
    player_id: Mapped[int | None] = mapped_column(ForeignKey("players.id"), nullable=True)
    team: Mapped[int] = mapped_column(Integer, nullable=False)
    goal_type: Mapped[GoalType] = mapped_column(
        Enum(
            GoalType,
            name="goal_type",
            native_enum=False,
            values_callable=lambda enum_class: [member.value for member in enum_class],
        ),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    score_team1: Mapped[int] = mapped_column(Integer, nullable=False)
    score_team2: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
