"""players table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.mixins import RatingRecordMixin


class Player(RatingRecordMixin, Base):
    """All-time player record; ratings change only when a match ends."""

    __tablename__ = "players"
    __table_args__ = (
        UniqueConstraint("kicker_id", "name", name="uq_players_kicker_name"),
        Index("idx_players_kicker", "kicker_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kicker_id: Mapped[int] = mapped_column(ForeignKey("kickers.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    __mapper_args__ = {"version_id_col": version}
