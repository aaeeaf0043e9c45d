"""SQLAlchemy mixins for rating record columns shared by players and season rankings."""

from __future__ import annotations

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import Gamemode


class RatingRecordMixin:
    """MMR plus win/loss counters, tracked independently per gamemode."""

    mmr: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mmr2on2: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    wins2on2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses2on2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def rating_for(self, gamemode: Gamemode) -> int:
        return self.mmr if gamemode is Gamemode.ONE_ON_ONE else self.mmr2on2

    def apply_result(self, gamemode: Gamemode, *, mmr_delta: int, won: bool) -> None:
        """Add one finished match to the record of the given gamemode."""
        if gamemode is Gamemode.ONE_ON_ONE:
            self.mmr += mmr_delta
            if won:
                self.wins += 1
            else:
                self.losses += 1
            return

        self.mmr2on2 += mmr_delta
        if won:
            self.wins2on2 += 1
        else:
            self.losses2on2 += 1


class TeamRecordMixin:
    """MMR plus win/loss counters of a registered two-player team."""

    mmr: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def apply_result(self, *, mmr_delta: int, won: bool) -> None:
        self.mmr += mmr_delta
        if won:
            self.wins += 1
        else:
            self.losses += 1
