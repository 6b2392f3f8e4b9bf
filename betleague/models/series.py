"""Multi-game series and the series bets placed on them."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import utcnow
from .base import ID_TYPE, Base, ScoredPredictionMixin

if TYPE_CHECKING:
    from .league import League, LeagueUser


class Series(Base):
    """A best-of-N series; the outcome is the number of games each side won."""

    __tablename__ = "series"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    home_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    away_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    date_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    home_team_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_team_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_evaluated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    league: Mapped["League"] = relationship()
    bets: Mapped[list["UserSeriesBet"]] = relationship(
        back_populates="series", cascade="all, delete-orphan"
    )


class UserSeriesBet(ScoredPredictionMixin, Base):
    __tablename__ = "user_series_bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    series_id: Mapped[int] = mapped_column(
        ForeignKey("series.id", ondelete="CASCADE"), nullable=False, index=True
    )
    league_user_id: Mapped[int] = mapped_column(
        ForeignKey("league_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    home_team_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_team_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    series: Mapped["Series"] = relationship(back_populates="bets")
    league_user: Mapped["LeagueUser"] = relationship()

    __table_args__ = (
        UniqueConstraint("series_id", "league_user_id", name="uq_user_series_bet_member"),
    )
