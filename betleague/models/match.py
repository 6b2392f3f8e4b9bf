"""Matches, their scorers, and the user bets placed on them."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import utcnow
from .base import ID_TYPE, Base, ScoredPredictionMixin

if TYPE_CHECKING:
    from .league import League, LeagueUser


class Match(Base):
    """A single game inside a league.

    Regulation scores are required before the match can be evaluated. Final
    scores include overtime and shootouts; when they are missing the
    regulation scores are treated as final.
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    home_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    away_team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    date_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    home_regular_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_regular_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    home_final_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    away_final_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_overtime: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_shootout: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_playoff_game: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    home_advanced: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    """For playoff games: whether the home side advanced."""

    is_doubled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """Doubled matches award twice the points to every bet."""

    is_evaluated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    league: Mapped["League"] = relationship()
    scorers: Mapped[list["MatchScorer"]] = relationship(
        back_populates="match", cascade="all, delete-orphan"
    )
    bets: Mapped[list["UserBet"]] = relationship(
        back_populates="match", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Match(id={self.id}, league_id={self.league_id}, evaluated={self.is_evaluated})>"


class MatchScorer(Base):
    __tablename__ = "match_scorers"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scorer_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="RESTRICT"), nullable=False
    )
    number_of_goals: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    match: Mapped["Match"] = relationship(back_populates="scorers")

    __table_args__ = (
        UniqueConstraint("match_id", "scorer_id", name="uq_match_scorer"),
    )


class UserBet(ScoredPredictionMixin, Base):
    """A member's prediction for a :class:`Match`."""

    __tablename__ = "user_bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    league_user_id: Mapped[int] = mapped_column(
        ForeignKey("league_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    home_score: Mapped[int] = mapped_column(Integer, nullable=False)
    away_score: Mapped[int] = mapped_column(Integer, nullable=False)
    scorer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"), nullable=True
    )
    no_scorer: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    overtime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    home_advanced: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    match: Mapped["Match"] = relationship(back_populates="bets")
    league_user: Mapped["LeagueUser"] = relationship()

    __table_args__ = (
        UniqueConstraint("match_id", "league_user_id", name="uq_user_bet_member"),
    )
