"""One-off special bets (tournament winner, top scorer, closest value...)."""

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
    from .evaluator import Evaluator
    from .league import League, LeagueUser


class SpecialBet(Base):
    """A special bet whose outcome is a team, a player or a numeric value.

    When ``evaluator_id`` is set that single evaluator scores the bet;
    otherwise the league's ``special`` evaluators apply. Group stage bets also
    record every team that advanced in :class:`SpecialBetAdvancedTeam`.
    """

    __tablename__ = "special_bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    evaluator_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("evaluators.id", ondelete="SET NULL"), nullable=True
    )
    date_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    team_result_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    player_result_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"), nullable=True
    )
    value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_evaluated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    league: Mapped["League"] = relationship()
    evaluator: Mapped[Optional["Evaluator"]] = relationship()
    advanced_teams: Mapped[list["SpecialBetAdvancedTeam"]] = relationship(
        back_populates="special_bet", cascade="all, delete-orphan"
    )
    bets: Mapped[list["UserSpecialBet"]] = relationship(
        back_populates="special_bet", cascade="all, delete-orphan"
    )

    @property
    def has_result(self) -> bool:
        return (
            self.team_result_id is not None
            or self.player_result_id is not None
            or self.value is not None
        )


class SpecialBetAdvancedTeam(Base):
    __tablename__ = "special_bet_advanced_teams"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    special_bet_id: Mapped[int] = mapped_column(
        ForeignKey("special_bets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    special_bet: Mapped["SpecialBet"] = relationship(back_populates="advanced_teams")

    __table_args__ = (
        UniqueConstraint("special_bet_id", "team_id", name="uq_special_bet_advanced_team"),
    )


class UserSpecialBet(ScoredPredictionMixin, Base):
    __tablename__ = "user_special_bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    special_bet_id: Mapped[int] = mapped_column(
        ForeignKey("special_bets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    league_user_id: Mapped[int] = mapped_column(
        ForeignKey("league_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_result_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    player_result_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"), nullable=True
    )
    value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    special_bet: Mapped["SpecialBet"] = relationship(back_populates="bets")
    league_user: Mapped["LeagueUser"] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "special_bet_id", "league_user_id", name="uq_user_special_bet_member"
        ),
    )
