"""Yes/no questions and the answers members gave."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import utcnow
from .base import ID_TYPE, Base, ScoredPredictionMixin

if TYPE_CHECKING:
    from .league import League, LeagueUser


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    date_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    result: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    """Recorded answer; ``None`` until an admin sets it."""

    is_evaluated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    league: Mapped["League"] = relationship()
    bets: Mapped[list["UserQuestionBet"]] = relationship(
        back_populates="question", cascade="all, delete-orphan"
    )


class UserQuestionBet(ScoredPredictionMixin, Base):
    __tablename__ = "user_question_bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    league_user_id: Mapped[int] = mapped_column(
        ForeignKey("league_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_bet: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    """Member's answer; ``None`` when the member opened but did not answer."""

    question: Mapped["Question"] = relationship(back_populates="bets")
    league_user: Mapped["LeagueUser"] = relationship()

    __table_args__ = (
        UniqueConstraint("question_id", "league_user_id", name="uq_user_question_bet_member"),
    )
