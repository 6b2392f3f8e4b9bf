"""Leagues, their members, and the teams and players bets refer to."""

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
    or_,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from ..db.utils import utcnow
from .base import ID_TYPE, Base

if TYPE_CHECKING:
    from .evaluator import Evaluator


class User(Base):
    """Platform account. A user joins leagues through :class:`LeagueUser`."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    memberships: Mapped[list["LeagueUser"]] = relationship(back_populates="user")

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<User(id={self.id}, username={self.username})>"


class League(Base):
    """A betting league with its own members and scoring configuration."""

    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    season: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    members: Mapped[list["LeagueUser"]] = relationship(
        back_populates="league", cascade="all, delete-orphan"
    )
    evaluators: Mapped[list["Evaluator"]] = relationship(
        back_populates="league",
        cascade="all, delete-orphan",
        order_by="Evaluator.id",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<League(id={self.id}, name={self.name})>"


class LeagueUser(Base):
    """Membership of a :class:`User` in a :class:`League`.

    Every prediction belongs to exactly one membership row, which is how a
    prediction is traced back to the user that placed it.
    """

    __tablename__ = "league_users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    league: Mapped["League"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(back_populates="memberships")

    __table_args__ = (UniqueConstraint("league_id", "user_id", name="uq_league_user"),)

    @classmethod
    def get_active(
        cls, session: Session, league_id: int, user_id: int
    ) -> Optional["LeagueUser"]:
        """Return the non-deleted membership of ``user_id`` in ``league_id``."""
        return session.scalar(
            select(cls).where(
                cls.league_id == league_id,
                cls.user_id == user_id,
                cls.deleted_at.is_(None),
            )
        )


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)


class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    team_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )


class TopScorerRankingVersion(Base):
    """Time-versioned scorer ranking of a player inside a league.

    A version is active from ``effective_from`` (inclusive) until
    ``effective_to`` (exclusive); an open-ended version has no
    ``effective_to``. Ranked scorer rules use the ranking that was active when
    the match started, so later ranking changes never rewrite old results.
    """

    __tablename__ = "top_scorer_ranking_versions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ranking: Mapped[int] = mapped_column(Integer, nullable=False)
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    effective_to: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @classmethod
    def rankings_at(
        cls, session: Session, league_id: int, at_time: datetime
    ) -> dict[int, int]:
        """Return ``{player_id: ranking}`` for versions active at ``at_time``.

        When several versions overlap for the same player the most recently
        effective one wins.
        """
        stmt = (
            select(cls.player_id, cls.ranking)
            .where(
                cls.league_id == league_id,
                cls.effective_from <= at_time,
                or_(cls.effective_to.is_(None), cls.effective_to > at_time),
            )
            .order_by(cls.effective_from.asc(), cls.id.asc())
        )
        rankings: dict[int, int] = {}
        for player_id, ranking in session.execute(stmt):
            rankings[player_id] = ranking
        return rankings
