"""Scoring configuration: evaluator types and per-league evaluators."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import utcnow
from .base import ID_TYPE, Base

if TYPE_CHECKING:
    from .league import League


EVALUATOR_ENTITIES = ("match", "series", "special", "question")


class EvaluatorType(Base):
    """Named scoring rule known to the platform (``exact_score``, ``winner``...)."""

    __tablename__ = "evaluator_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    """Rule identifier resolved through the rule registry."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    evaluators: Mapped[list["Evaluator"]] = relationship(back_populates="evaluator_type")

    @classmethod
    def get_or_create(cls, session: Session, name: str) -> "EvaluatorType":
        """Return the type called ``name``, creating and flushing it if missing."""
        existing = session.scalar(select(cls).where(cls.name == name))
        if existing is not None:
            return existing
        evaluator_type = cls(name=name)
        session.add(evaluator_type)
        session.flush()
        return evaluator_type

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<EvaluatorType(id={self.id}, name={self.name})>"


class Evaluator(Base):
    """Binds a rule to a point value inside one league.

    The ``entity`` column scopes the evaluator to one event kind. Entries are
    applied in ``id`` order. Soft-deleted entries (``deleted_at`` set) are
    ignored by evaluation but kept for history.
    """

    __tablename__ = "evaluators"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key. Also the stored order of the league's configuration."""

    league_id: Mapped[int] = mapped_column(
        ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    evaluator_type_id: Mapped[int] = mapped_column(
        ForeignKey("evaluator_types.id", ondelete="RESTRICT"), nullable=False
    )
    entity: Mapped[str] = mapped_column(String(20), nullable=False)
    """Event kind the evaluator applies to: match, series, special or question."""

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Label shown to league members."""

    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Points awarded when the rule matches."""

    config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Rule specific settings (ranked scorer tiers, group stage points)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    league: Mapped["League"] = relationship(back_populates="evaluators")
    evaluator_type: Mapped["EvaluatorType"] = relationship(back_populates="evaluators")

    __table_args__ = (
        CheckConstraint("points >= 0", name="points_non_negative"),
        CheckConstraint(
            "entity IN ('match', 'series', 'special', 'question')",
            name="entity_known",
        ),
    )

    @property
    def rule_id(self) -> str:
        return self.evaluator_type.name

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Evaluator(id={id}, league_id={league}, entity={entity}, points={points})>".format(
            id=self.id,
            league=self.league_id,
            entity=self.entity,
            points=self.points,
        )
