"""Declarative base and the column sets shared by the league tables."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from betleague.db.metadata import metadata_obj
from betleague.db.utils import utcnow

# BigInteger on PostgreSQL; SQLite only autoincrements INTEGER primary keys.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    metadata = metadata_obj


class ScoredPredictionMixin:
    """Columns an evaluation pass overwrites on every prediction table."""

    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score_breakdown: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(
        JSON, nullable=True
    )
    """Per-rule results of the last evaluation, in configuration order."""

    evaluated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
