"""Read access to a league's evaluator configuration."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..models import Evaluator
from .errors import InvalidEvaluatorConfig, NoEvaluatorsConfigured
from .rules import DEFAULT_RULE_REGISTRY, Rule, RuleRegistry
from .types import EvaluatorEntry, EventKind, RuleConfig


def parse_rule_config(
    rule: Rule, raw: Any, evaluator_id: Optional[int] = None
) -> Optional[RuleConfig]:
    """Validate the stored JSON of an evaluator against ``rule``.

    Raises
    ------
    InvalidEvaluatorConfig
        If the rule needs a config and none is stored, or the stored value
        does not have the shape the rule expects.
    """
    if rule.parse_config is None:
        return None
    if raw is None:
        if rule.config_required:
            raise InvalidEvaluatorConfig(evaluator_id, rule.key, "config is required")
        return None
    if not isinstance(raw, dict):
        raise InvalidEvaluatorConfig(evaluator_id, rule.key, "config must be an object")
    try:
        return rule.parse_config(raw)
    except ValueError as exc:
        raise InvalidEvaluatorConfig(evaluator_id, rule.key, str(exc)) from exc


def build_entries(
    evaluators: Iterable[Evaluator],
    kind: EventKind,
    registry: Optional[RuleRegistry] = None,
) -> list[EvaluatorEntry]:
    """Snapshot ORM evaluators into :class:`EvaluatorEntry` objects.

    Configs are parsed for every rule the registry knows. Unknown rule ids
    are kept as-is so the scoring pass can report them.
    """
    active_registry = registry or DEFAULT_RULE_REGISTRY
    entries: list[EvaluatorEntry] = []
    for evaluator in evaluators:
        rule_id = evaluator.evaluator_type.name
        if evaluator.points is None or evaluator.points < 0:
            raise InvalidEvaluatorConfig(
                evaluator.id, rule_id, "points must be a non-negative integer"
            )
        rule = active_registry.lookup(rule_id, kind)
        config = (
            parse_rule_config(rule, evaluator.config, evaluator.id)
            if rule is not None
            else None
        )
        entries.append(
            EvaluatorEntry(
                evaluator_id=evaluator.id,
                rule_id=rule_id,
                points=int(evaluator.points),
                config=config,
                name=evaluator.name,
            )
        )
    return entries


def active_evaluators(session: Session, league_id: int, kind: EventKind) -> Sequence[Evaluator]:
    """Return the league's non-deleted evaluators for ``kind`` in stored order."""
    stmt = (
        select(Evaluator)
        .options(joinedload(Evaluator.evaluator_type))
        .where(
            Evaluator.league_id == league_id,
            Evaluator.entity == kind.value,
            Evaluator.deleted_at.is_(None),
        )
        .order_by(Evaluator.id.asc())
    )
    return session.scalars(stmt).all()


def get_evaluator_config(
    session: Session,
    league_id: int,
    kind: EventKind,
    registry: Optional[RuleRegistry] = None,
) -> list[EvaluatorEntry]:
    """Return the ordered, active evaluator configuration of a league.

    Parameters
    ----------
    session : Session
        Session of the running evaluation transaction.
    league_id : int
        League whose configuration is read.
    kind : EventKind
        Event kind the evaluators must be scoped to.
    registry : Optional[RuleRegistry], default: None
        Registry used to validate rule configs. Defaults to
        :data:`DEFAULT_RULE_REGISTRY`.

    Raises
    ------
    NoEvaluatorsConfigured
        If the league has no active evaluator for ``kind``.
    InvalidEvaluatorConfig
        If a known rule's stored config is malformed.
    """
    evaluators = active_evaluators(session, league_id, kind)
    if not evaluators:
        raise NoEvaluatorsConfigured(league_id, kind.value)
    return build_entries(evaluators, kind, registry)


__all__ = [
    "active_evaluators",
    "build_entries",
    "get_evaluator_config",
    "parse_rule_config",
]
