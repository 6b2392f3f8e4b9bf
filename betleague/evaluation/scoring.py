"""Scoring of a single prediction against an outcome."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .errors import UnknownRule
from .rules import DEFAULT_RULE_REGISTRY, Rule, RuleRegistry
from .types import (
    EvaluatorEntry,
    EvaluatorResult,
    EventKind,
    RuleVerdict,
    ScoreResult,
    UnknownRuleSkipped,
)

logger = logging.getLogger(__name__)


def verdict_points(verdict: RuleVerdict, entry: EvaluatorEntry) -> int:
    """Convert a verdict into awarded points, never below zero."""
    if verdict.points is not None:
        points = verdict.points
    elif verdict.awarded:
        points = round(entry.points * verdict.share)
    else:
        points = 0
    return max(int(points), 0)


class ScoringPass:
    """Applies an evaluator configuration to predictions of one event kind.

    Rule identifiers are resolved once when the pass is created. Entries whose
    rule is unknown (or registered for another event kind) are skipped and
    logged, unless ``strict`` is set, in which case :class:`UnknownRule` is
    raised instead.
    """

    def __init__(
        self,
        evaluators: Sequence[EvaluatorEntry],
        kind: EventKind,
        *,
        registry: Optional[RuleRegistry] = None,
        multiplier: int = 1,
        strict: bool = False,
    ) -> None:
        if multiplier < 1:
            raise ValueError("multiplier must be a positive integer")
        self.kind = kind
        self.multiplier = multiplier
        active_registry = registry or DEFAULT_RULE_REGISTRY

        resolved: list[tuple[EvaluatorEntry, Rule]] = []
        skipped: list[UnknownRuleSkipped] = []
        for entry in evaluators:
            rule = active_registry.lookup(entry.rule_id, kind)
            if rule is None:
                if strict:
                    raise UnknownRule(entry.rule_id, kind.value)
                logger.warning(
                    "Unknown %s evaluator type %r (evaluator %s); skipping",
                    kind.value,
                    entry.rule_id,
                    entry.evaluator_id,
                )
                skipped.append(
                    UnknownRuleSkipped(
                        evaluator_id=entry.evaluator_id,
                        rule_id=entry.rule_id,
                        reason=f"no {kind.value} rule registered under this id",
                    )
                )
                continue
            resolved.append((entry, rule))
        self._resolved = tuple(resolved)
        self.skipped = tuple(skipped)

    def score(self, prediction: Any, outcome: Any) -> ScoreResult:
        """Run every resolved rule in configuration order and sum the points.

        Every rule is recorded in ``per_rule`` whether or not it awarded
        anything. Matching rules are summed independently; the event
        multiplier applies to the total only.
        """
        total = 0
        per_rule: list[EvaluatorResult] = []
        for entry, rule in self._resolved:
            verdict = rule.evaluate(prediction, outcome, entry.config)
            points = verdict_points(verdict, entry)
            per_rule.append(
                EvaluatorResult(
                    evaluator_id=entry.evaluator_id,
                    rule_id=entry.rule_id,
                    awarded=verdict.awarded,
                    points=points,
                )
            )
            total += points
        return ScoreResult(
            total_points=total * self.multiplier,
            per_rule=tuple(per_rule),
            skipped=self.skipped,
            multiplier=self.multiplier,
        )


def score_prediction(
    prediction: Any,
    outcome: Any,
    evaluators: Sequence[EvaluatorEntry],
    kind: EventKind,
    *,
    registry: Optional[RuleRegistry] = None,
    multiplier: int = 1,
    strict: bool = False,
) -> ScoreResult:
    """Score one prediction; shorthand for ``ScoringPass(...).score(...)``."""
    return ScoringPass(
        evaluators, kind, registry=registry, multiplier=multiplier, strict=strict
    ).score(prediction, outcome)


__all__ = ["ScoringPass", "score_prediction", "verdict_points"]
