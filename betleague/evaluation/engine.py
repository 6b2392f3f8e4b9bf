"""Evaluation orchestrator shared by every event kind."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Optional

from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker

from ..db.utils import utcnow
from .adapters import EventAdapter, EventSnapshot, adapter_for
from .errors import PredictionNotFound
from .rules import DEFAULT_RULE_REGISTRY, RuleRegistry
from .scoring import ScoringPass
from .transaction import begin_serializable_transaction
from .types import EvaluationSummary, EventKind, UserEvaluation

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def strict_rules_from_env() -> bool:
    """Read ``EVALUATION_STRICT_RULES`` from the environment (or ``.env``)."""
    load_dotenv()
    return os.getenv("EVALUATION_STRICT_RULES", "false").strip().lower() in _TRUTHY


class EvaluationEngine:
    """Computes and persists the points earned by predictions on one event.

    Every call runs in its own SERIALIZABLE transaction obtained from
    ``session_factory``; the engine never reuses a caller's session, so
    outcome, predictions and writes always come from one consistent
    snapshot.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        adapter: EventAdapter | EventKind | str,
        *,
        registry: Optional[RuleRegistry] = None,
        strict_rules: Optional[bool] = None,
    ) -> None:
        """Create an engine for one event kind.

        Parameters
        ----------
        session_factory : sessionmaker
            Factory producing sessions bound to the league database.
        adapter : EventAdapter | EventKind | str
            Storage adapter of the event kind, or the kind itself.
        registry : Optional[RuleRegistry], default: None
            Rule registry; the default registry is used when omitted.
        strict_rules : Optional[bool], default: None
            Fail on unknown rule ids instead of skipping them. Read from
            ``EVALUATION_STRICT_RULES`` when omitted.
        """
        self._session_factory = session_factory
        self._adapter = adapter if isinstance(adapter, EventAdapter) else adapter_for(adapter)
        self._registry = registry or DEFAULT_RULE_REGISTRY
        self._strict = strict_rules_from_env() if strict_rules is None else strict_rules

    @property
    def kind(self) -> EventKind:
        return self._adapter.kind

    def evaluate_all(self, event_id: int) -> EvaluationSummary:
        """Score every prediction of the event and mark it evaluated.

        Stored totals are overwritten, so running the pass again after an
        outcome correction simply recomputes them.

        Raises
        ------
        EventNotFound, OutcomeNotRecorded, NoEvaluatorsConfigured,
        InvalidEvaluatorConfig, UnknownRule, TransactionConflict,
        PersistenceFailure
            The transaction is rolled back and nothing is written.
        """
        logger.info("Evaluating all predictions for %s %s", self.kind.value, event_id)
        with begin_serializable_transaction(self._session_factory) as session:
            snapshot = self._adapter.fetch(session, event_id, self._registry)
            scoring = self._scoring_pass(snapshot)
            evaluated_at = utcnow()
            results = tuple(
                self._score_row(scoring, snapshot, row, evaluated_at)
                for row in snapshot.rows
            )
            self._adapter.set_evaluated(snapshot.event, True)
            session.flush()

        summary = EvaluationSummary(
            kind=self.kind,
            event_id=event_id,
            total_users_evaluated=len(results),
            total_points_awarded=sum(result.points_awarded for result in results),
            results=results,
            skipped_rules=scoring.skipped,
            evaluated_at=evaluated_at,
        )
        logger.info(
            "Evaluated %s %s: %d predictions, %d points awarded",
            self.kind.value,
            event_id,
            summary.total_users_evaluated,
            summary.total_points_awarded,
        )
        return summary

    def evaluate_one(self, event_id: int, user_id: int) -> UserEvaluation:
        """Score and persist a single member's prediction.

        The event's evaluated flag is left untouched.

        Raises
        ------
        PredictionNotFound
            If ``user_id`` has no prediction on the event. Every error listed
            on :meth:`evaluate_all` can be raised as well.
        """
        logger.info(
            "Evaluating user %s prediction for %s %s", user_id, self.kind.value, event_id
        )
        with begin_serializable_transaction(self._session_factory) as session:
            snapshot = self._adapter.fetch(session, event_id, self._registry)
            row = next(
                (r for r in snapshot.rows if self._adapter.user_id_of(r) == user_id),
                None,
            )
            if row is None:
                raise PredictionNotFound(self.kind.value, event_id, user_id)
            scoring = self._scoring_pass(snapshot)
            result = self._score_row(
                scoring, snapshot, row, utcnow()
            )
            session.flush()
        return result

    def _scoring_pass(self, snapshot: EventSnapshot) -> ScoringPass:
        return ScoringPass(
            snapshot.evaluators,
            self.kind,
            registry=self._registry,
            multiplier=snapshot.multiplier,
            strict=self._strict,
        )

    def _score_row(
        self,
        scoring: ScoringPass,
        snapshot: EventSnapshot,
        row: Any,
        evaluated_at: datetime,
    ) -> UserEvaluation:
        prediction = self._adapter.to_prediction(row)
        result = scoring.score(prediction, snapshot.outcome)
        self._adapter.write_score(row, result, evaluated_at)
        user_id = self._adapter.user_id_of(row)
        logger.debug(
            "%s %s: user %s earned %d points",
            self.kind.value,
            snapshot.event.id,
            user_id,
            result.total_points,
        )
        return UserEvaluation(
            user_id=user_id,
            prediction_id=row.id,
            points_awarded=result.total_points,
            per_rule=result.per_rule,
        )


__all__ = ["EvaluationEngine", "strict_rules_from_env"]
