"""Errors raised by an evaluation pass.

Every exception below is raised before the transaction commits, so callers
can rely on "an :class:`EvaluationError` means nothing was changed".
"""

from __future__ import annotations

from typing import Any, Optional


class EvaluationError(Exception):
    """Base class for evaluation failures.

    Attributes
    ----------
    code : str
        Machine readable identifier, stable across releases.
    retryable : bool
        ``True`` when running the same request again may succeed without any
        admin intervention.
    """

    code = "EVALUATION_ERROR"
    retryable = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "retryable": self.retryable}


class EventNotFound(EvaluationError):
    code = "EVENT_NOT_FOUND"

    def __init__(self, kind: str, event_id: int) -> None:
        super().__init__(f"{kind} {event_id} does not exist")
        self.kind = kind
        self.event_id = event_id


class OutcomeNotRecorded(EvaluationError):
    """The event has no result yet; record it before evaluating."""

    code = "OUTCOME_NOT_RECORDED"

    def __init__(self, kind: str, event_id: int) -> None:
        super().__init__(f"Cannot evaluate {kind} {event_id} without results")
        self.kind = kind
        self.event_id = event_id


class NoEvaluatorsConfigured(EvaluationError):
    """The league has no active evaluators for this event kind."""

    code = "NO_EVALUATORS_CONFIGURED"

    def __init__(self, league_id: int, entity: str) -> None:
        super().__init__(
            f"No {entity} evaluators configured for league {league_id}"
        )
        self.league_id = league_id
        self.entity = entity


class InvalidEvaluatorConfig(EvaluationError):
    code = "INVALID_EVALUATOR_CONFIG"

    def __init__(self, evaluator_id: Optional[int], rule_id: str, reason: str) -> None:
        super().__init__(
            f"Evaluator {evaluator_id} ({rule_id}) has an invalid config: {reason}"
        )
        self.evaluator_id = evaluator_id
        self.rule_id = rule_id


class PredictionNotFound(EvaluationError):
    code = "PREDICTION_NOT_FOUND"

    def __init__(self, kind: str, event_id: int, user_id: int) -> None:
        super().__init__(f"User {user_id} has no prediction on {kind} {event_id}")
        self.kind = kind
        self.event_id = event_id
        self.user_id = user_id


class UnknownRule(EvaluationError):
    """Raised for an unresolvable rule id only when strict rules are enabled."""

    code = "UNKNOWN_RULE"

    def __init__(self, rule_id: str, entity: str) -> None:
        super().__init__(f"Unknown {entity} evaluator type: {rule_id}")
        self.rule_id = rule_id
        self.entity = entity


class TransactionConflict(EvaluationError):
    """The database could not serialize the pass against a concurrent one."""

    code = "TRANSACTION_CONFLICT"
    retryable = True


class PersistenceFailure(EvaluationError):
    code = "PERSISTENCE_FAILURE"


__all__ = [
    "EvaluationError",
    "EventNotFound",
    "InvalidEvaluatorConfig",
    "NoEvaluatorsConfigured",
    "OutcomeNotRecorded",
    "PersistenceFailure",
    "PredictionNotFound",
    "TransactionConflict",
    "UnknownRule",
]
