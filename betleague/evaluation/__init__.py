"""Bet evaluation: rules, configuration, scoring and orchestration."""

from .adapters import (
    ADAPTERS,
    EventAdapter,
    MatchAdapter,
    QuestionAdapter,
    SeriesAdapter,
    SpecialBetAdapter,
    adapter_for,
)
from .config import get_evaluator_config
from .engine import EvaluationEngine
from .errors import (
    EvaluationError,
    EventNotFound,
    InvalidEvaluatorConfig,
    NoEvaluatorsConfigured,
    OutcomeNotRecorded,
    PersistenceFailure,
    PredictionNotFound,
    TransactionConflict,
    UnknownRule,
)
from .rules import DEFAULT_RULE_REGISTRY, Rule, RuleRegistry
from .scoring import ScoringPass, score_prediction
from .transaction import begin_serializable_transaction
from .types import (
    EvaluationSummary,
    EvaluatorEntry,
    EvaluatorResult,
    EventKind,
    GroupStageConfig,
    RuleVerdict,
    ScoreResult,
    ScorerRankedConfig,
    UnknownRuleSkipped,
    UserEvaluation,
)

__all__ = [
    "ADAPTERS",
    "DEFAULT_RULE_REGISTRY",
    "EvaluationEngine",
    "EvaluationError",
    "EvaluationSummary",
    "EvaluatorEntry",
    "EvaluatorResult",
    "EventAdapter",
    "EventKind",
    "EventNotFound",
    "GroupStageConfig",
    "InvalidEvaluatorConfig",
    "MatchAdapter",
    "NoEvaluatorsConfigured",
    "OutcomeNotRecorded",
    "PersistenceFailure",
    "PredictionNotFound",
    "QuestionAdapter",
    "Rule",
    "RuleRegistry",
    "RuleVerdict",
    "ScoreResult",
    "ScorerRankedConfig",
    "ScoringPass",
    "SeriesAdapter",
    "SpecialBetAdapter",
    "TransactionConflict",
    "UnknownRule",
    "UnknownRuleSkipped",
    "UserEvaluation",
    "adapter_for",
    "begin_serializable_transaction",
    "get_evaluator_config",
    "score_prediction",
]
