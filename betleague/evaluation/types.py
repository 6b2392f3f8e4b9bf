"""Value objects passed between the evaluation components.

Predictions and outcomes are immutable snapshots taken from the ORM rows
inside the evaluation transaction, so rules never touch the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ..db.utils import dt_iso


class EventKind(str, Enum):
    """Kinds of events that can be evaluated.

    Values match :attr:`betleague.models.Evaluator.entity`.
    """

    MATCH = "match"
    SERIES = "series"
    SPECIAL = "special"
    QUESTION = "question"


# -------- predictions and outcomes --------


@dataclass(frozen=True)
class MatchPrediction:
    home_score: int
    away_score: int
    scorer_id: Optional[int] = None
    no_scorer: Optional[bool] = None
    home_advanced: Optional[bool] = None
    overtime: bool = False


@dataclass(frozen=True)
class MatchOutcome:
    """Recorded match result.

    Attributes
    ----------
    home_regular_score, away_regular_score : int
        Scores at the end of regulation time. Score based rules use these.
    home_final_score, away_final_score : Optional[int]
        Scores after overtime or shootout. Winner based rules use these and
        fall back to the regulation scores when they are not set.
    scorer_ids : frozenset[int]
        Players that scored in the match.
    scorer_rankings : Mapping[int, int]
        Scorer ranking of each ranked player at match time.
    """

    home_regular_score: int
    away_regular_score: int
    home_final_score: Optional[int] = None
    away_final_score: Optional[int] = None
    scorer_ids: frozenset[int] = frozenset()
    scorer_rankings: Mapping[int, int] = field(default_factory=dict)
    is_overtime: Optional[bool] = None
    is_shootout: Optional[bool] = None
    is_playoff_game: bool = False
    home_advanced: Optional[bool] = None

    @property
    def final_scores(self) -> tuple[int, int]:
        if self.home_final_score is None or self.away_final_score is None:
            return self.home_regular_score, self.away_regular_score
        return self.home_final_score, self.away_final_score


@dataclass(frozen=True)
class SeriesPrediction:
    home_team_score: Optional[int]
    away_team_score: Optional[int]


@dataclass(frozen=True)
class SeriesOutcome:
    home_team_score: int
    away_team_score: int


@dataclass(frozen=True)
class SpecialBetPrediction:
    team_result_id: Optional[int] = None
    player_result_id: Optional[int] = None
    value: Optional[int] = None


@dataclass(frozen=True)
class SpecialBetOutcome:
    """Recorded special bet result.

    ``predicted_values`` holds every member's numeric guess for the bet, which
    the closest value rule needs to decide who was nearest.
    """

    team_result_id: Optional[int] = None
    player_result_id: Optional[int] = None
    value: Optional[int] = None
    advanced_team_ids: frozenset[int] = frozenset()
    predicted_values: tuple[int, ...] = ()


@dataclass(frozen=True)
class QuestionPrediction:
    answer: Optional[bool]


@dataclass(frozen=True)
class QuestionOutcome:
    answer: bool


Prediction = Union[MatchPrediction, SeriesPrediction, SpecialBetPrediction, QuestionPrediction]
Outcome = Union[MatchOutcome, SeriesOutcome, SpecialBetOutcome, QuestionOutcome]


# -------- configuration --------


@dataclass(frozen=True)
class ScorerRankedConfig:
    """Point tiers for the ``scorer`` rule keyed by scorer ranking."""

    ranked_points: Mapping[int, int]
    unranked_points: int


@dataclass(frozen=True)
class GroupStageConfig:
    winner_points: int
    advance_points: int


RuleConfig = Union[ScorerRankedConfig, GroupStageConfig]


@dataclass(frozen=True)
class EvaluatorEntry:
    """Read-only snapshot of one configured evaluator."""

    evaluator_id: Optional[int]
    rule_id: str
    points: int
    config: Optional[RuleConfig] = None
    name: Optional[str] = None


# -------- results --------


@dataclass(frozen=True)
class RuleVerdict:
    """What a rule decided for one prediction.

    Attributes
    ----------
    awarded : bool
        Whether the rule matched.
    points : Optional[int]
        Points earned, for rules whose value comes from their own config
        rather than the evaluator's point value.
    share : float
        Fraction of the evaluator's point value earned when ``awarded`` and
        ``points`` is ``None``.
    """

    awarded: bool
    points: Optional[int] = None
    share: float = 1.0


@dataclass(frozen=True)
class EvaluatorResult:
    evaluator_id: Optional[int]
    rule_id: str
    awarded: bool
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluator_id": self.evaluator_id,
            "rule_id": self.rule_id,
            "awarded": self.awarded,
            "points": self.points,
        }


@dataclass(frozen=True)
class UnknownRuleSkipped:
    """Record of a configured rule that could not be resolved and was skipped."""

    evaluator_id: Optional[int]
    rule_id: str
    reason: str


@dataclass(frozen=True)
class ScoreResult:
    total_points: int
    per_rule: tuple[EvaluatorResult, ...]
    skipped: tuple[UnknownRuleSkipped, ...] = ()
    multiplier: int = 1

    def breakdown(self) -> list[dict[str, Any]]:
        return [result.to_dict() for result in self.per_rule]


@dataclass(frozen=True)
class UserEvaluation:
    """Outcome of scoring a single member's prediction."""

    user_id: int
    prediction_id: int
    points_awarded: int
    per_rule: tuple[EvaluatorResult, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "prediction_id": self.prediction_id,
            "points_awarded": self.points_awarded,
            "per_rule": [result.to_dict() for result in self.per_rule],
        }


@dataclass(frozen=True)
class EvaluationSummary:
    """Summary returned by a full evaluation pass."""

    kind: EventKind
    event_id: int
    total_users_evaluated: int
    total_points_awarded: int
    results: tuple[UserEvaluation, ...] = ()
    skipped_rules: tuple[UnknownRuleSkipped, ...] = ()
    evaluated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "event_id": self.event_id,
            "total_users_evaluated": self.total_users_evaluated,
            "total_points_awarded": self.total_points_awarded,
            "results": [result.to_dict() for result in self.results],
            "skipped_rules": [skip.rule_id for skip in self.skipped_rules],
            "evaluated_at": dt_iso(self.evaluated_at),
        }
