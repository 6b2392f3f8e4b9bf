"""Scoring rules and the registry that resolves them by identifier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .types import (
    EventKind,
    GroupStageConfig,
    MatchOutcome,
    MatchPrediction,
    QuestionOutcome,
    QuestionPrediction,
    RuleConfig,
    RuleVerdict,
    ScorerRankedConfig,
    SeriesOutcome,
    SeriesPrediction,
    SpecialBetOutcome,
    SpecialBetPrediction,
)

RuleCheck = Callable[[Any, Any, Optional[RuleConfig]], Union[bool, RuleVerdict]]
ConfigParser = Callable[[Mapping[str, Any]], RuleConfig]


@dataclass(frozen=True)
class Rule:
    """Definition of a scoring rule.

    Attributes
    ----------
    key : str
        Registry key, equal to :attr:`betleague.models.EvaluatorType.name`.
    kind : EventKind
        Event kind whose predictions and outcomes the rule accepts.
    check : RuleCheck
        Pure callable taking ``(prediction, outcome, config)`` and returning
        either a plain ``bool`` or a :class:`RuleVerdict`.
    description : Optional[str]
        Human-readable summary of the rule.
    parse_config : Optional[ConfigParser]
        Converts the evaluator's stored JSON into a typed config. Rules
        without a parser ignore the stored config.
    config_required : bool
        When ``True`` an evaluator without a config is rejected when the
        configuration is loaded.
    """

    key: str
    kind: EventKind
    check: RuleCheck
    description: Optional[str] = None
    parse_config: Optional[ConfigParser] = None
    config_required: bool = False

    def evaluate(
        self,
        prediction: Any,
        outcome: Any,
        config: Optional[RuleConfig] = None,
    ) -> RuleVerdict:
        """Run the rule and normalize its answer to a :class:`RuleVerdict`."""
        verdict = self.check(prediction, outcome, config)
        if isinstance(verdict, RuleVerdict):
            return verdict
        return RuleVerdict(awarded=bool(verdict))


class RuleRegistry:
    """Mutable registry mapping rule identifiers to definitions."""

    def __init__(self) -> None:
        self._rules: Dict[str, Rule] = {}

    def register(self, rule: Rule, *, replace: bool = False) -> None:
        """Register ``rule`` under its key.

        Parameters
        ----------
        rule : Rule
            Rule to add to the registry.
        replace : bool, default: False
            When ``True`` an existing registration with the same key is
            overwritten. Otherwise a duplicate raises :class:`ValueError`.
        """
        if not replace and rule.key in self._rules:
            raise ValueError(f"Rule '{rule.key}' is already registered")
        self._rules[rule.key] = rule

    def get(self, key: str) -> Rule:
        """Return the rule registered under ``key``."""
        try:
            return self._rules[key]
        except KeyError as exc:
            raise KeyError(f"Unknown scoring rule '{key}'") from exc

    def lookup(self, key: str, kind: Optional[EventKind] = None) -> Optional[Rule]:
        """Return the rule for ``key`` or ``None``.

        When ``kind`` is given, a rule registered for another event kind is
        treated as missing.
        """
        rule = self._rules.get(key)
        if rule is None or (kind is not None and rule.kind is not kind):
            return None
        return rule

    def evaluate(
        self,
        key: str,
        prediction: Any,
        outcome: Any,
        config: Optional[RuleConfig] = None,
    ) -> RuleVerdict:
        return self.get(key).evaluate(prediction, outcome, config)

    def available_rules(self, kind: Optional[EventKind] = None) -> Dict[str, Rule]:
        """Return a copy of the registered rules, optionally for one kind."""
        return {
            key: rule
            for key, rule in self._rules.items()
            if kind is None or rule.kind is kind
        }

    def __contains__(self, key: object) -> bool:
        return key in self._rules


# -------- helpers --------


def _side(home: int, away: int) -> str:
    if home > away:
        return "home"
    if away > home:
        return "away"
    return "draw"


def _non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"'{field_name}' must be a non-negative integer, got {value!r}")
    return value


def parse_scorer_config(raw: Mapping[str, Any]) -> ScorerRankedConfig:
    """Build a :class:`ScorerRankedConfig` from stored JSON.

    Expected shape: ``{"ranked_points": {"1": 2, "2": 4}, "unranked_points": 8}``.
    """
    ranked_raw = raw.get("ranked_points")
    if not isinstance(ranked_raw, Mapping):
        raise ValueError("'ranked_points' must be an object mapping rank to points")
    ranked: dict[int, int] = {}
    for rank, points in ranked_raw.items():
        try:
            rank_number = int(rank)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"rank {rank!r} is not an integer") from exc
        if rank_number < 1:
            raise ValueError(f"rank {rank!r} must be 1 or greater")
        ranked[rank_number] = _non_negative_int(points, f"ranked_points.{rank}")
    unranked = _non_negative_int(raw.get("unranked_points"), "unranked_points")
    return ScorerRankedConfig(ranked_points=ranked, unranked_points=unranked)


def parse_group_stage_config(raw: Mapping[str, Any]) -> GroupStageConfig:
    """Build a :class:`GroupStageConfig` from ``{"winner_points", "advance_points"}``."""
    return GroupStageConfig(
        winner_points=_non_negative_int(raw.get("winner_points"), "winner_points"),
        advance_points=_non_negative_int(raw.get("advance_points"), "advance_points"),
    )


# -------- match rules --------


def _is_exact_score(prediction: MatchPrediction, outcome: MatchOutcome) -> bool:
    return (
        prediction.home_score == outcome.home_regular_score
        and prediction.away_score == outcome.away_regular_score
    )


def _is_score_difference(prediction: MatchPrediction, outcome: MatchOutcome) -> bool:
    return (
        prediction.home_score - prediction.away_score
        == outcome.home_regular_score - outcome.away_regular_score
    )


def _exact_score(prediction: MatchPrediction, outcome: MatchOutcome, _config) -> bool:
    return _is_exact_score(prediction, outcome)


def _score_difference(prediction: MatchPrediction, outcome: MatchOutcome, _config) -> bool:
    return not _is_exact_score(prediction, outcome) and _is_score_difference(
        prediction, outcome
    )


def _one_team_score(prediction: MatchPrediction, outcome: MatchOutcome, _config) -> bool:
    if _is_exact_score(prediction, outcome) or _is_score_difference(prediction, outcome):
        return False
    return (
        prediction.home_score == outcome.home_regular_score
        or prediction.away_score == outcome.away_regular_score
    )


def _winner(prediction: MatchPrediction, outcome: MatchOutcome, _config) -> bool:
    return _side(prediction.home_score, prediction.away_score) == _side(
        *outcome.final_scores
    )


def _draw(prediction: MatchPrediction, outcome: MatchOutcome, _config) -> bool:
    if _is_exact_score(prediction, outcome):
        return False
    return (
        prediction.home_score == prediction.away_score
        and outcome.home_regular_score == outcome.away_regular_score
    )


def _soccer_playoff_advance(
    prediction: MatchPrediction, outcome: MatchOutcome, _config
) -> bool:
    if not outcome.is_playoff_game or outcome.home_advanced is None:
        return False
    return prediction.home_advanced is not None and (
        prediction.home_advanced == outcome.home_advanced
    )


def _scorer(
    prediction: MatchPrediction,
    outcome: MatchOutcome,
    config: Optional[RuleConfig],
) -> Union[bool, RuleVerdict]:
    ranked = config if isinstance(config, ScorerRankedConfig) else None

    if prediction.no_scorer:
        correct = not outcome.scorer_ids
        if ranked is None:
            return correct
        return RuleVerdict(
            awarded=correct, points=ranked.unranked_points if correct else 0
        )

    if prediction.scorer_id is None or prediction.scorer_id not in outcome.scorer_ids:
        return RuleVerdict(awarded=False, points=0 if ranked else None)
    if ranked is None:
        return True

    ranking = outcome.scorer_rankings.get(prediction.scorer_id)
    if ranking is not None and ranking in ranked.ranked_points:
        return RuleVerdict(awarded=True, points=ranked.ranked_points[ranking])
    return RuleVerdict(awarded=True, points=ranked.unranked_points)


# -------- series rules --------


def _series_scores_known(prediction: SeriesPrediction) -> bool:
    return prediction.home_team_score is not None and prediction.away_team_score is not None


def _series_exact(prediction: SeriesPrediction, outcome: SeriesOutcome, _config) -> bool:
    if not _series_scores_known(prediction):
        return False
    return (
        prediction.home_team_score == outcome.home_team_score
        and prediction.away_team_score == outcome.away_team_score
    )


def _series_winner(prediction: SeriesPrediction, outcome: SeriesOutcome, _config) -> bool:
    home, away = prediction.home_team_score, prediction.away_team_score
    if home is None or away is None:
        return False
    return _side(home, away) == _side(
        outcome.home_team_score, outcome.away_team_score
    )


# -------- special bet rules --------


def _exact_team(prediction: SpecialBetPrediction, outcome: SpecialBetOutcome, _config) -> bool:
    return prediction.team_result_id is not None and (
        prediction.team_result_id == outcome.team_result_id
    )


def _exact_player(
    prediction: SpecialBetPrediction, outcome: SpecialBetOutcome, _config
) -> bool:
    return prediction.player_result_id is not None and (
        prediction.player_result_id == outcome.player_result_id
    )


def _exact_value(prediction: SpecialBetPrediction, outcome: SpecialBetOutcome, _config) -> bool:
    return prediction.value is not None and prediction.value == outcome.value


def _closest_value(
    prediction: SpecialBetPrediction, outcome: SpecialBetOutcome, _config
) -> Union[bool, RuleVerdict]:
    if prediction.value is None or outcome.value is None or not outcome.predicted_values:
        return False
    difference = abs(prediction.value - outcome.value)
    if difference == 0:
        return True
    closest = min(abs(value - outcome.value) for value in outcome.predicted_values)
    if difference == closest:
        return RuleVerdict(awarded=True, share=1 / 3)
    return False


def _group_stage_team(
    prediction: SpecialBetPrediction,
    outcome: SpecialBetOutcome,
    config: Optional[RuleConfig],
) -> RuleVerdict:
    if not isinstance(config, GroupStageConfig) or prediction.team_result_id is None:
        return RuleVerdict(awarded=False, points=0)
    if prediction.team_result_id == outcome.team_result_id:
        return RuleVerdict(awarded=True, points=config.winner_points)
    if prediction.team_result_id in outcome.advanced_team_ids:
        return RuleVerdict(awarded=True, points=config.advance_points)
    return RuleVerdict(awarded=False, points=0)


# -------- question rules --------


def _question(prediction: QuestionPrediction, outcome: QuestionOutcome, _config) -> bool:
    return prediction.answer is not None and prediction.answer == outcome.answer


DEFAULT_RULE_REGISTRY = RuleRegistry()
for _rule in (
    Rule(
        key="exact_score",
        kind=EventKind.MATCH,
        check=_exact_score,
        description="Both regulation-time scores predicted exactly.",
    ),
    Rule(
        key="score_difference",
        kind=EventKind.MATCH,
        check=_score_difference,
        description="Regulation goal difference matches without an exact score.",
    ),
    Rule(
        key="one_team_score",
        kind=EventKind.MATCH,
        check=_one_team_score,
        description=(
            "One side's regulation score matches when neither the exact score "
            "nor the goal difference does."
        ),
    ),
    Rule(
        key="winner",
        kind=EventKind.MATCH,
        check=_winner,
        description="Predicted winner (or draw) matches the final result.",
    ),
    Rule(
        key="draw",
        kind=EventKind.MATCH,
        check=_draw,
        description="Draw predicted and regulation ended drawn, without an exact score.",
    ),
    Rule(
        key="soccer_playoff_advance",
        kind=EventKind.MATCH,
        check=_soccer_playoff_advance,
        description="Playoff games only: predicted advancing side is correct.",
    ),
    Rule(
        key="scorer",
        kind=EventKind.MATCH,
        check=_scorer,
        description=(
            "Predicted scorer scored (or nobody scored for a no-scorer pick). "
            "With a ranked config the points depend on the scorer's ranking."
        ),
        parse_config=parse_scorer_config,
    ),
    Rule(
        key="series_exact",
        kind=EventKind.SERIES,
        check=_series_exact,
        description="Both series scores predicted exactly.",
    ),
    Rule(
        key="series_winner",
        kind=EventKind.SERIES,
        check=_series_winner,
        description="Predicted series winner is correct.",
    ),
    Rule(
        key="exact_team",
        kind=EventKind.SPECIAL,
        check=_exact_team,
        description="Predicted team equals the recorded team.",
    ),
    Rule(
        key="exact_player",
        kind=EventKind.SPECIAL,
        check=_exact_player,
        description="Predicted player equals the recorded player.",
    ),
    Rule(
        key="exact_value",
        kind=EventKind.SPECIAL,
        check=_exact_value,
        description="Predicted value equals the recorded value.",
    ),
    Rule(
        key="closest_value",
        kind=EventKind.SPECIAL,
        check=_closest_value,
        description=(
            "Full points for the exact value, a third for the closest "
            "prediction (ties included)."
        ),
    ),
    Rule(
        key="group_stage_team",
        kind=EventKind.SPECIAL,
        check=_group_stage_team,
        description="Winner points if the team won its group, advance points if it advanced.",
        parse_config=parse_group_stage_config,
        config_required=True,
    ),
    Rule(
        key="question",
        kind=EventKind.QUESTION,
        check=_question,
        description="Yes/no answer matches the recorded answer.",
    ),
):
    DEFAULT_RULE_REGISTRY.register(_rule)
del _rule

__all__ = [
    "DEFAULT_RULE_REGISTRY",
    "Rule",
    "RuleRegistry",
    "parse_group_stage_config",
    "parse_scorer_config",
]
