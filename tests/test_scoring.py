import unittest

from betleague.evaluation import (
    EvaluatorEntry,
    EventKind,
    Rule,
    RuleRegistry,
    RuleVerdict,
    ScoringPass,
    UnknownRule,
    score_prediction,
)
from betleague.evaluation.scoring import verdict_points
from betleague.evaluation.types import (
    MatchOutcome,
    MatchPrediction,
    QuestionOutcome,
    QuestionPrediction,
    SeriesOutcome,
    SeriesPrediction,
)

MATCH_CONFIG = [
    EvaluatorEntry(evaluator_id=1, rule_id="exact_score", points=5),
    EvaluatorEntry(evaluator_id=2, rule_id="winner", points=2),
    EvaluatorEntry(evaluator_id=3, rule_id="score_difference", points=3),
]


class ScorePredictionTests(unittest.TestCase):
    def test_overlapping_rules_sum(self):
        result = score_prediction(
            MatchPrediction(3, 1), MatchOutcome(3, 1), MATCH_CONFIG, EventKind.MATCH
        )
        self.assertEqual(result.total_points, 7)
        self.assertEqual(
            [(r.evaluator_id, r.awarded, r.points) for r in result.per_rule],
            [(1, True, 5), (2, True, 2), (3, False, 0)],
        )

    def test_series_example(self):
        config = [
            EvaluatorEntry(evaluator_id=1, rule_id="series_winner", points=10),
            EvaluatorEntry(evaluator_id=2, rule_id="series_exact", points=20),
        ]
        outcome = SeriesOutcome(4, 2)
        user_a = score_prediction(SeriesPrediction(4, 1), outcome, config, EventKind.SERIES)
        user_b = score_prediction(SeriesPrediction(4, 2), outcome, config, EventKind.SERIES)
        self.assertEqual(user_a.total_points, 10)
        self.assertEqual(user_b.total_points, 30)

    def test_question_example(self):
        config = [EvaluatorEntry(evaluator_id=1, rule_id="question", points=5)]
        outcome = QuestionOutcome(True)
        wrong = score_prediction(QuestionPrediction(False), outcome, config, EventKind.QUESTION)
        right = score_prediction(QuestionPrediction(True), outcome, config, EventKind.QUESTION)
        self.assertEqual(wrong.total_points, 0)
        self.assertEqual(right.total_points, 5)

    def test_scoring_is_deterministic_and_non_negative(self):
        outcome = MatchOutcome(2, 2, home_final_score=3, away_final_score=2)
        scoring = ScoringPass(MATCH_CONFIG, EventKind.MATCH)
        for home in range(4):
            for away in range(4):
                prediction = MatchPrediction(home, away)
                first = scoring.score(prediction, outcome)
                self.assertEqual(first, scoring.score(prediction, outcome))
                self.assertGreaterEqual(first.total_points, 0)

    def test_unknown_rule_is_skipped_without_blocking_others(self):
        config = MATCH_CONFIG + [
            EvaluatorEntry(evaluator_id=9, rule_id="legacy_bonus", points=50),
        ]
        with self.assertLogs("betleague.evaluation.scoring", level="WARNING"):
            result = score_prediction(
                MatchPrediction(3, 1), MatchOutcome(3, 1), config, EventKind.MATCH
            )
        self.assertEqual(result.total_points, 7)
        self.assertEqual([s.rule_id for s in result.skipped], ["legacy_bonus"])
        self.assertNotIn(9, [r.evaluator_id for r in result.per_rule])

    def test_rule_of_another_kind_is_treated_as_unknown(self):
        config = [EvaluatorEntry(evaluator_id=1, rule_id="question", points=5)]
        with self.assertLogs("betleague.evaluation.scoring", level="WARNING"):
            result = score_prediction(
                MatchPrediction(1, 0), MatchOutcome(1, 0), config, EventKind.MATCH
            )
        self.assertEqual(result.total_points, 0)
        self.assertEqual(len(result.skipped), 1)

    def test_strict_mode_raises_for_unknown_rule(self):
        config = [EvaluatorEntry(evaluator_id=9, rule_id="legacy_bonus", points=50)]
        with self.assertRaises(UnknownRule) as ctx:
            ScoringPass(config, EventKind.MATCH, strict=True)
        self.assertEqual(ctx.exception.code, "UNKNOWN_RULE")
        self.assertFalse(ctx.exception.retryable)

    def test_multiplier_applies_to_total_only(self):
        result = score_prediction(
            MatchPrediction(3, 1),
            MatchOutcome(3, 1),
            MATCH_CONFIG,
            EventKind.MATCH,
            multiplier=2,
        )
        self.assertEqual(result.total_points, 14)
        self.assertEqual(sum(r.points for r in result.per_rule), 7)
        self.assertEqual(result.multiplier, 2)

    def test_invalid_multiplier(self):
        with self.assertRaises(ValueError):
            ScoringPass(MATCH_CONFIG, EventKind.MATCH, multiplier=0)

    def test_custom_registry(self):
        registry = RuleRegistry()
        registry.register(
            Rule(
                key="penalty",
                kind=EventKind.QUESTION,
                check=lambda p, o, c: RuleVerdict(awarded=True, points=-10),
            )
        )
        config = [EvaluatorEntry(evaluator_id=1, rule_id="penalty", points=5)]
        result = score_prediction(
            QuestionPrediction(True),
            QuestionOutcome(True),
            config,
            EventKind.QUESTION,
            registry=registry,
        )
        # points never go below zero
        self.assertEqual(result.total_points, 0)

    def test_breakdown_is_json_ready(self):
        result = score_prediction(
            MatchPrediction(3, 1), MatchOutcome(3, 1), MATCH_CONFIG[:1], EventKind.MATCH
        )
        self.assertEqual(
            result.breakdown(),
            [{"evaluator_id": 1, "rule_id": "exact_score", "awarded": True, "points": 5}],
        )


class VerdictPointsTests(unittest.TestCase):
    entry = EvaluatorEntry(evaluator_id=1, rule_id="closest_value", points=10)

    def test_share_is_rounded(self):
        self.assertEqual(verdict_points(RuleVerdict(True, share=1 / 3), self.entry), 3)

    def test_explicit_points_win_over_share(self):
        self.assertEqual(verdict_points(RuleVerdict(True, points=4), self.entry), 4)

    def test_not_awarded_is_zero(self):
        self.assertEqual(verdict_points(RuleVerdict(False), self.entry), 0)


if __name__ == "__main__":
    unittest.main()
