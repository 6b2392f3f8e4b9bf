from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from league_fixtures import KICKOFF, LeagueDatabaseTestCase
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from betleague.evaluation import (
    EvaluationEngine,
    EventKind,
    EventNotFound,
    NoEvaluatorsConfigured,
    OutcomeNotRecorded,
    PersistenceFailure,
    PredictionNotFound,
    TransactionConflict,
    UnknownRule,
)
from betleague.models import (
    Match,
    Question,
    Series,
    SpecialBet,
    TopScorerRankingVersion,
    UserBet,
    UserQuestionBet,
    UserSeriesBet,
    UserSpecialBet,
)
from betleague.workflows import record_match_result, record_special_bet_result


class FakeDriverError(Exception):
    def __init__(self, message: str, pgcode: str | None = None) -> None:
        super().__init__(message)
        self.pgcode = pgcode


class SeriesAndQuestionEvaluationTests(LeagueDatabaseTestCase):
    def _seed_series(self, *, with_result: bool = True, with_evaluators: bool = True):
        with self.Session.begin() as session:
            league, (alice, bob) = self.seed_league(session)
            home, away = self.seed_teams(session)
            if with_evaluators:
                self.add_evaluator(session, league, "series", "series_winner", 10)
                self.add_evaluator(session, league, "series", "series_exact", 20)
            series = Series(
                league_id=league.id,
                home_team_id=home.id,
                away_team_id=away.id,
                date_time=KICKOFF,
                home_team_score=4 if with_result else None,
                away_team_score=2 if with_result else None,
            )
            session.add(series)
            session.flush()
            bet_a = UserSeriesBet(
                series_id=series.id,
                league_user_id=alice.id,
                home_team_score=4,
                away_team_score=1,
                total_points=7,
            )
            bet_b = UserSeriesBet(
                series_id=series.id,
                league_user_id=bob.id,
                home_team_score=4,
                away_team_score=2,
            )
            session.add_all([bet_a, bet_b])
            session.flush()
            return series.id, bet_a.id, bet_b.id, alice.user_id, bob.user_id

    def _seed_question(self, result=True):
        with self.Session.begin() as session:
            league, (alice, bob) = self.seed_league(session)
            self.add_evaluator(session, league, "question", "question", 5)
            question = Question(
                league_id=league.id,
                text="Will the final go to overtime?",
                date_time=KICKOFF,
                result=result,
            )
            session.add(question)
            session.flush()
            wrong = UserQuestionBet(
                question_id=question.id, league_user_id=alice.id, user_bet=False
            )
            right = UserQuestionBet(
                question_id=question.id, league_user_id=bob.id, user_bet=True
            )
            session.add_all([wrong, right])
            session.flush()
            return question.id, wrong.id, right.id

    def test_series_winner_and_exact_sum(self):
        series_id, bet_a, bet_b, user_a, user_b = self._seed_series()

        summary = EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(series_id)

        self.assertEqual(summary.total_users_evaluated, 2)
        self.assertEqual(summary.total_points_awarded, 40)
        self.assertEqual(
            {r.user_id: r.points_awarded for r in summary.results}, {user_a: 10, user_b: 30}
        )
        with self.Session() as session:
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 10)
            stored_b = session.get(UserSeriesBet, bet_b)
            self.assertEqual(stored_b.total_points, 30)
            self.assertEqual(
                [(item["rule_id"], item["points"]) for item in stored_b.score_breakdown],
                [("series_winner", 10), ("series_exact", 20)],
            )
            self.assertIsNotNone(stored_b.evaluated_at)
            self.assertTrue(session.get(Series, series_id).is_evaluated)

    def test_question_answers(self):
        question_id, wrong, right = self._seed_question()

        summary = EvaluationEngine(self.Session, "question").evaluate_all(question_id)

        self.assertEqual(summary.total_points_awarded, 5)
        with self.Session() as session:
            self.assertEqual(session.get(UserQuestionBet, wrong).total_points, 0)
            self.assertEqual(session.get(UserQuestionBet, right).total_points, 5)

    def test_evaluate_all_is_idempotent(self):
        series_id, bet_a, bet_b, _, _ = self._seed_series()
        engine = EvaluationEngine(self.Session, EventKind.SERIES)

        first = engine.evaluate_all(series_id)
        second = engine.evaluate_all(series_id)

        self.assertEqual(
            [(r.prediction_id, r.points_awarded) for r in first.results],
            [(r.prediction_id, r.points_awarded) for r in second.results],
        )
        with self.Session() as session:
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 10)
            self.assertEqual(session.get(UserSeriesBet, bet_b).total_points, 30)

    def test_corrected_outcome_overwrites_totals(self):
        series_id, bet_a, bet_b, _, _ = self._seed_series()
        engine = EvaluationEngine(self.Session, EventKind.SERIES)
        engine.evaluate_all(series_id)

        with self.Session.begin() as session:
            series = session.get(Series, series_id)
            series.home_team_score = 4
            series.away_team_score = 1

        engine.evaluate_all(series_id)
        with self.Session() as session:
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 30)
            self.assertEqual(session.get(UserSeriesBet, bet_b).total_points, 10)

    def test_missing_outcome_writes_nothing(self):
        series_id, bet_a, _, _, _ = self._seed_series(with_result=False)

        with self.assertRaises(OutcomeNotRecorded) as ctx:
            EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(series_id)

        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(ctx.exception.to_dict()["code"], "OUTCOME_NOT_RECORDED")
        with self.Session() as session:
            stored = session.get(UserSeriesBet, bet_a)
            self.assertEqual(stored.total_points, 7)
            self.assertIsNone(stored.evaluated_at)
            self.assertFalse(session.get(Series, series_id).is_evaluated)

    def test_missing_evaluators_writes_nothing(self):
        series_id, bet_a, _, _, _ = self._seed_series(with_evaluators=False)

        with self.assertRaises(NoEvaluatorsConfigured):
            EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(series_id)

        with self.Session() as session:
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 7)
            self.assertFalse(session.get(Series, series_id).is_evaluated)

    def test_unknown_event(self):
        with self.assertRaises(EventNotFound):
            EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(404)

    def test_deleted_question_is_not_found(self):
        question_id, _, _ = self._seed_question()
        with self.Session.begin() as session:
            session.get(Question, question_id).deleted_at = datetime.now(timezone.utc)

        with self.assertRaises(EventNotFound):
            EvaluationEngine(self.Session, EventKind.QUESTION).evaluate_all(question_id)

    def test_evaluate_one_keeps_evaluated_flag(self):
        series_id, bet_a, bet_b, user_a, _ = self._seed_series()
        engine = EvaluationEngine(self.Session, EventKind.SERIES)

        result = engine.evaluate_one(series_id, user_a)

        self.assertEqual(result.user_id, user_a)
        self.assertEqual(result.prediction_id, bet_a)
        self.assertEqual(result.points_awarded, 10)
        self.assertEqual(
            [(r.rule_id, r.awarded) for r in result.per_rule],
            [("series_winner", True), ("series_exact", False)],
        )
        with self.Session() as session:
            self.assertFalse(session.get(Series, series_id).is_evaluated)
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 10)
            # other predictions are untouched
            self.assertIsNone(session.get(UserSeriesBet, bet_b).evaluated_at)

        engine.evaluate_all(series_id)
        engine.evaluate_one(series_id, user_a)
        with self.Session() as session:
            self.assertTrue(session.get(Series, series_id).is_evaluated)

    def test_evaluate_one_without_prediction(self):
        series_id, _, _, _, _ = self._seed_series()
        with self.assertRaises(PredictionNotFound) as ctx:
            EvaluationEngine(self.Session, EventKind.SERIES).evaluate_one(series_id, 999)
        self.assertEqual(ctx.exception.user_id, 999)

    def test_soft_deleted_predictions_are_ignored(self):
        series_id, bet_a, _, _, _ = self._seed_series()
        with self.Session.begin() as session:
            session.get(UserSeriesBet, bet_a).deleted_at = datetime.now(timezone.utc)

        summary = EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(series_id)

        self.assertEqual(summary.total_users_evaluated, 1)
        with self.Session() as session:
            self.assertEqual(session.get(UserSeriesBet, bet_a).total_points, 7)

    def test_summary_to_dict(self):
        series_id, _, _, _, _ = self._seed_series()
        payload = EvaluationEngine(self.Session, EventKind.SERIES).evaluate_all(
            series_id
        ).to_dict()
        self.assertEqual(payload["kind"], "series")
        self.assertEqual(payload["total_points_awarded"], 40)
        self.assertEqual(len(payload["results"]), 2)
        self.assertIsNotNone(payload["evaluated_at"])


class TransactionFailureTests(LeagueDatabaseTestCase):
    def _seed(self):
        with self.Session.begin() as session:
            league, (alice,) = self.seed_league(session, usernames=("alice",))
            self.add_evaluator(session, league, "question", "question", 5)
            question = Question(
                league_id=league.id, text="Overtime?", date_time=KICKOFF, result=True
            )
            session.add(question)
            session.flush()
            bet = UserQuestionBet(
                question_id=question.id, league_user_id=alice.id, user_bet=True
            )
            session.add(bet)
            session.flush()
            return question.id, bet.id

    def _assert_untouched(self, question_id: int, bet_id: int) -> None:
        with self.Session() as session:
            self.assertEqual(session.get(UserQuestionBet, bet_id).total_points, 0)
            self.assertFalse(session.get(Question, question_id).is_evaluated)

    def test_serialization_conflict_is_retryable(self):
        question_id, bet_id = self._seed()
        engine = EvaluationEngine(self.Session, EventKind.QUESTION)
        conflict = OperationalError(
            "COMMIT", {}, FakeDriverError("could not serialize access", pgcode="40001")
        )

        with patch.object(Session, "commit", side_effect=conflict):
            with self.assertRaises(TransactionConflict) as ctx:
                engine.evaluate_all(question_id)

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(ctx.exception.code, "TRANSACTION_CONFLICT")
        self._assert_untouched(question_id, bet_id)

        # the caller retries and the second attempt goes through
        summary = engine.evaluate_all(question_id)
        self.assertEqual(summary.total_points_awarded, 5)
        with self.Session() as session:
            self.assertTrue(session.get(Question, question_id).is_evaluated)

    def test_other_database_errors_are_persistence_failures(self):
        question_id, bet_id = self._seed()
        engine = EvaluationEngine(self.Session, EventKind.QUESTION)
        failure = OperationalError("COMMIT", {}, FakeDriverError("disk I/O error"))

        with patch.object(Session, "commit", side_effect=failure):
            with self.assertRaises(PersistenceFailure) as ctx:
                engine.evaluate_all(question_id)

        self.assertFalse(ctx.exception.retryable)
        self._assert_untouched(question_id, bet_id)


class MatchEvaluationTests(LeagueDatabaseTestCase):
    def _seed_match(self, session, *, is_doubled=False):
        league, members = self.seed_league(session)
        home, away = self.seed_teams(session)
        match = Match(
            league_id=league.id,
            home_team_id=home.id,
            away_team_id=away.id,
            date_time=KICKOFF,
            is_doubled=is_doubled,
        )
        session.add(match)
        session.flush()
        return league, members, match, home

    def test_doubled_match_multiplies_totals(self):
        with self.Session.begin() as session:
            league, (alice, bob), match, _ = self._seed_match(session, is_doubled=True)
            self.add_evaluator(session, league, "match", "exact_score", 5)
            self.add_evaluator(session, league, "match", "winner", 2)
            exact = UserBet(match_id=match.id, league_user_id=alice.id, home_score=3, away_score=1)
            wrong = UserBet(match_id=match.id, league_user_id=bob.id, home_score=0, away_score=1)
            session.add_all([exact, wrong])
            session.flush()
            record_match_result(session, match, home_regular_score=3, away_regular_score=1)
            match_id, exact_id, wrong_id = match.id, exact.id, wrong.id

        EvaluationEngine(self.Session, EventKind.MATCH).evaluate_all(match_id)

        with self.Session() as session:
            stored = session.get(UserBet, exact_id)
            self.assertEqual(stored.total_points, 14)
            self.assertEqual(sum(item["points"] for item in stored.score_breakdown), 7)
            self.assertEqual(session.get(UserBet, wrong_id).total_points, 0)

    def test_ranked_scorer_uses_ranking_at_kickoff(self):
        with self.Session.begin() as session:
            league, (alice, bob), match, home = self._seed_match(session)
            striker = self.seed_player(session, "Striker", home)
            outsider = self.seed_player(session, "Outsider", home)
            self.add_evaluator(
                session,
                league,
                "match",
                "scorer",
                0,
                config={"ranked_points": {"1": 2, "3": 6}, "unranked_points": 8},
            )
            session.add_all(
                [
                    TopScorerRankingVersion(
                        league_id=league.id,
                        player_id=striker.id,
                        ranking=1,
                        effective_from=KICKOFF - timedelta(days=10),
                        effective_to=KICKOFF + timedelta(days=1),
                    ),
                    TopScorerRankingVersion(
                        league_id=league.id,
                        player_id=striker.id,
                        ranking=3,
                        effective_from=KICKOFF + timedelta(days=1),
                    ),
                ]
            )
            ranked = UserBet(
                match_id=match.id,
                league_user_id=alice.id,
                home_score=1,
                away_score=0,
                scorer_id=striker.id,
            )
            unranked = UserBet(
                match_id=match.id,
                league_user_id=bob.id,
                home_score=1,
                away_score=0,
                scorer_id=outsider.id,
            )
            session.add_all([ranked, unranked])
            session.flush()
            record_match_result(
                session,
                match,
                home_regular_score=2,
                away_regular_score=0,
                scorer_goals={striker.id: 1, outsider.id: 1},
            )
            match_id, ranked_id, unranked_id = match.id, ranked.id, unranked.id

        EvaluationEngine(self.Session, EventKind.MATCH).evaluate_all(match_id)

        with self.Session() as session:
            self.assertEqual(session.get(UserBet, ranked_id).total_points, 2)
            self.assertEqual(session.get(UserBet, unranked_id).total_points, 8)

    def test_unknown_rule_does_not_block_other_rules(self):
        with self.Session.begin() as session:
            league, (alice, _), match, _ = self._seed_match(session)
            self.add_evaluator(session, league, "match", "legacy_bonus", 50)
            self.add_evaluator(session, league, "match", "exact_score", 5)
            bet = UserBet(match_id=match.id, league_user_id=alice.id, home_score=1, away_score=1)
            session.add(bet)
            session.flush()
            record_match_result(session, match, home_regular_score=1, away_regular_score=1)
            match_id, bet_id = match.id, bet.id

        with self.assertLogs("betleague.evaluation.scoring", level="WARNING"):
            summary = EvaluationEngine(
                self.Session, EventKind.MATCH, strict_rules=False
            ).evaluate_all(match_id)

        self.assertEqual([s.rule_id for s in summary.skipped_rules], ["legacy_bonus"])
        with self.Session() as session:
            self.assertEqual(session.get(UserBet, bet_id).total_points, 5)

    def test_strict_rules_abort_without_writes(self):
        with self.Session.begin() as session:
            league, (alice, _), match, _ = self._seed_match(session)
            self.add_evaluator(session, league, "match", "exact_score", 5)
            self.add_evaluator(session, league, "match", "legacy_bonus", 50)
            bet = UserBet(match_id=match.id, league_user_id=alice.id, home_score=1, away_score=1)
            session.add(bet)
            session.flush()
            record_match_result(session, match, home_regular_score=1, away_regular_score=1)
            match_id, bet_id = match.id, bet.id

        with self.assertRaises(UnknownRule):
            EvaluationEngine(self.Session, EventKind.MATCH, strict_rules=True).evaluate_all(
                match_id
            )

        with self.Session() as session:
            self.assertIsNone(session.get(UserBet, bet_id).evaluated_at)
            self.assertFalse(session.get(Match, match_id).is_evaluated)

    def test_strict_rules_from_environment(self):
        with self.Session.begin() as session:
            league, (alice, _), match, _ = self._seed_match(session)
            self.add_evaluator(session, league, "match", "legacy_bonus", 50)
            session.add(
                UserBet(match_id=match.id, league_user_id=alice.id, home_score=1, away_score=1)
            )
            record_match_result(session, match, home_regular_score=1, away_regular_score=1)
            match_id = match.id

        with patch.dict("os.environ", {"EVALUATION_STRICT_RULES": "true"}):
            engine = EvaluationEngine(self.Session, EventKind.MATCH)
        with self.assertRaises(UnknownRule):
            engine.evaluate_all(match_id)


class SpecialBetEvaluationTests(LeagueDatabaseTestCase):
    def _seed_special(self, session, usernames=("alice", "bob")):
        league, members = self.seed_league(session, usernames=usernames)
        special = SpecialBet(league_id=league.id, name="Special", date_time=KICKOFF)
        session.add(special)
        session.flush()
        return league, members, special

    def _totals(self, special_id: int) -> dict[int, int]:
        with self.Session() as session:
            rows = session.scalars(
                select(UserSpecialBet).where(UserSpecialBet.special_bet_id == special_id)
            )
            return {row.league_user_id: row.total_points for row in rows}

    def test_closest_value_awards_a_third(self):
        with self.Session.begin() as session:
            league, members, special = self._seed_special(
                session, usernames=("alice", "bob", "carol")
            )
            self.add_evaluator(session, league, "special", "closest_value", 12)
            for member, value in zip(members, (13, 7, 20)):
                session.add(
                    UserSpecialBet(
                        special_bet_id=special.id, league_user_id=member.id, value=value
                    )
                )
            session.flush()
            record_special_bet_result(session, special, value=10)
            special_id = special.id
            alice, bob, carol = (m.id for m in members)

        EvaluationEngine(self.Session, EventKind.SPECIAL).evaluate_all(special_id)

        self.assertEqual(self._totals(special_id), {alice: 4, bob: 4, carol: 0})

    def test_pinned_group_stage_evaluator_is_used_alone(self):
        with self.Session.begin() as session:
            league, (alice, bob), special = self._seed_special(session)
            first, second, third = self.seed_teams(session, count=3)
            self.add_evaluator(session, league, "special", "exact_team", 15)
            group_stage = self.add_evaluator(
                session,
                league,
                "special",
                "group_stage_team",
                0,
                config={"winner_points": 6, "advance_points": 3},
            )
            special.evaluator_id = group_stage.id
            session.add_all(
                [
                    UserSpecialBet(
                        special_bet_id=special.id,
                        league_user_id=alice.id,
                        team_result_id=first.id,
                    ),
                    UserSpecialBet(
                        special_bet_id=special.id,
                        league_user_id=bob.id,
                        team_result_id=second.id,
                    ),
                ]
            )
            session.flush()
            record_special_bet_result(
                session,
                special,
                team_result_id=first.id,
                advanced_team_ids=[first.id, second.id],
            )
            special_id, alice_id, bob_id = special.id, alice.id, bob.id

        EvaluationEngine(self.Session, EventKind.SPECIAL).evaluate_all(special_id)

        self.assertEqual(self._totals(special_id), {alice_id: 6, bob_id: 3})

    def test_deleted_pinned_evaluator(self):
        with self.Session.begin() as session:
            league, (alice, _), special = self._seed_special(session)
            (team,) = self.seed_teams(session, count=1)
            pinned = self.add_evaluator(session, league, "special", "exact_team", 15)
            self.add_evaluator(session, league, "special", "exact_player", 15)
            pinned.deleted_at = datetime.now(timezone.utc)
            special.evaluator_id = pinned.id
            session.add(
                UserSpecialBet(
                    special_bet_id=special.id, league_user_id=alice.id, team_result_id=team.id
                )
            )
            session.flush()
            record_special_bet_result(session, special, team_result_id=team.id)
            special_id = special.id

        with self.assertRaises(NoEvaluatorsConfigured):
            EvaluationEngine(self.Session, EventKind.SPECIAL).evaluate_all(special_id)

    def test_league_special_evaluators_apply_when_not_pinned(self):
        with self.Session.begin() as session:
            league, (alice, bob), special = self._seed_special(session)
            first, second = self.seed_teams(session)
            self.add_evaluator(session, league, "special", "exact_team", 15)
            session.add_all(
                [
                    UserSpecialBet(
                        special_bet_id=special.id,
                        league_user_id=alice.id,
                        team_result_id=first.id,
                    ),
                    UserSpecialBet(
                        special_bet_id=special.id,
                        league_user_id=bob.id,
                        team_result_id=second.id,
                    ),
                ]
            )
            session.flush()
            record_special_bet_result(session, special, team_result_id=first.id)
            special_id, alice_id, bob_id = special.id, alice.id, bob.id

        EvaluationEngine(self.Session, EventKind.SPECIAL).evaluate_all(special_id)

        self.assertEqual(self._totals(special_id), {alice_id: 15, bob_id: 0})


if __name__ == "__main__":
    unittest.main()
