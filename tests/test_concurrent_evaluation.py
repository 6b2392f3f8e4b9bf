"""Evaluation passes racing other writers on a file-backed SQLite database."""

from __future__ import annotations

import os
import tempfile
import unittest
from typing import Callable

from league_fixtures import KICKOFF, LeagueDatabaseTestCase
from sqlalchemy.exc import OperationalError

from betleague.db.engine import get_sessionmaker, make_engine
from betleague.evaluation import (
    DEFAULT_RULE_REGISTRY,
    EvaluationEngine,
    EventKind,
    Rule,
    RuleRegistry,
    TransactionConflict,
)
from betleague.models import Base, Series, UserSeriesBet


class ConcurrentEvaluationTests(LeagueDatabaseTestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        url = "sqlite:///" + os.path.join(self.tmp.name, "league.db")
        # timeout=0: a held lock fails at once instead of waiting
        self.engine = make_engine(url, connect_args={"timeout": 0})
        self.other_engine = make_engine(url, connect_args={"timeout": 0})
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        self.OtherSession = get_sessionmaker(self.other_engine)

    def tearDown(self) -> None:
        self.engine.dispose()
        self.other_engine.dispose()
        self.tmp.cleanup()

    def _seed_series(self):
        with self.Session.begin() as session:
            league, (alice,) = self.seed_league(session, usernames=("alice",))
            home, away = self.seed_teams(session)
            self.add_evaluator(session, league, "series", "series_winner", 10)
            self.add_evaluator(session, league, "series", "interleave", 0)
            series = Series(
                league_id=league.id,
                home_team_id=home.id,
                away_team_id=away.id,
                date_time=KICKOFF,
                home_team_score=4,
                away_team_score=2,
            )
            session.add(series)
            session.flush()
            bet = UserSeriesBet(
                series_id=series.id,
                league_user_id=alice.id,
                home_team_score=4,
                away_team_score=1,
            )
            session.add(bet)
            session.flush()
            return series.id, bet.id

    def _registry(self, interleave: Callable[[], None]) -> RuleRegistry:
        """series_winner plus an ``interleave`` rule that runs once mid-pass."""
        calls = []

        def check(prediction, outcome, config):
            if not calls:
                calls.append(True)
                interleave()
            return False

        registry = RuleRegistry()
        registry.register(DEFAULT_RULE_REGISTRY.get("series_winner"))
        registry.register(Rule(key="interleave", kind=EventKind.SERIES, check=check))
        return registry

    def _engine(self, session_factory, interleave=lambda: None) -> EvaluationEngine:
        return EvaluationEngine(
            session_factory,
            EventKind.SERIES,
            registry=self._registry(interleave),
            strict_rules=False,
        )

    def _edit_bet(self, bet_id: int, home: int, away: int) -> None:
        with self.OtherSession.begin() as session:
            bet = session.get(UserSeriesBet, bet_id)
            bet.home_team_score = home
            bet.away_team_score = away

    def _stored_bet(self, bet_id: int):
        with self.Session() as session:
            bet = session.get(UserSeriesBet, bet_id)
            return bet.home_team_score, bet.away_team_score, bet.total_points

    def test_bet_edit_during_pass_is_locked_out(self):
        series_id, bet_id = self._seed_series()
        edit_errors = []

        def edit():
            try:
                self._edit_bet(bet_id, 1, 4)
            except OperationalError as exc:
                edit_errors.append(exc)

        summary = self._engine(self.Session, edit).evaluate_all(series_id)

        self.assertEqual(len(edit_errors), 1)
        self.assertIn("database is locked", str(edit_errors[0]))
        self.assertEqual(summary.total_points_awarded, 10)
        # the score belongs to the prediction that was read
        self.assertEqual(self._stored_bet(bet_id), (4, 1, 10))

        # once the pass is done the edit goes through and a new pass rescores it
        self._edit_bet(bet_id, 1, 4)
        self._engine(self.Session).evaluate_all(series_id)
        self.assertEqual(self._stored_bet(bet_id), (1, 4, 0))

    def test_competing_pass_conflicts_and_retry_matches_serial_run(self):
        series_id, bet_id = self._seed_series()
        conflicts = []

        def compete():
            try:
                self._engine(self.OtherSession).evaluate_all(series_id)
            except TransactionConflict as exc:
                conflicts.append(exc)

        first = self._engine(self.Session, compete).evaluate_all(series_id)

        self.assertEqual(len(conflicts), 1)
        self.assertTrue(conflicts[0].retryable)
        self.assertEqual(self._stored_bet(bet_id), (4, 1, 10))

        retried = self._engine(self.OtherSession).evaluate_all(series_id)
        self.assertEqual(
            [(r.prediction_id, r.points_awarded) for r in first.results],
            [(r.prediction_id, r.points_awarded) for r in retried.results],
        )
        self.assertEqual(self._stored_bet(bet_id), (4, 1, 10))
        with self.Session() as session:
            self.assertTrue(session.get(Series, series_id).is_evaluated)

    def test_pass_conflicts_with_open_bet_edit(self):
        series_id, bet_id = self._seed_series()
        engine = self._engine(self.Session)

        with self.OtherSession.begin() as session:
            bet = session.get(UserSeriesBet, bet_id)
            bet.home_team_score = 1
            bet.away_team_score = 4
            session.flush()
            with self.assertRaises(TransactionConflict):
                engine.evaluate_all(series_id)

        with self.Session() as session:
            stored = session.get(UserSeriesBet, bet_id)
            self.assertEqual(stored.total_points, 0)
            self.assertIsNone(stored.evaluated_at)
            self.assertFalse(session.get(Series, series_id).is_evaluated)

        summary = engine.evaluate_all(series_id)
        self.assertEqual(summary.total_points_awarded, 0)
        self.assertEqual(self._stored_bet(bet_id), (1, 4, 0))


if __name__ == "__main__":
    unittest.main()
