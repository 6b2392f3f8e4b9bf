"""Per event kind access to outcomes, predictions and evaluated flags.

Each :class:`EventAdapter` knows how one kind of event is stored. The
evaluation engine only talks to this interface, so a single orchestration
serves matches, series, special bets and questions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..models import (
    LeagueUser,
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
from .config import build_entries, get_evaluator_config
from .errors import EventNotFound, NoEvaluatorsConfigured, OutcomeNotRecorded
from .rules import RuleRegistry
from .types import (
    EvaluatorEntry,
    EventKind,
    MatchOutcome,
    MatchPrediction,
    Outcome,
    Prediction,
    QuestionOutcome,
    QuestionPrediction,
    ScoreResult,
    SeriesOutcome,
    SeriesPrediction,
    SpecialBetOutcome,
    SpecialBetPrediction,
)


@dataclass
class EventSnapshot:
    """Everything one evaluation pass reads, taken in a single transaction.

    Attributes
    ----------
    event : Any
        Locked ORM row of the event.
    outcome : Outcome
        Immutable outcome snapshot.
    rows : Sequence[Any]
        Locked, non-deleted prediction rows of the event.
    evaluators : list[EvaluatorEntry]
        Evaluator configuration applied to every prediction.
    multiplier : int
        Factor applied to each prediction's total.
    """

    event: Any
    outcome: Outcome
    rows: Sequence[Any]
    evaluators: list[EvaluatorEntry]
    multiplier: int = 1


class EventAdapter(ABC):
    """Storage access for one event kind."""

    kind: ClassVar[EventKind]
    event_model: ClassVar[type]
    prediction_model: ClassVar[type]
    event_key: ClassVar[str]
    """Name of the prediction column referencing the event."""

    # -------- reads --------

    def load_event(self, session: Session, event_id: int) -> Any:
        """Load and lock the event row."""
        model = self.event_model
        event = session.scalar(
            select(model).where(model.id == event_id).with_for_update()
        )
        if event is None:
            raise EventNotFound(self.kind.value, event_id)
        return event

    def load_predictions(self, session: Session, event: Any) -> Sequence[Any]:
        """Load and lock every non-deleted prediction row of ``event``."""
        model = self.prediction_model
        stmt = (
            select(model)
            .options(selectinload(model.league_user))
            .where(
                getattr(model, self.event_key) == event.id,
                model.deleted_at.is_(None),
            )
            .order_by(model.id.asc())
            .with_for_update(of=model)
        )
        return session.scalars(stmt).all()

    @abstractmethod
    def read_outcome(self, session: Session, event: Any, rows: Sequence[Any]) -> Outcome:
        """Return the outcome snapshot or raise :class:`OutcomeNotRecorded`."""

    @abstractmethod
    def to_prediction(self, row: Any) -> Prediction:
        """Snapshot a prediction row."""

    def evaluator_config(
        self, session: Session, event: Any, registry: Optional[RuleRegistry]
    ) -> list[EvaluatorEntry]:
        return get_evaluator_config(session, event.league_id, self.kind, registry)

    def multiplier(self, event: Any) -> int:
        return 1

    def user_id_of(self, row: Any) -> int:
        league_user: LeagueUser = row.league_user
        return league_user.user_id

    def fetch(
        self,
        session: Session,
        event_id: int,
        registry: Optional[RuleRegistry] = None,
    ) -> EventSnapshot:
        """Read event, outcome, predictions and evaluators in one transaction.

        Raises
        ------
        EventNotFound
            If no event has ``event_id``.
        OutcomeNotRecorded
            If the outcome fields needed for evaluation are missing.
        NoEvaluatorsConfigured
            If the league has no active evaluator for this kind.
        """
        event = self.load_event(session, event_id)
        rows = self.load_predictions(session, event)
        outcome = self.read_outcome(session, event, rows)
        evaluators = self.evaluator_config(session, event, registry)
        return EventSnapshot(
            event=event,
            outcome=outcome,
            rows=rows,
            evaluators=evaluators,
            multiplier=self.multiplier(event),
        )

    # -------- writes --------

    def write_score(self, row: Any, result: ScoreResult, evaluated_at: datetime) -> None:
        """Overwrite the stored score of a prediction row."""
        row.total_points = result.total_points
        row.score_breakdown = result.breakdown()
        row.evaluated_at = evaluated_at

    def set_evaluated(self, event: Any, evaluated: bool) -> None:
        event.is_evaluated = evaluated


class MatchAdapter(EventAdapter):
    kind = EventKind.MATCH
    event_model = Match
    prediction_model = UserBet
    event_key = "match_id"

    def read_outcome(self, session: Session, event: Match, rows: Sequence[Any]) -> MatchOutcome:
        if event.home_regular_score is None or event.away_regular_score is None:
            raise OutcomeNotRecorded(self.kind.value, event.id)
        return MatchOutcome(
            home_regular_score=event.home_regular_score,
            away_regular_score=event.away_regular_score,
            home_final_score=event.home_final_score,
            away_final_score=event.away_final_score,
            scorer_ids=frozenset(scorer.scorer_id for scorer in event.scorers),
            scorer_rankings=TopScorerRankingVersion.rankings_at(
                session, event.league_id, event.date_time
            ),
            is_overtime=event.is_overtime,
            is_shootout=event.is_shootout,
            is_playoff_game=bool(event.is_playoff_game),
            home_advanced=event.home_advanced,
        )

    def to_prediction(self, row: UserBet) -> MatchPrediction:
        return MatchPrediction(
            home_score=row.home_score,
            away_score=row.away_score,
            scorer_id=row.scorer_id,
            no_scorer=row.no_scorer,
            home_advanced=row.home_advanced,
            overtime=bool(row.overtime),
        )

    def multiplier(self, event: Match) -> int:
        return 2 if event.is_doubled else 1


class SeriesAdapter(EventAdapter):
    kind = EventKind.SERIES
    event_model = Series
    prediction_model = UserSeriesBet
    event_key = "series_id"

    def read_outcome(self, session: Session, event: Series, rows: Sequence[Any]) -> SeriesOutcome:
        if event.home_team_score is None or event.away_team_score is None:
            raise OutcomeNotRecorded(self.kind.value, event.id)
        return SeriesOutcome(
            home_team_score=event.home_team_score,
            away_team_score=event.away_team_score,
        )

    def to_prediction(self, row: UserSeriesBet) -> SeriesPrediction:
        return SeriesPrediction(
            home_team_score=row.home_team_score,
            away_team_score=row.away_team_score,
        )


class SpecialBetAdapter(EventAdapter):
    kind = EventKind.SPECIAL
    event_model = SpecialBet
    prediction_model = UserSpecialBet
    event_key = "special_bet_id"

    def read_outcome(
        self, session: Session, event: SpecialBet, rows: Sequence[Any]
    ) -> SpecialBetOutcome:
        if not event.has_result:
            raise OutcomeNotRecorded(self.kind.value, event.id)
        return SpecialBetOutcome(
            team_result_id=event.team_result_id,
            player_result_id=event.player_result_id,
            value=event.value,
            advanced_team_ids=frozenset(
                advanced.team_id
                for advanced in event.advanced_teams
                if advanced.deleted_at is None
            ),
            predicted_values=tuple(row.value for row in rows if row.value is not None),
        )

    def to_prediction(self, row: UserSpecialBet) -> SpecialBetPrediction:
        return SpecialBetPrediction(
            team_result_id=row.team_result_id,
            player_result_id=row.player_result_id,
            value=row.value,
        )

    def evaluator_config(
        self, session: Session, event: SpecialBet, registry: Optional[RuleRegistry]
    ) -> list[EvaluatorEntry]:
        # A bet pinned to one evaluator is scored by that evaluator alone.
        if event.evaluator_id is None:
            return super().evaluator_config(session, event, registry)
        evaluator = event.evaluator
        if evaluator is None or evaluator.deleted_at is not None:
            raise NoEvaluatorsConfigured(event.league_id, self.kind.value)
        return build_entries([evaluator], self.kind, registry)


class QuestionAdapter(EventAdapter):
    kind = EventKind.QUESTION
    event_model = Question
    prediction_model = UserQuestionBet
    event_key = "question_id"

    def load_event(self, session: Session, event_id: int) -> Question:
        question = super().load_event(session, event_id)
        if question.deleted_at is not None:
            raise EventNotFound(self.kind.value, event_id)
        return question

    def read_outcome(
        self, session: Session, event: Question, rows: Sequence[Any]
    ) -> QuestionOutcome:
        if event.result is None:
            raise OutcomeNotRecorded(self.kind.value, event.id)
        return QuestionOutcome(answer=event.result)

    def to_prediction(self, row: UserQuestionBet) -> QuestionPrediction:
        return QuestionPrediction(answer=row.user_bet)


ADAPTERS: dict[EventKind, EventAdapter] = {
    EventKind.MATCH: MatchAdapter(),
    EventKind.SERIES: SeriesAdapter(),
    EventKind.SPECIAL: SpecialBetAdapter(),
    EventKind.QUESTION: QuestionAdapter(),
}


def adapter_for(kind: EventKind | str) -> EventAdapter:
    """Return the shared adapter instance for ``kind``."""
    return ADAPTERS[EventKind(kind)]


__all__ = [
    "ADAPTERS",
    "EventAdapter",
    "EventSnapshot",
    "MatchAdapter",
    "QuestionAdapter",
    "SeriesAdapter",
    "SpecialBetAdapter",
    "adapter_for",
]
