from typing import Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .evaluation import (
    EvaluationEngine,
    EvaluationSummary,
    EventKind,
    RuleRegistry,
    UserEvaluation,
)
from .models import (
    Match,
    MatchScorer,
    Question,
    Series,
    SpecialBet,
    SpecialBetAdvancedTeam,
)

EvaluationResult = Union[EvaluationSummary, UserEvaluation]


def record_match_result(
    session: Session,
    match: Match,
    *,
    home_regular_score: int,
    away_regular_score: int,
    home_final_score: Optional[int] = None,
    away_final_score: Optional[int] = None,
    is_overtime: bool = False,
    is_shootout: bool = False,
    home_advanced: Optional[bool] = None,
    scorer_goals: Optional[dict[int, int]] = None,
) -> Match:
    """Store the result of ``match`` and reset its evaluated flag.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    match : Match
        Persisted match to update.
    home_regular_score, away_regular_score : int
        Scores at the end of regulation time.
    home_final_score, away_final_score : Optional[int]
        Scores after overtime/shootout. Default to the regulation scores.
    is_overtime, is_shootout : bool
        How the match was decided.
    home_advanced : Optional[bool]
        For playoff games, whether the home side advanced.
    scorer_goals : Optional[dict[int, int]]
        ``{player_id: goals}``. Replaces the stored scorers when given.

    Returns
    -------
    Match
        The updated match. It stays unevaluated until a full evaluation pass.
    """
    if match.id is None:
        raise ValueError("Match must be persisted before recording a result")
    if min(home_regular_score, away_regular_score) < 0:
        raise ValueError("Scores cannot be negative")

    match.home_regular_score = home_regular_score
    match.away_regular_score = away_regular_score
    match.home_final_score = (
        home_final_score if home_final_score is not None else home_regular_score
    )
    match.away_final_score = (
        away_final_score if away_final_score is not None else away_regular_score
    )
    match.is_overtime = is_overtime
    match.is_shootout = is_shootout
    match.home_advanced = home_advanced
    if scorer_goals is not None:
        match.scorers.clear()
        session.flush()
        for player_id, goals in scorer_goals.items():
            match.scorers.append(MatchScorer(scorer_id=player_id, number_of_goals=goals))
    match.is_evaluated = False

    session.flush()
    return match


def record_series_result(
    session: Session, series: Series, *, home_team_score: int, away_team_score: int
) -> Series:
    """Store the final series score and reset the evaluated flag."""
    if series.id is None:
        raise ValueError("Series must be persisted before recording a result")
    if min(home_team_score, away_team_score) < 0:
        raise ValueError("Scores cannot be negative")

    series.home_team_score = home_team_score
    series.away_team_score = away_team_score
    series.is_evaluated = False

    session.flush()
    return series


def record_special_bet_result(
    session: Session,
    special_bet: SpecialBet,
    *,
    team_result_id: Optional[int] = None,
    player_result_id: Optional[int] = None,
    value: Optional[int] = None,
    advanced_team_ids: Optional[Iterable[int]] = None,
) -> SpecialBet:
    """Store the result of a special bet and reset its evaluated flag.

    ``advanced_team_ids`` is only meaningful for group stage bets and replaces
    the previously stored advancing teams when given.
    """
    if special_bet.id is None:
        raise ValueError("Special bet must be persisted before recording a result")
    if team_result_id is None and player_result_id is None and value is None:
        raise ValueError("A special bet result needs a team, a player or a value")

    special_bet.team_result_id = team_result_id
    special_bet.player_result_id = player_result_id
    special_bet.value = value
    if advanced_team_ids is not None:
        special_bet.advanced_teams.clear()
        session.flush()
        for team_id in dict.fromkeys(advanced_team_ids):
            special_bet.advanced_teams.append(SpecialBetAdvancedTeam(team_id=team_id))
    special_bet.is_evaluated = False

    session.flush()
    return special_bet


def record_question_result(session: Session, question: Question, result: bool) -> Question:
    """Store the answer to ``question`` and reset its evaluated flag."""
    if question.id is None:
        raise ValueError("Question must be persisted before recording a result")

    question.result = result
    question.is_evaluated = False

    session.flush()
    return question


def evaluate_event(
    session_factory: sessionmaker,
    kind: Union[EventKind, str],
    event_id: int,
    user_id: Optional[int] = None,
    *,
    registry: Optional[RuleRegistry] = None,
    strict_rules: Optional[bool] = None,
) -> EvaluationResult:
    """Evaluate one event of ``kind``.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory used to open the evaluation transaction. The pass commits on
        its own; do not call this while holding uncommitted changes to the
        same rows in another session.
    kind : Union[EventKind, str]
        ``"match"``, ``"series"``, ``"special"`` or ``"question"``.
    event_id : int
        Primary key of the event.
    user_id : Optional[int], default: None
        When given, only this user's prediction is re-scored and the event's
        evaluated flag is left unchanged.
    registry : Optional[RuleRegistry], default: None
        Custom rule registry.
    strict_rules : Optional[bool], default: None
        Fail on unknown rule ids instead of skipping them.

    Returns
    -------
    EvaluationSummary | UserEvaluation
        Summary of the full pass, or the single user's result.
    """
    engine = EvaluationEngine(
        session_factory, kind, registry=registry, strict_rules=strict_rules
    )
    if user_id is None:
        return engine.evaluate_all(event_id)
    return engine.evaluate_one(event_id, user_id)


def evaluate_match(
    session_factory: sessionmaker, match_id: int, user_id: Optional[int] = None, **kwargs
) -> EvaluationResult:
    return evaluate_event(session_factory, EventKind.MATCH, match_id, user_id, **kwargs)


def evaluate_series(
    session_factory: sessionmaker, series_id: int, user_id: Optional[int] = None, **kwargs
) -> EvaluationResult:
    return evaluate_event(session_factory, EventKind.SERIES, series_id, user_id, **kwargs)


def evaluate_special_bet(
    session_factory: sessionmaker,
    special_bet_id: int,
    user_id: Optional[int] = None,
    **kwargs,
) -> EvaluationResult:
    return evaluate_event(
        session_factory, EventKind.SPECIAL, special_bet_id, user_id, **kwargs
    )


def evaluate_question(
    session_factory: sessionmaker, question_id: int, user_id: Optional[int] = None, **kwargs
) -> EvaluationResult:
    return evaluate_event(
        session_factory, EventKind.QUESTION, question_id, user_id, **kwargs
    )


def pending_evaluations(session: Session, league_id: int) -> dict[EventKind, list[int]]:
    """Return ids of events that have a result but are not evaluated yet.

    This mirrors the ``ResultRecorded`` state: admins use it to see which
    events still need an evaluation pass.
    """
    pending: dict[EventKind, list[int]] = {}

    pending[EventKind.MATCH] = list(
        session.scalars(
            select(Match.id)
            .where(
                Match.league_id == league_id,
                Match.is_evaluated.is_(False),
                Match.home_regular_score.is_not(None),
                Match.away_regular_score.is_not(None),
            )
            .order_by(Match.id)
        )
    )
    pending[EventKind.SERIES] = list(
        session.scalars(
            select(Series.id)
            .where(
                Series.league_id == league_id,
                Series.is_evaluated.is_(False),
                Series.home_team_score.is_not(None),
                Series.away_team_score.is_not(None),
            )
            .order_by(Series.id)
        )
    )
    pending[EventKind.SPECIAL] = list(
        session.scalars(
            select(SpecialBet.id)
            .where(
                SpecialBet.league_id == league_id,
                SpecialBet.is_evaluated.is_(False),
                (SpecialBet.team_result_id.is_not(None))
                | (SpecialBet.player_result_id.is_not(None))
                | (SpecialBet.value.is_not(None)),
            )
            .order_by(SpecialBet.id)
        )
    )
    pending[EventKind.QUESTION] = list(
        session.scalars(
            select(Question.id)
            .where(
                Question.league_id == league_id,
                Question.is_evaluated.is_(False),
                Question.result.is_not(None),
                Question.deleted_at.is_(None),
            )
            .order_by(Question.id)
        )
    )
    return pending
