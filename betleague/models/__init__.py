from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .league import (  # noqa: F401
    League,
    LeagueUser,
    Player,
    Team,
    TopScorerRankingVersion,
    User,
)
from .evaluator import Evaluator, EvaluatorType  # noqa: F401
from .match import Match, MatchScorer, UserBet  # noqa: F401
from .series import Series, UserSeriesBet  # noqa: F401
from .special_bet import SpecialBet, SpecialBetAdvancedTeam, UserSpecialBet  # noqa: F401
from .question import Question, UserQuestionBet  # noqa: F401

__all__ = [
    "Base",
    "User",
    "League",
    "LeagueUser",
    "Team",
    "Player",
    "TopScorerRankingVersion",
    "EvaluatorType",
    "Evaluator",
    "Match",
    "MatchScorer",
    "UserBet",
    "Series",
    "UserSeriesBet",
    "SpecialBet",
    "SpecialBetAdvancedTeam",
    "UserSpecialBet",
    "Question",
    "UserQuestionBet",
]
