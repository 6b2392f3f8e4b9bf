from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from betleague.db.engine import make_engine
from betleague.models import (
    Base,
    Evaluator,
    EvaluatorType,
    League,
    LeagueUser,
    Match,
    Player,
    Question,
    Series,
    SpecialBet,
    Team,
    TopScorerRankingVersion,
    User,
    UserBet,
    UserQuestionBet,
    UserSeriesBet,
    UserSpecialBet,
)
from betleague.workflows import (
    record_match_result,
    record_question_result,
    record_series_result,
    record_special_bet_result,
)

# (entity, rule id, points, config)
DEMO_EVALUATORS = [
    ("match", "exact_score", 5, None),
    ("match", "winner", 2, None),
    ("match", "score_difference", 3, None),
    ("match", "one_team_score", 1, None),
    (
        "match",
        "scorer",
        0,
        {"ranked_points": {"1": 2, "2": 3, "3": 4}, "unranked_points": 6},
    ),
    ("series", "series_exact", 20, None),
    ("series", "series_winner", 10, None),
    ("special", "exact_team", 15, None),
    ("special", "closest_value", 12, None),
    ("question", "question", 5, None),
]


def main() -> None:
    """Seed the development database with a demo league ready for evaluation."""
    engine = make_engine()

    # drop_all orders the drops by foreign key dependency
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    now = datetime.now(timezone.utc)
    kickoff = now - timedelta(days=1)

    with Session.begin() as session:
        league = League(name="Demo Hockey League", season="2026")
        alice = User(username="alice", email="Alice@Example.com")
        bob = User(username="bob", email="bob@example.com")
        session.add_all([league, alice, bob])
        session.flush()

        alice_member = LeagueUser(league_id=league.id, user_id=alice.id, is_admin=True)
        bob_member = LeagueUser(league_id=league.id, user_id=bob.id)
        session.add_all([alice_member, bob_member])

        for entity, rule_id, points, config in DEMO_EVALUATORS:
            session.add(
                Evaluator(
                    league_id=league.id,
                    evaluator_type_id=EvaluatorType.get_or_create(session, rule_id).id,
                    entity=entity,
                    name=rule_id.replace("_", " ").title(),
                    points=points,
                    config=config,
                )
            )

        home = Team(name="Sparta Praha", short_name="SPA")
        away = Team(name="HC Kometa Brno", short_name="KOM")
        session.add_all([home, away])
        session.flush()

        striker = Player(name="Roman Cervenka", position="F", team_id=home.id)
        defender = Player(name="Jakub Krejcik", position="D", team_id=away.id)
        session.add_all([striker, defender])
        session.flush()
        session.add(
            TopScorerRankingVersion(
                league_id=league.id,
                player_id=striker.id,
                ranking=1,
                effective_from=kickoff - timedelta(days=30),
            )
        )

        match = Match(
            league_id=league.id,
            home_team_id=home.id,
            away_team_id=away.id,
            date_time=kickoff,
            is_doubled=True,
        )
        series = Series(
            league_id=league.id,
            name="Quarterfinal",
            home_team_id=home.id,
            away_team_id=away.id,
            date_time=kickoff,
        )
        special = SpecialBet(league_id=league.id, name="Champion", date_time=kickoff)
        goals = SpecialBet(league_id=league.id, name="Goals in the final", date_time=kickoff)
        question = Question(
            league_id=league.id, text="Will the final go to overtime?", date_time=kickoff
        )
        session.add_all([match, series, special, goals, question])
        session.flush()

        session.add_all(
            [
                UserBet(
                    match_id=match.id,
                    league_user_id=alice_member.id,
                    home_score=3,
                    away_score=1,
                    scorer_id=striker.id,
                ),
                UserBet(
                    match_id=match.id,
                    league_user_id=bob_member.id,
                    home_score=2,
                    away_score=2,
                    no_scorer=True,
                ),
                UserSeriesBet(
                    series_id=series.id,
                    league_user_id=alice_member.id,
                    home_team_score=4,
                    away_team_score=2,
                ),
                UserSeriesBet(
                    series_id=series.id,
                    league_user_id=bob_member.id,
                    home_team_score=4,
                    away_team_score=1,
                ),
                UserSpecialBet(
                    special_bet_id=special.id,
                    league_user_id=alice_member.id,
                    team_result_id=home.id,
                ),
                UserSpecialBet(
                    special_bet_id=goals.id, league_user_id=alice_member.id, value=7
                ),
                UserSpecialBet(
                    special_bet_id=goals.id, league_user_id=bob_member.id, value=4
                ),
                UserQuestionBet(
                    question_id=question.id, league_user_id=alice_member.id, user_bet=True
                ),
                UserQuestionBet(
                    question_id=question.id, league_user_id=bob_member.id, user_bet=False
                ),
            ]
        )
        session.flush()

        record_match_result(
            session,
            match,
            home_regular_score=3,
            away_regular_score=1,
            scorer_goals={striker.id: 2},
        )
        record_series_result(session, series, home_team_score=4, away_team_score=2)
        record_special_bet_result(session, special, team_result_id=home.id)
        record_special_bet_result(session, goals, value=6)
        record_question_result(session, question, True)

    print("Development database seeded. Run scripts/evaluate.py pending 1 next.")


if __name__ == "__main__":
    main()
