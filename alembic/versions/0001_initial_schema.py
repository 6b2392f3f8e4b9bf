"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
TS = sa.DateTime(timezone=True)


def _id() -> sa.Column:
    return sa.Column("id", ID, autoincrement=True, nullable=False)


def _scored_columns() -> list[sa.Column]:
    return [
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("score_breakdown", sa.JSON(), nullable=True),
        sa.Column("evaluated_at", TS, nullable=True),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
        sa.UniqueConstraint("username", name=op.f("uq_users_username")),
    )
    op.create_table(
        "leagues",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("season", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_leagues")),
    )
    op.create_table(
        "teams",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("short_name", sa.String(length=10), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_teams")),
    )
    op.create_table(
        "evaluator_types",
        _id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_evaluator_types")),
        sa.UniqueConstraint("name", name=op.f("uq_evaluator_types_name")),
    )
    op.create_table(
        "players",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("position", sa.String(length=5), nullable=True),
        sa.Column("team_id", ID, nullable=True),
        sa.ForeignKeyConstraint(
            ["team_id"], ["teams.id"],
            name=op.f("fk_players_team_id_teams"), ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_players")),
    )
    op.create_table(
        "league_users",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("user_id", ID, nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_league_users_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name=op.f("fk_league_users_user_id_users"), ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_league_users")),
        sa.UniqueConstraint("league_id", "user_id", name="uq_league_user"),
    )
    op.create_index(op.f("ix_league_users_league_id"), "league_users", ["league_id"])
    op.create_index(op.f("ix_league_users_user_id"), "league_users", ["user_id"])

    op.create_table(
        "top_scorer_ranking_versions",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("player_id", ID, nullable=False),
        sa.Column("ranking", sa.Integer(), nullable=False),
        sa.Column("effective_from", TS, nullable=False),
        sa.Column("effective_to", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_top_scorer_ranking_versions_league_id_leagues"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["player_id"], ["players.id"],
            name=op.f("fk_top_scorer_ranking_versions_player_id_players"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_top_scorer_ranking_versions")),
    )
    op.create_index(
        op.f("ix_top_scorer_ranking_versions_league_id"),
        "top_scorer_ranking_versions",
        ["league_id"],
    )
    op.create_index(
        op.f("ix_top_scorer_ranking_versions_player_id"),
        "top_scorer_ranking_versions",
        ["player_id"],
    )

    op.create_table(
        "evaluators",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("evaluator_type_id", ID, nullable=False),
        sa.Column("entity", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.CheckConstraint(
            "points >= 0", name=op.f("ck_evaluators_points_non_negative")
        ),
        sa.CheckConstraint(
            "entity IN ('match', 'series', 'special', 'question')",
            name=op.f("ck_evaluators_entity_known"),
        ),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_evaluators_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["evaluator_type_id"], ["evaluator_types.id"],
            name=op.f("fk_evaluators_evaluator_type_id_evaluator_types"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_evaluators")),
    )
    op.create_index(op.f("ix_evaluators_league_id"), "evaluators", ["league_id"])

    op.create_table(
        "matches",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("home_team_id", ID, nullable=False),
        sa.Column("away_team_id", ID, nullable=False),
        sa.Column("date_time", TS, nullable=False),
        sa.Column("home_regular_score", sa.Integer(), nullable=True),
        sa.Column("away_regular_score", sa.Integer(), nullable=True),
        sa.Column("home_final_score", sa.Integer(), nullable=True),
        sa.Column("away_final_score", sa.Integer(), nullable=True),
        sa.Column("is_overtime", sa.Boolean(), nullable=True),
        sa.Column("is_shootout", sa.Boolean(), nullable=True),
        sa.Column("is_playoff_game", sa.Boolean(), nullable=False),
        sa.Column("home_advanced", sa.Boolean(), nullable=True),
        sa.Column("is_doubled", sa.Boolean(), nullable=False),
        sa.Column("is_evaluated", sa.Boolean(), nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_matches_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["home_team_id"], ["teams.id"],
            name=op.f("fk_matches_home_team_id_teams"), ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["away_team_id"], ["teams.id"],
            name=op.f("fk_matches_away_team_id_teams"), ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_matches")),
    )
    op.create_index(op.f("ix_matches_league_id"), "matches", ["league_id"])

    op.create_table(
        "match_scorers",
        _id(),
        sa.Column("match_id", ID, nullable=False),
        sa.Column("scorer_id", ID, nullable=False),
        sa.Column("number_of_goals", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["match_id"], ["matches.id"],
            name=op.f("fk_match_scorers_match_id_matches"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["scorer_id"], ["players.id"],
            name=op.f("fk_match_scorers_scorer_id_players"), ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_match_scorers")),
        sa.UniqueConstraint("match_id", "scorer_id", name="uq_match_scorer"),
    )
    op.create_index(op.f("ix_match_scorers_match_id"), "match_scorers", ["match_id"])

    op.create_table(
        "user_bets",
        _id(),
        sa.Column("match_id", ID, nullable=False),
        sa.Column("league_user_id", ID, nullable=False),
        sa.Column("home_score", sa.Integer(), nullable=False),
        sa.Column("away_score", sa.Integer(), nullable=False),
        sa.Column("scorer_id", ID, nullable=True),
        sa.Column("no_scorer", sa.Boolean(), nullable=True),
        sa.Column("overtime", sa.Boolean(), nullable=False),
        sa.Column("home_advanced", sa.Boolean(), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("score_breakdown", sa.JSON(), nullable=True),
        sa.Column("evaluated_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.ForeignKeyConstraint(
            ["match_id"], ["matches.id"],
            name=op.f("fk_user_bets_match_id_matches"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["league_user_id"], ["league_users.id"],
            name=op.f("fk_user_bets_league_user_id_league_users"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["scorer_id"], ["players.id"],
            name=op.f("fk_user_bets_scorer_id_players"), ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_bets")),
        sa.UniqueConstraint("match_id", "league_user_id", name="uq_user_bet_member"),
    )
    op.create_index(op.f("ix_user_bets_match_id"), "user_bets", ["match_id"])
    op.create_index(op.f("ix_user_bets_league_user_id"), "user_bets", ["league_user_id"])

    op.create_table(
        "series",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("home_team_id", ID, nullable=False),
        sa.Column("away_team_id", ID, nullable=False),
        sa.Column("date_time", TS, nullable=False),
        sa.Column("home_team_score", sa.Integer(), nullable=True),
        sa.Column("away_team_score", sa.Integer(), nullable=True),
        sa.Column("is_evaluated", sa.Boolean(), nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_series_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["home_team_id"], ["teams.id"],
            name=op.f("fk_series_home_team_id_teams"), ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["away_team_id"], ["teams.id"],
            name=op.f("fk_series_away_team_id_teams"), ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_series")),
    )
    op.create_index(op.f("ix_series_league_id"), "series", ["league_id"])

    op.create_table(
        "user_series_bets",
        _id(),
        sa.Column("series_id", ID, nullable=False),
        sa.Column("league_user_id", ID, nullable=False),
        sa.Column("home_team_score", sa.Integer(), nullable=True),
        sa.Column("away_team_score", sa.Integer(), nullable=True),
        *_scored_columns(),
        sa.ForeignKeyConstraint(
            ["series_id"], ["series.id"],
            name=op.f("fk_user_series_bets_series_id_series"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["league_user_id"], ["league_users.id"],
            name=op.f("fk_user_series_bets_league_user_id_league_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_series_bets")),
        sa.UniqueConstraint(
            "series_id", "league_user_id", name="uq_user_series_bet_member"
        ),
    )
    op.create_index(
        op.f("ix_user_series_bets_series_id"), "user_series_bets", ["series_id"]
    )
    op.create_index(
        op.f("ix_user_series_bets_league_user_id"), "user_series_bets", ["league_user_id"]
    )

    op.create_table(
        "special_bets",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("evaluator_id", ID, nullable=True),
        sa.Column("date_time", TS, nullable=False),
        sa.Column("team_result_id", ID, nullable=True),
        sa.Column("player_result_id", ID, nullable=True),
        sa.Column("value", sa.Integer(), nullable=True),
        sa.Column("is_evaluated", sa.Boolean(), nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_special_bets_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["evaluator_id"], ["evaluators.id"],
            name=op.f("fk_special_bets_evaluator_id_evaluators"), ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["team_result_id"], ["teams.id"],
            name=op.f("fk_special_bets_team_result_id_teams"), ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["player_result_id"], ["players.id"],
            name=op.f("fk_special_bets_player_result_id_players"), ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_special_bets")),
    )
    op.create_index(op.f("ix_special_bets_league_id"), "special_bets", ["league_id"])

    op.create_table(
        "special_bet_advanced_teams",
        _id(),
        sa.Column("special_bet_id", ID, nullable=False),
        sa.Column("team_id", ID, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.ForeignKeyConstraint(
            ["special_bet_id"], ["special_bets.id"],
            name=op.f("fk_special_bet_advanced_teams_special_bet_id_special_bets"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["team_id"], ["teams.id"],
            name=op.f("fk_special_bet_advanced_teams_team_id_teams"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_special_bet_advanced_teams")),
        sa.UniqueConstraint(
            "special_bet_id", "team_id", name="uq_special_bet_advanced_team"
        ),
    )
    op.create_index(
        op.f("ix_special_bet_advanced_teams_special_bet_id"),
        "special_bet_advanced_teams",
        ["special_bet_id"],
    )

    op.create_table(
        "user_special_bets",
        _id(),
        sa.Column("special_bet_id", ID, nullable=False),
        sa.Column("league_user_id", ID, nullable=False),
        sa.Column("team_result_id", ID, nullable=True),
        sa.Column("player_result_id", ID, nullable=True),
        sa.Column("value", sa.Integer(), nullable=True),
        *_scored_columns(),
        sa.ForeignKeyConstraint(
            ["special_bet_id"], ["special_bets.id"],
            name=op.f("fk_user_special_bets_special_bet_id_special_bets"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["league_user_id"], ["league_users.id"],
            name=op.f("fk_user_special_bets_league_user_id_league_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["team_result_id"], ["teams.id"],
            name=op.f("fk_user_special_bets_team_result_id_teams"), ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["player_result_id"], ["players.id"],
            name=op.f("fk_user_special_bets_player_result_id_players"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_special_bets")),
        sa.UniqueConstraint(
            "special_bet_id", "league_user_id", name="uq_user_special_bet_member"
        ),
    )
    op.create_index(
        op.f("ix_user_special_bets_special_bet_id"), "user_special_bets", ["special_bet_id"]
    )
    op.create_index(
        op.f("ix_user_special_bets_league_user_id"), "user_special_bets", ["league_user_id"]
    )

    op.create_table(
        "questions",
        _id(),
        sa.Column("league_id", ID, nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("date_time", TS, nullable=False),
        sa.Column("result", sa.Boolean(), nullable=True),
        sa.Column("is_evaluated", sa.Boolean(), nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.Column("deleted_at", TS, nullable=True),
        sa.ForeignKeyConstraint(
            ["league_id"], ["leagues.id"],
            name=op.f("fk_questions_league_id_leagues"), ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_questions")),
    )
    op.create_index(op.f("ix_questions_league_id"), "questions", ["league_id"])

    op.create_table(
        "user_question_bets",
        _id(),
        sa.Column("question_id", ID, nullable=False),
        sa.Column("league_user_id", ID, nullable=False),
        sa.Column("user_bet", sa.Boolean(), nullable=True),
        *_scored_columns(),
        sa.ForeignKeyConstraint(
            ["question_id"], ["questions.id"],
            name=op.f("fk_user_question_bets_question_id_questions"), ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["league_user_id"], ["league_users.id"],
            name=op.f("fk_user_question_bets_league_user_id_league_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_user_question_bets")),
        sa.UniqueConstraint(
            "question_id", "league_user_id", name="uq_user_question_bet_member"
        ),
    )
    op.create_index(
        op.f("ix_user_question_bets_question_id"), "user_question_bets", ["question_id"]
    )
    op.create_index(
        op.f("ix_user_question_bets_league_user_id"),
        "user_question_bets",
        ["league_user_id"],
    )


def downgrade() -> None:
    for table in (
        "user_question_bets",
        "questions",
        "user_special_bets",
        "special_bet_advanced_teams",
        "special_bets",
        "user_series_bets",
        "series",
        "user_bets",
        "match_scorers",
        "matches",
        "evaluators",
        "top_scorer_ranking_versions",
        "league_users",
        "players",
        "evaluator_types",
        "teams",
        "leagues",
        "users",
    ):
        op.drop_table(table)
