from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from betleague.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head", database_url: Optional[str] = None) -> None:
    """Apply the league schema migrations up to ``target_revision``."""
    # alembic/env.py reads the URL override from ``-x db_url=...``
    cmd_opts = argparse.Namespace(x=[f"db_url={database_url}"]) if database_url else None
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"), cmd_opts=cmd_opts)
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables(database_url: Optional[str] = None) -> None:
    engine = make_engine(database_url)
    try:
        tables = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("League tables:", ", ".join(tables))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or upgrade the league database.")
    parser.add_argument("--revision", default="head", help="Alembic target revision")
    parser.add_argument("--db-url", help="Database URL (defaults to DB_URL)")
    args = parser.parse_args()

    upgrade_db(args.revision, args.db_url)
    print_tables(args.db_url)


if __name__ == "__main__":
    main()
