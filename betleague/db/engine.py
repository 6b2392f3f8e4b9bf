import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .utils import resolve_sqlite_url

# Get DB url
load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)

# Execution option naming the SQLite BEGIN variant ("IMMEDIATE" or "EXCLUSIVE")
SQLITE_BEGIN_MODE = "sqlite_begin_mode"
_SQLITE_BEGIN_MODES = {"DEFERRED", "IMMEDIATE", "EXCLUSIVE"}


def make_engine(database_url: Optional[str] = None, echo: bool = False, **kwargs):
    url = database_url or DEFAULT_SQLITE_URL
    engine = create_engine(
        url,
        echo=echo,
        future=True,
        **kwargs,
    )
    if url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            # pysqlite only emits BEGIN before DML; take over so reads are
            # part of the transaction too
            dbapi_connection.isolation_level = None
            # ensure FK constraints are enforced on SQLite
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_sqlite_transaction(conn):
            mode = str(conn.get_execution_options().get(SQLITE_BEGIN_MODE, "")).upper()
            if mode in _SQLITE_BEGIN_MODES:
                conn.exec_driver_sql(f"BEGIN {mode}")
            else:
                conn.exec_driver_sql("BEGIN")

    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep results readable after the pass commits
        future=True,
    )
