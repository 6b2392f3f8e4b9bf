"""Serializable transaction boundary for evaluation passes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..db.engine import SQLITE_BEGIN_MODE
from .errors import EvaluationError, PersistenceFailure, TransactionConflict

logger = logging.getLogger(__name__)

# SQLSTATE codes PostgreSQL uses when a transaction must be retried.
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_serialization_failure(exc: DBAPIError) -> bool:
    """Return ``True`` when ``exc`` reports a serialization conflict.

    PostgreSQL drivers expose the SQLSTATE as ``sqlstate`` (psycopg 3) or
    ``pgcode`` (psycopg2). SQLite reports a competing writer as a locked
    database.
    """
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    message = str(orig).lower()
    return "database is locked" in message or "could not serialize" in message


def serializable_options(session: Session) -> dict:
    """Execution options that make the session's next transaction serializable.

    SQLite transactions are serializable once they hold the write lock, so
    the transaction starts with ``BEGIN IMMEDIATE`` (see
    :func:`betleague.db.engine.make_engine`) and a competing writer fails
    with "database is locked" instead of interleaving.
    """
    if session.get_bind().dialect.name == "sqlite":
        return {SQLITE_BEGIN_MODE: "IMMEDIATE"}
    return {"isolation_level": "SERIALIZABLE"}


@contextmanager
def begin_serializable_transaction(
    session_factory: sessionmaker,
) -> Iterator[Session]:
    """Open a session whose transaction runs at SERIALIZABLE isolation.

    The transaction commits when the block exits normally. Any exception
    rolls it back, so a failed pass never leaves partial writes behind.
    Database errors are translated: serialization conflicts become
    :class:`TransactionConflict` (retryable) and every other SQLAlchemy error
    becomes :class:`PersistenceFailure`.
    """
    session = session_factory()
    try:
        # Must be the first use of the session for the options to apply to
        # this transaction.
        session.connection(execution_options=serializable_options(session))
        yield session
        session.commit()
    except EvaluationError as exc:
        session.rollback()
        logger.warning("Evaluation rolled back: %s", exc)
        raise
    except DBAPIError as exc:
        session.rollback()
        if is_serialization_failure(exc):
            logger.warning("Evaluation rolled back after a serialization conflict")
            raise TransactionConflict(
                "Evaluation conflicted with a concurrent transaction; retry the request"
            ) from exc
        logger.error("Evaluation rolled back after a database error: %s", exc)
        raise PersistenceFailure(f"Database error during evaluation: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Evaluation rolled back after a database error: %s", exc)
        raise PersistenceFailure(f"Database error during evaluation: {exc}") from exc
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "begin_serializable_transaction",
    "is_serialization_failure",
    "serializable_options",
]
