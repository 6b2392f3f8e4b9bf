"""Admin entry point for evaluation passes.

Examples::

    python scripts/evaluate.py run match 12
    python scripts/evaluate.py run question 3 --user-id 7
    python scripts/evaluate.py pending 1
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from betleague.db.engine import get_sessionmaker, make_engine
from betleague.evaluation import EvaluationError, EventKind
from betleague.workflows import evaluate_event, pending_evaluations

logger = logging.getLogger("betleague.scripts.evaluate")


def _configure_logging() -> None:
    load_dotenv()
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evaluate league predictions.")
    parser.add_argument("--db-url", help="Database URL (defaults to DB_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Evaluate one event")
    run.add_argument("kind", choices=[kind.value for kind in EventKind])
    run.add_argument("event_id", type=int)
    run.add_argument("--user-id", type=int, help="Only re-score this user's prediction")
    run.add_argument(
        "--strict-rules",
        action="store_true",
        default=None,
        help="Fail on unknown evaluator types instead of skipping them",
    )

    pending = sub.add_parser("pending", help="List events waiting for evaluation")
    pending.add_argument("league_id", type=int)
    return parser


def main(argv: list[str] | None = None) -> int:
    _configure_logging()
    args = _build_parser().parse_args(argv)

    engine = make_engine(args.db_url)
    Session = get_sessionmaker(engine)
    try:
        if args.command == "pending":
            with Session() as session:
                pending = pending_evaluations(session, args.league_id)
            payload = {kind.value: ids for kind, ids in pending.items()}
        else:
            result = evaluate_event(
                Session,
                args.kind,
                args.event_id,
                args.user_id,
                strict_rules=args.strict_rules,
            )
            payload = result.to_dict()
    except EvaluationError as exc:
        logger.error("Evaluation failed: %s", exc)
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 75 if exc.retryable else 1
    finally:
        engine.dispose()

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
