#!/usr/bin/env python3
"""
Generate recommendation runs for one user or every user.

Reads catalog, watch history and embeddings per the service config (.env),
writes runs to DATABASE_URL.

Usage:
  From repo root:
    # One user, movies
    python -m service.scripts.generate_recommendations --user alice

    # Every user, series, 4 workers
    python -m service.scripts.generate_recommendations --all --media-type series --workers 4

    # Wipe all recommendation data and regenerate movies and series for everyone
    python -m service.scripts.generate_recommendations --all --rebuild
"""

import argparse
import logging
import signal
import sys
import threading

from recommender.errors import ConfigurationError
from recommender.models.catalog import MediaType

from ..jobs import BatchResult, generate_for_users, rebuild_all
from ..state import get_state


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate taste-based recommendations")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--user", help="Generate for a single user id")
    target.add_argument("--all", action="store_true", help="Generate for every user with watch history")
    parser.add_argument(
        "--media-type",
        choices=[m.value for m in MediaType],
        default=None,
        help="Media type (default: movie; --rebuild without it does both)",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Clear existing recommendation data first (per user with --user, everything with --all)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Selection size (default: the media type's configured selected_count)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Users generated in parallel (default: MAX_WORKERS env, else 1)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    state = get_state()
    is_valid, errors = state.config.validate()
    if not is_valid:
        for error in errors:
            print(error, file=sys.stderr)
        return 1

    engine = state.engine
    workers = args.workers or state.config.max_workers

    try:
        if args.user:
            media_type = MediaType(args.media_type or MediaType.MOVIE.value)
            if args.rebuild:
                run = engine.regenerate_recommendations(args.user, media_type, target_count=args.count)
            else:
                run = engine.generate_recommendations(args.user, target_count=args.count, media_type=media_type)
            print(
                f"Run {run.run_id}: {run.status.value}, "
                f"{run.selected_count} selected of {run.candidate_count} candidates in {run.duration_ms} ms"
            )
            for candidate in engine.get_recommendations(run.run_id):
                reasons = ", ".join(e.similar_item_id for e in candidate.evidence)
                print(
                    f"  {candidate.selection_rank:>3}. {candidate.item_id} "
                    f"score={candidate.final_score:.3f} because of: {reasons or '-'}"
                )
            return 0

        user_ids = state.watch_history_store.list_user_ids()
        cancel_event = threading.Event()
        # Ctrl-C skips users that have not started; in-flight runs finish
        signal.signal(signal.SIGINT, lambda *_: cancel_event.set())
        if args.rebuild:
            media_types = [MediaType(args.media_type)] if args.media_type else list(MediaType)
            results = rebuild_all(
                engine, user_ids, media_types, max_workers=workers, cancel_event=cancel_event
            )
        else:
            media_type = MediaType(args.media_type or MediaType.MOVIE.value)
            results = {
                media_type: generate_for_users(
                    engine,
                    user_ids,
                    media_type,
                    max_workers=workers,
                    cancel_event=cancel_event,
                    target_count=args.count,
                )
            }
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    total = BatchResult()
    for media_type, result in results.items():
        print(
            f"{media_type.value}: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        total.merge(result)
    if total.cleared_runs:
        print(f"Cleared {total.cleared_runs} previous runs")
    for user_id, error in total.failed.items():
        print(f"  {user_id}: {error}", file=sys.stderr)
    return 1 if total.failed else 0


if __name__ == "__main__":
    sys.exit(main())
