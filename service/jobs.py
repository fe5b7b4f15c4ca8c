"""
Batch generation jobs.

Users are independent, so a batch fans out over a thread pool. A failure for
one user is recorded and the batch moves on. A ConfigurationError would fail
every user: users that have not started are not run, in-flight runs finish,
and the error is raised. Cancellation is checked as each user starts: pending
users are skipped, in-flight runs finish.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from recommender.engine import RecommendationEngine
from recommender.errors import ConfigurationError
from recommender.models.catalog import MediaType

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a batch: run ids by user, failures by user, skipped users."""

    succeeded: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    cleared_runs: int = 0

    def merge(self, other: "BatchResult") -> None:
        self.succeeded.update(other.succeeded)
        self.failed.update(other.failed)
        self.skipped.extend(other.skipped)
        self.cleared_runs += other.cleared_runs


def generate_for_users(
    engine: RecommendationEngine,
    user_ids: Iterable[str],
    media_type: MediaType = MediaType.MOVIE,
    *,
    max_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    target_count: Optional[int] = None,
) -> BatchResult:
    """
    Generate a run for every user.

    Args:
        engine: Engine to generate with.
        user_ids: Users to process, in order.
        media_type: Media type for every run.
        max_workers: Thread pool size; 1 processes users sequentially.
        cancel_event: When set, users that have not started are skipped.
        target_count: Selection size override.

    Returns:
        BatchResult keyed by user id. Keys in succeeded map to run ids.
    """
    media_type = MediaType(media_type)
    user_ids = list(dict.fromkeys(user_ids))
    result = BatchResult()
    lock = threading.Lock()
    aborted = threading.Event()

    def _generate(user_id: str) -> None:
        if aborted.is_set():
            return
        if cancel_event is not None and cancel_event.is_set():
            with lock:
                result.skipped.append(user_id)
            return
        try:
            run = engine.generate_recommendations(
                user_id, target_count=target_count, media_type=media_type
            )
        except ConfigurationError:
            aborted.set()
            raise
        except Exception as e:
            logger.error("[jobs] USER_FAILED user=%s media_type=%s error=%s", user_id, media_type.value, e)
            with lock:
                result.failed[user_id] = str(e) or type(e).__name__
            return
        with lock:
            result.succeeded[user_id] = run.run_id

    logger.info(
        "[jobs] BATCH_STARTED users=%s media_type=%s workers=%s",
        len(user_ids),
        media_type.value,
        max_workers,
    )
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [executor.submit(_generate, user_id) for user_id in user_ids]
        for future in futures:
            # Surfaces ConfigurationError
            future.result()

    logger.info(
        "[jobs] BATCH_FINISHED succeeded=%s failed=%s skipped=%s",
        len(result.succeeded),
        len(result.failed),
        len(result.skipped),
    )
    return result


def rebuild_all(
    engine: RecommendationEngine,
    user_ids: Iterable[str],
    media_types: Sequence[MediaType] = (MediaType.MOVIE, MediaType.SERIES),
    *,
    max_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[MediaType, BatchResult]:
    """
    Clear all recommendation data, then regenerate every user for each media type.

    The count of cleared runs is reported on the first media type's result.
    """
    user_ids = list(user_ids)
    cleared = engine.clear_all_recommendations()
    results: Dict[MediaType, BatchResult] = {}
    for media_type in media_types:
        media_type = MediaType(media_type)
        results[media_type] = generate_for_users(
            engine,
            user_ids,
            media_type,
            max_workers=max_workers,
            cancel_event=cancel_event,
        )
    if results:
        next(iter(results.values())).cleared_runs = cleared
    return results
