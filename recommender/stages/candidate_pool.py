"""
Candidate retrieval — nearest neighbours of the taste vector, filtered.

Queries the embedding store for items closest to the taste vector, then drops
excluded (watched/disliked) and unavailable items (other media type, disabled
library, over the parental ceiling). Stores with native filtering get the constraints pushed into
the query; otherwise the pool is over-fetched and post-filtered.

The public entry point is retrieve_candidates.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..models.catalog import AvailabilityFilter, CatalogItem
from ..models.scoring import RetrievedCandidate
from ..stores import CatalogStore, EmbeddingStore

logger = logging.getLogger(__name__)


def query_limit(
    limit: int,
    excluded_ids: Set[str],
    availability: Optional[AvailabilityFilter],
    native_filtering: bool,
) -> int:
    """
    How many neighbours to request so that `limit` survive filtering.

    Native filtering: exactly `limit`. Post-filtering: `limit + |excluded|`,
    doubled when availability constraints also have to be applied afterwards.
    """
    if native_filtering:
        return limit
    requested = limit + len(excluded_ids)
    if availability is not None and availability.is_active:
        requested *= 2
    return requested


def _filter_query_results(
    query_results: List[Tuple[str, float]],
    items_by_id: Dict[str, CatalogItem],
    excluded_ids: Set[str],
    availability: Optional[AvailabilityFilter],
    limit: int,
) -> List[RetrievedCandidate]:
    """Join query hits with catalog metadata, drop excluded/unavailable items, cap at limit."""
    candidates: List[RetrievedCandidate] = []
    missing = 0
    for item_id, similarity in query_results:
        if item_id in excluded_ids:
            continue
        item = items_by_id.get(item_id)
        if item is None:
            missing += 1
            continue
        if availability is not None and not availability.allows(item):
            continue
        candidates.append(RetrievedCandidate(item=item, similarity=similarity))
        if len(candidates) >= limit:
            break
    if missing:
        logger.warning(
            "[candidate_pool] CATALOG_ITEM_MISSING missing=%s hits=%s",
            missing,
            len(query_results),
        )
    return candidates


def retrieve_candidates(
    taste_vector: Optional[Sequence[float]],
    excluded_ids: Set[str],
    limit: int,
    embedding_store: EmbeddingStore,
    catalog_store: CatalogStore,
    model_id: Optional[str],
    availability: Optional[AvailabilityFilter] = None,
) -> List[RetrievedCandidate]:
    """
    Return up to `limit` candidates ranked by similarity to the taste vector.

    No model configured or no taste vector is a cold start: returns [].
    """
    if not model_id:
        logger.info("[candidate_pool] NO_EMBEDDING_MODEL returning no candidates")
        return []
    if taste_vector is None or len(taste_vector) == 0:
        logger.info("[candidate_pool] NO_TASTE_VECTOR returning no candidates")
        return []
    if limit <= 0:
        return []

    native = bool(getattr(embedding_store, "supports_filtering", False))
    requested = query_limit(limit, excluded_ids, availability, native)

    if native:
        query_results = embedding_store.search_similar(
            taste_vector,
            model_id,
            requested,
            availability=availability,
            excluded_ids=excluded_ids,
        )
    else:
        query_results = embedding_store.search_similar(taste_vector, model_id, requested)

    items_by_id = catalog_store.get_items([item_id for item_id, _ in query_results])

    # Re-check constraints even when pushed down; catalog metadata is authoritative.
    candidates = _filter_query_results(
        query_results, items_by_id, excluded_ids, availability, limit
    )
    logger.info(
        "[candidate_pool] RETRIEVED candidates=%s requested=%s hits=%s native_filtering=%s",
        len(candidates),
        requested,
        len(query_results),
        native,
    )
    return candidates
