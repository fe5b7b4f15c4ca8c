"""
Evidence — the watched items that best explain each selected candidate.

For every selected candidate, the nearest watched items (cosine similarity over
the same watched pool the taste profile used) are kept and labelled by the
watched item's own signal: favorite > highly_rated (replays / many episodes) >
watched. Pure function of the selection and the watch snapshot.
"""

import logging
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..models.run import Evidence, EvidenceType
from ..models.scoring import ScoredCandidate
from ..models.watch import WatchSignal
from ..utils.similarity import cosine_similarity_matrix

logger = logging.getLogger(__name__)


def evidence_type_for(signal: WatchSignal, highly_rated_play_count: int) -> EvidenceType:
    """Label a watched item by how strongly the user engaged with it."""
    if signal.is_favorite:
        return EvidenceType.FAVORITE
    if signal.play_count > highly_rated_play_count:
        return EvidenceType.HIGHLY_RATED
    return EvidenceType.WATCHED


def compute_evidence(
    selected: Sequence[ScoredCandidate],
    selected_embeddings: Mapping[str, List[float]],
    watched: Sequence[WatchSignal],
    watched_embeddings: Mapping[str, List[float]],
    limit: int = 3,
    highly_rated_play_count: int = 1,
) -> Dict[str, List[Evidence]]:
    """
    Up to `limit` evidence rows per selected item_id, most similar first.

    Selected items without an embedding get no evidence. All similarities are
    computed in one matrix product.
    """
    if not selected or limit <= 0:
        return {}

    # One entry per watched item; the first (highest-priority) signal wins
    pool: List[WatchSignal] = []
    seen = set()
    for signal in watched:
        if signal.item_id in watched_embeddings and signal.item_id not in seen:
            seen.add(signal.item_id)
            pool.append(signal)
    targets = [c for c in selected if c.item_id in selected_embeddings]
    if not pool or not targets:
        return {}

    sims = cosine_similarity_matrix(
        np.asarray([selected_embeddings[c.item_id] for c in targets]),
        np.asarray([watched_embeddings[s.item_id] for s in pool]),
    )

    evidence: Dict[str, List[Evidence]] = {}
    for row, candidate in enumerate(targets):
        # Stable sort on negated similarity keeps watch-history order on ties
        order = np.argsort(-sims[row], kind="stable")[:limit]
        evidence[candidate.item_id] = [
            Evidence(
                similar_item_id=pool[col].item_id,
                similarity=float(sims[row, col]),
                evidence_type=evidence_type_for(pool[col], highly_rated_play_count),
            )
            for col in order
        ]

    missing = len(selected) - len(targets)
    if missing:
        logger.warning("[evidence] CANDIDATE_EMBEDDING_MISSING missing=%s selected=%s", missing, len(selected))
    return evidence
