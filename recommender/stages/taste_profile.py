"""
Taste profile — weighted average of watched-item embeddings.

Builds a single unit vector representing the user from their watch history.
Signals are ordered favorites first, then heavy rewatches, then recency; that
order decides which items survive the history cap and their position weight.
Each item's weight multiplies four factors:

    position   1.0 -> 0.7 across the list
    play count 1 + log2(pc + 1) / log2(max_pc + 1) * 0.4   (only when pc > 1)
    favorite   1.8 / 1.5 / 1.3 depending on how many favorites the user has
    rating     1 + (rating - 7) * 0.05                      (only when rating >= 7.5)

Weights are then capped at 3x the mean before averaging.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..models.watch import WatchSignal, order_watch_signals
from ..utils.similarity import weighted_average_normalized

logger = logging.getLogger(__name__)

POSITION_DECAY = 0.3
PLAY_COUNT_BOOST = 0.4
RATING_BOOST_THRESHOLD = 7.5
RATING_BOOST_PER_POINT = 0.05
WEIGHT_CAP_MULTIPLIER = 3.0


@dataclass
class WeightedEmbedding:
    """One watched item's contribution to the taste vector."""

    signal: WatchSignal
    embedding: List[float]
    weight: float


def favorite_boost(favorite_count: int) -> float:
    """Per-favorite multiplier; users with many favorites get a smaller boost per item."""
    if favorite_count > 20:
        return 1.3
    if favorite_count > 10:
        return 1.5
    return 1.8


def prepare_watch_history(signals: Sequence[WatchSignal], limit: int) -> List[WatchSignal]:
    """Order signals for profiling and apply the history cap."""
    return order_watch_signals(list(signals))[:limit]


def _item_weight(
    position: int,
    total: int,
    signal: WatchSignal,
    max_play_count: int,
    favorite_count: int,
    rating: Optional[float],
) -> float:
    weight = 1.0

    # 1. Position: gentle decay so items late in the list still count
    weight *= 1 - (position / total) * POSITION_DECAY

    # 2. Play count: normalized log boost so one rewatched item cannot dominate
    if signal.play_count > 1:
        normalized = math.log2(signal.play_count + 1) / math.log2(max_play_count + 1)
        weight *= 1 + normalized * PLAY_COUNT_BOOST

    # 3. Favorites
    if signal.is_favorite:
        weight *= favorite_boost(favorite_count)

    # 4. Critically acclaimed items, up to +15% at 10
    if rating is not None and rating >= RATING_BOOST_THRESHOLD:
        weight *= 1 + (min(rating, 10.0) - 7) * RATING_BOOST_PER_POINT

    return weight


def compute_profile_weights(
    watched: Sequence[WatchSignal],
    embeddings: Mapping[str, List[float]],
    ratings: Optional[Mapping[str, Optional[float]]] = None,
) -> List[WeightedEmbedding]:
    """
    Weight each watched item that has an embedding.

    watched must already be ordered (see prepare_watch_history). Items without an
    embedding are skipped; position still counts them so the decay is stable.
    """
    if not watched:
        return []
    ratings = ratings or {}

    total = len(watched)
    max_play_count = max(max(s.play_count for s in watched), 1)
    favorite_count = sum(1 for s in watched if s.is_favorite)

    weighted: List[WeightedEmbedding] = []
    skipped = 0
    for position, signal in enumerate(watched):
        embedding = embeddings.get(signal.item_id)
        if embedding is None or len(embedding) == 0:
            skipped += 1
            continue
        weight = _item_weight(
            position,
            total,
            signal,
            max_play_count,
            favorite_count,
            ratings.get(signal.item_id),
        )
        weighted.append(WeightedEmbedding(signal=signal, embedding=embedding, weight=weight))

    if skipped:
        logger.warning(
            "[taste_profile] EMBEDDING_SKIPPED skipped=%s total_watched=%s",
            skipped,
            total,
        )

    if not weighted:
        return []

    # Cap any weight at 3x the mean so no single item has outsized influence
    mean_weight = sum(w.weight for w in weighted) / len(weighted)
    cap = mean_weight * WEIGHT_CAP_MULTIPLIER
    for w in weighted:
        w.weight = min(w.weight, cap)

    logger.debug(
        "[taste_profile] WEIGHTS embeddings=%s favorites=%s max_play_count=%s mean_weight=%.3f",
        len(weighted),
        favorite_count,
        max_play_count,
        mean_weight,
    )
    return weighted


def build_taste_vector(
    watched: Sequence[WatchSignal],
    embeddings: Mapping[str, List[float]],
    ratings: Optional[Mapping[str, Optional[float]]] = None,
) -> Optional[List[float]]:
    """
    Compute the user's L2-normalized taste vector.

    Returns None when no watched item has an embedding, or when the weighted
    average has zero norm (e.g. opposing embeddings cancel out).
    """
    weighted = compute_profile_weights(watched, embeddings, ratings)
    if not weighted:
        logger.info("[taste_profile] PROFILE_NONE no watched item has an embedding")
        return None

    dims = {len(w.embedding) for w in weighted}
    if len(dims) > 1:
        raise ValueError(f"Embeddings have mixed dimensions: {sorted(dims)}")

    vector = weighted_average_normalized(
        [w.embedding for w in weighted],
        [w.weight for w in weighted],
    )
    if not np.any(vector):
        logger.info("[taste_profile] PROFILE_NONE weighted average has zero norm")
        return None
    return vector


def profile_watch_pool(
    watched: Sequence[WatchSignal],
    embeddings: Mapping[str, List[float]],
) -> Dict[str, List[float]]:
    """Embeddings of the watched items that fed the profile (the evidence pool)."""
    return {
        s.item_id: embeddings[s.item_id]
        for s in watched
        if embeddings.get(s.item_id) is not None and len(embeddings[s.item_id]) > 0
    }
