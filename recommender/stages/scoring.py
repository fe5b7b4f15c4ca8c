"""
Per-candidate blended scoring: similarity, novelty, and community rating.

Builds a ScoredCandidate for each retrieved candidate given the user's genre
history and config, then orders the pool by base score.
"""

from collections import Counter
from typing import Iterable, List, Mapping, Tuple

from ..models.catalog import CatalogItem
from ..models.config import RecommendationConfig
from ..models.scoring import RetrievedCandidate, ScoredCandidate
from ..utils.scores import base_score, novelty_score, rating_score


def build_genre_history(watched_items: Iterable[CatalogItem]) -> Tuple[Counter, int]:
    """
    Genre frequency across watched items.

    Returns (genre -> occurrences, total genre occurrences).
    """
    counts: Counter = Counter()
    for item in watched_items:
        counts.update(item.genres)
    return counts, sum(counts.values())


def build_scored_candidate(
    candidate: RetrievedCandidate,
    genre_counts: Mapping[str, int],
    total_genres: int,
    config: RecommendationConfig,
) -> ScoredCandidate:
    """
    Compute novelty and rating scores for one candidate and blend with similarity.

    base = similarity_weight * sim + novelty_weight * novelty + rating_weight * rating.
    """
    novelty = novelty_score(candidate.item.genres, genre_counts, total_genres)
    rating = rating_score(candidate.item.community_rating)
    score = base_score(
        candidate.similarity,
        novelty,
        rating,
        config.similarity_weight,
        config.novelty_weight,
        config.rating_weight,
    )
    return ScoredCandidate(
        item=candidate.item,
        similarity=candidate.similarity,
        novelty=novelty,
        rating_score=rating,
        base_score=score,
        final_score=score,
    )


def score_candidates(
    candidates: List[RetrievedCandidate],
    genre_counts: Mapping[str, int],
    total_genres: int,
    config: RecommendationConfig,
) -> List[ScoredCandidate]:
    """
    Score every candidate and sort by base score (descending).

    The sort is stable, so equal scores keep retrieval (similarity) order. Each
    candidate's rank is its 1-based position in the result.
    """
    scored = [
        build_scored_candidate(c, genre_counts, total_genres, config)
        for c in candidates
    ]
    scored.sort(key=lambda s: s.base_score, reverse=True)
    for position, s in enumerate(scored, start=1):
        s.rank = position
    return scored
