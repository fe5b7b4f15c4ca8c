"""
Score helpers — rating, novelty and base-score curves shared by movies and series.
"""

from typing import Iterable, Mapping, Optional

# Neutral score for a missing community rating: neither rewarded nor penalized.
NEUTRAL_RATING_SCORE = 0.4

# Neutral novelty for a candidate without genre data.
NEUTRAL_NOVELTY_SCORE = 0.5

# Candidates with fewer than this share of unseen genres are in the novelty sweet spot.
NOVELTY_SWEET_SPOT_MAX = 0.7


def rating_score(rating: Optional[float]) -> float:
    """
    Tiered 0–1 score for a 0–10 community rating.

    Ratings are clamped to [0, 10] (bad data such as 101.0 scores like 10.0).

        8.0–10.0 -> 0.8–1.0
        7.0–8.0  -> 0.6–0.8
        6.0–7.0  -> 0.4–0.6
        5.0–6.0  -> 0.2–0.4
        0.0–5.0  -> 0.0–0.2
        None     -> 0.4
    """
    if rating is None:
        return NEUTRAL_RATING_SCORE

    clamped = min(max(float(rating), 0.0), 10.0)

    if clamped >= 8:
        return 0.8 + (clamped - 8) * 0.1
    if clamped >= 7:
        return 0.6 + (clamped - 7) * 0.2
    if clamped >= 6:
        return 0.4 + (clamped - 6) * 0.2
    if clamped >= 5:
        return 0.2 + (clamped - 5) * 0.2
    return clamped / 25


def novelty_score(
    genres: Iterable[str],
    watched_genre_counts: Mapping[str, int],
    total_watched_genres: int,
) -> float:
    """
    Novelty of a candidate's genres against the user's genre history (0–1).

    Per-genre novelty is 1 - count/total, averaged across the candidate's genres.
    The share of genres never seen in history then picks the band:

        some new, some familiar (0 < ratio < 0.7) -> 0.5–0.9
        mostly new (ratio >= 0.7)                 -> 0.3–0.5
        all familiar (ratio == 0)                 -> 0.4–0.6
    """
    genres = list(genres)
    if not genres:
        return NEUTRAL_NOVELTY_SCORE

    if total_watched_genres == 0:
        per_genre = [0.5 for _ in genres]
    else:
        per_genre = [1 - watched_genre_counts.get(g, 0) / total_watched_genres for g in genres]
    avg_novelty = sum(per_genre) / len(per_genre)

    novel_genre_count = sum(1 for g in genres if g not in watched_genre_counts)
    novelty_ratio = novel_genre_count / len(genres)

    if 0 < novelty_ratio < NOVELTY_SWEET_SPOT_MAX:
        return 0.5 + avg_novelty * 0.4
    if novelty_ratio >= NOVELTY_SWEET_SPOT_MAX:
        return 0.3 + avg_novelty * 0.2
    return 0.4 + avg_novelty * 0.2


def base_score(
    similarity: float,
    novelty: float,
    rating: float,
    similarity_weight: float,
    novelty_weight: float,
    rating_weight: float,
) -> float:
    """Weighted blend of similarity, novelty and rating (before diversity)."""
    return similarity_weight * similarity + novelty_weight * novelty + rating_weight * rating
