"""
Diversity selection — in-processing greedy loop over genre and network representation.

Diversity is recomputed against the actual evolving selection at every step, so a
slightly lower-scored but novel candidate can beat a higher-scored redundant one
(avoiding "the whole franchise" lists). Post-hoc reordering cannot do this.

At each step, for every remaining non-duplicate candidate:

    selection_score = base_score * (1 - d) + diversity_boost * d

and the single best is picked (first seen wins ties).
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence, Set

from ..models.scoring import ScoredCandidate

GENRE_SHARE = 0.6
NETWORK_SHARE = 0.4


def _genre_diversity(genres: Sequence[str], selected_genres: Dict[str, int]) -> float:
    overlap = sum(1 for g in genres if g in selected_genres)
    return 1 - overlap / len(genres)


def diversity_boost(
    candidate: ScoredCandidate,
    selected_genres: Dict[str, int],
    selected_networks: Optional[Dict[str, int]],
    selection_count: int,
) -> float:
    """
    Diversity of a candidate against what is already selected (0–1).

    Genre share (0.6): 1 - overlapping/total genres; no genres is neutral (0.3).
    Network share (0.4), when networks are tracked: 1 - network count/selected;
    no network or nothing selected yet is neutral (0.2). When networks are not
    tracked, the 0.4 share goes to genre diversity instead (neutral 0.2).
    """
    genres = candidate.item.genres
    boost = 0.0

    if genres:
        boost += _genre_diversity(genres, selected_genres) * GENRE_SHARE
    else:
        boost += 0.3

    if selected_networks is not None:
        network = candidate.item.network
        if network and selection_count > 0:
            boost += (1 - selected_networks.get(network, 0) / selection_count) * NETWORK_SHARE
        else:
            boost += 0.2
    elif genres:
        boost += _genre_diversity(genres, selected_genres) * NETWORK_SHARE
    else:
        boost += 0.2

    return boost


def select_diverse(
    candidates: List[ScoredCandidate],
    target_count: int,
    diversity_weight: float,
    use_network_diversity: Optional[bool] = None,
) -> List[ScoredCandidate]:
    """
    Select up to target_count candidates, balancing base score against diversity.

    Args:
        candidates: Scored candidates (base_score set). Not mutated.
        target_count: Number to select (K).
        diversity_weight: Blend factor d in [0, 1].
        use_network_diversity: Track network representation. None = track when any
            candidate has a network (series).

    Returns:
        Selected candidates in pick order, as copies with diversity_boost,
        final_score (the selection score) and 1-based selection_rank set.
    """
    if use_network_diversity is None:
        use_network_diversity = any(c.item.network for c in candidates)

    selected: List[ScoredCandidate] = []
    selected_genres: Counter = Counter()
    selected_networks: Optional[Counter] = Counter() if use_network_diversity else None
    selected_titles: Set[str] = set()

    # Arena: candidates stay in place; picks are removed from the index set.
    remaining: Set[int] = set(range(len(candidates)))
    title_keys = [c.item.title_key() for c in candidates]

    while len(selected) < target_count and remaining:
        best_idx: Optional[int] = None
        best_score = float("-inf")
        best_boost = 0.0

        for idx in range(len(candidates)):
            if idx not in remaining or title_keys[idx] in selected_titles:
                continue
            candidate = candidates[idx]
            boost = diversity_boost(
                candidate, selected_genres, selected_networks, len(selected)
            )
            score = candidate.base_score * (1 - diversity_weight) + boost * diversity_weight
            if score > best_score:
                best_score = score
                best_idx = idx
                best_boost = boost

        if best_idx is None:
            # Everything left duplicates an already-selected title
            break

        remaining.discard(best_idx)
        chosen = candidates[best_idx].model_copy(
            update={
                "diversity_boost": best_boost,
                "final_score": best_score,
                "selection_rank": len(selected) + 1,
            }
        )
        selected.append(chosen)
        selected_titles.add(title_keys[best_idx])
        selected_genres.update(chosen.item.genres)
        if selected_networks is not None and chosen.item.network:
            selected_networks[chosen.item.network] += 1

    return selected
