"""
Scoring models — candidates as they move through retrieval, scoring and selection.

Contains:
- RetrievedCandidate: a catalog item with its similarity to the taste vector
- ScoredCandidate: a candidate with all scoring components and, once picked, its selection rank
"""

from typing import Optional

from pydantic import BaseModel

from .catalog import CatalogItem


class RetrievedCandidate(BaseModel):
    """A nearest-neighbour hit joined with its catalog metadata."""

    item: CatalogItem
    similarity: float


class ScoredCandidate(BaseModel):
    """
    A candidate with all its scoring components.

    rank is the 1-based position in base-score order.
    base_score is the weighted similarity/novelty/rating blend and never changes.
    final_score starts equal to base_score; the diversity selector overwrites it
    with the selection score at the step the candidate was picked.
    """

    item: CatalogItem
    rank: int = 0
    similarity: float
    novelty: float
    rating_score: float
    base_score: float
    diversity_boost: float = 0.0
    final_score: float
    selection_rank: Optional[int] = None

    @property
    def item_id(self) -> str:
        return self.item.item_id

    @property
    def is_selected(self) -> bool:
        return self.selection_rank is not None
