"""
Run models — persisted results of one recommendation generation.

A RecommendationRun moves pending → completed | failed exactly once. The
candidates, selection flags and evidence of a completed run are handed to
storage as one RunOutcome so they land in the same transaction as the
status change.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .catalog import MediaType
from .scoring import ScoredCandidate


class RunStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class EvidenceType(str, Enum):
    FAVORITE = "favorite"
    HIGHLY_RATED = "highly_rated"
    WATCHED = "watched"


class TasteVector(BaseModel):
    """A user's L2-normalized taste profile for one media type."""

    user_id: str
    media_type: MediaType
    model_id: str
    vector: List[float]
    updated_at: datetime


class Evidence(BaseModel):
    """A watched item that explains why a candidate was selected."""

    similar_item_id: str
    similarity: float
    evidence_type: EvidenceType


class RecommendationRun(BaseModel):
    run_id: str
    user_id: str
    media_type: MediaType
    status: RunStatus
    candidate_count: int = 0
    selected_count: int = 0
    duration_ms: Optional[int] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class StoredCandidate(BaseModel):
    """A persisted candidate row, with evidence when it was selected."""

    candidate_id: str
    run_id: str
    item_id: str
    rank: int
    similarity: float
    novelty: float
    rating_score: float
    diversity_boost: float
    base_score: float
    final_score: float
    is_selected: bool
    selection_rank: Optional[int] = None
    evidence: List[Evidence] = Field(default_factory=list)


class RunOutcome(BaseModel):
    """
    Everything a completed run writes.

    candidates: the scored candidates to persist, in rank order, selected
    ones carrying selection_rank. evidence: selected item_id -> evidence rows.
    """

    candidate_count: int
    candidates: List[ScoredCandidate] = Field(default_factory=list)
    evidence: Dict[str, List[Evidence]] = Field(default_factory=dict)

    @property
    def selected_count(self) -> int:
        return sum(1 for c in self.candidates if c.is_selected)
