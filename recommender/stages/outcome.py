"""
Run outcome — which scored candidates a completed run persists.

The top max_stored candidates by base score are kept, plus any selected
candidate ranked beyond that window (diversity can reach past it). Selected
candidates carry their selection-time scores.
"""

from typing import Dict, List

from ..models.run import Evidence, RunOutcome
from ..models.scoring import ScoredCandidate


def build_run_outcome(
    scored: List[ScoredCandidate],
    selected: List[ScoredCandidate],
    evidence: Dict[str, List[Evidence]],
    max_stored: int,
) -> RunOutcome:
    """Merge selection results into the scored pool and cap what is stored."""
    picks = {c.item_id: c for c in selected}
    to_store = [
        picks.get(c.item_id, c)
        for c in scored
        if c.rank <= max_stored or c.item_id in picks
    ]
    return RunOutcome(
        candidate_count=len(scored),
        candidates=to_store,
        evidence={item_id: rows for item_id, rows in evidence.items() if item_id in picks},
    )
