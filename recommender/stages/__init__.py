"""Pipeline stages: taste profile, candidate retrieval, scoring, diversity selection, evidence."""

from .candidate_pool import retrieve_candidates
from .diversity import diversity_boost, select_diverse
from .evidence import compute_evidence, evidence_type_for
from .outcome import build_run_outcome
from .scoring import build_genre_history, score_candidates
from .taste_profile import build_taste_vector, compute_profile_weights, prepare_watch_history

__all__ = [
    "build_genre_history",
    "build_run_outcome",
    "build_taste_vector",
    "compute_evidence",
    "compute_profile_weights",
    "diversity_boost",
    "evidence_type_for",
    "prepare_watch_history",
    "retrieve_candidates",
    "score_candidates",
    "select_diverse",
]
