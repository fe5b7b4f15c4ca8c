"""Shared utilities for scoring and vector similarity."""

from .scores import base_score, novelty_score, rating_score
from .similarity import cosine_similarity, cosine_similarity_matrix, weighted_average_normalized

__all__ = [
    "base_score",
    "novelty_score",
    "rating_score",
    "cosine_similarity",
    "cosine_similarity_matrix",
    "weighted_average_normalized",
]
