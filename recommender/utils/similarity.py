"""
Similarity utilities — cosine similarity and weighted vector averaging.
"""

from typing import List, Sequence

import numpy as np


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors."""
    if v1 is None or v2 is None or len(v1) == 0 or len(v2) == 0:
        return 0.0
    v1 = np.asarray(v1, dtype=np.float64)
    v2 = np.asarray(v2, dtype=np.float64)
    dot_product = np.dot(v1, v2)
    norm_product = np.linalg.norm(v1) * np.linalg.norm(v2)
    return float(dot_product / norm_product) if norm_product > 0 else 0.0


def cosine_similarity_matrix(queries: np.ndarray, pool: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of every query row against every pool row.

    Zero-norm rows score 0.0 against everything.
    """
    queries = np.atleast_2d(np.asarray(queries, dtype=np.float64))
    pool = np.atleast_2d(np.asarray(pool, dtype=np.float64))
    q_norms = np.linalg.norm(queries, axis=1, keepdims=True)
    p_norms = np.linalg.norm(pool, axis=1, keepdims=True)
    q_unit = np.divide(queries, q_norms, out=np.zeros_like(queries), where=q_norms > 0)
    p_unit = np.divide(pool, p_norms, out=np.zeros_like(pool), where=p_norms > 0)
    return q_unit @ p_unit.T


def weighted_average_normalized(
    vectors: Sequence[Sequence[float]],
    weights: Sequence[float],
) -> List[float]:
    """
    Weighted average of vectors projected onto the unit sphere.

    sum(w_i * v_i) / sum(w_i), then divided by its L2 norm. A zero-norm average is
    returned unmodified (all zeros); callers treat it as "no usable profile".
    """
    if len(vectors) == 0:
        raise ValueError("Cannot average an empty set of vectors")
    if len(vectors) != len(weights):
        raise ValueError(f"Got {len(vectors)} vectors but {len(weights)} weights")
    matrix = np.asarray(vectors, dtype=np.float64)
    w = np.asarray(weights, dtype=np.float64)
    total = w.sum()
    if total <= 0:
        return [0.0] * matrix.shape[1]
    averaged = (w[:, None] * matrix).sum(axis=0) / total
    norm = np.linalg.norm(averaged)
    if norm > 0:
        averaged = averaged / norm
    return averaged.tolist()
