"""
Score Curve Tests

Rating tiers, novelty bands, base-score blending and cosine helpers.

Run:
----
    pytest tests/test_scores.py -v
"""

from collections import Counter

import numpy as np
import pytest

from recommender.utils.scores import base_score, novelty_score, rating_score
from recommender.utils.similarity import (
    cosine_similarity,
    cosine_similarity_matrix,
    weighted_average_normalized,
)


class TestRatingScore:
    @pytest.mark.parametrize(
        "rating,expected",
        [
            (None, 0.4),
            (10.0, 1.0),
            (8.0, 0.8),
            (7.5, 0.7),
            (7.0, 0.6),
            (6.5, 0.5),
            (5.0, 0.2),
            (2.5, 0.1),
            (0.0, 0.0),
        ],
    )
    def test_tiers(self, rating, expected):
        assert rating_score(rating) == pytest.approx(expected)

    def test_out_of_range_ratings_are_clamped(self):
        assert rating_score(101.0) == pytest.approx(1.0)
        assert rating_score(-3.0) == pytest.approx(0.0)

    def test_monotonic_across_tier_boundaries(self):
        ratings = [x / 10 for x in range(0, 101)]
        scores = [rating_score(r) for r in ratings]
        assert all(a <= b + 1e-12 for a, b in zip(scores, scores[1:]))


class TestNoveltyScore:
    def test_no_genres_is_neutral(self):
        assert novelty_score([], Counter({"Drama": 3}), 3) == pytest.approx(0.5)

    def test_empty_history_uses_half_per_genre(self):
        # Every genre is unseen (ratio 1.0): 0.3 + 0.5 * 0.2
        assert novelty_score(["Drama", "Comedy"], Counter(), 0) == pytest.approx(0.4)

    def test_all_familiar_genres(self):
        history = Counter({"Drama": 3, "Comedy": 1})
        # avg = ((1 - 3/4) + (1 - 1/4)) / 2 = 0.5 -> 0.4 + 0.5 * 0.2
        assert novelty_score(["Drama", "Comedy"], history, 4) == pytest.approx(0.5)

    def test_sweet_spot_mix_scores_highest(self):
        history = Counter({"Drama": 4})
        mixed = novelty_score(["Drama", "Western"], history, 4)
        # avg = (0 + 1) / 2 = 0.5, ratio 0.5 -> 0.5 + 0.5 * 0.4
        assert mixed == pytest.approx(0.7)
        assert mixed > novelty_score(["Drama"], history, 4)
        assert mixed > novelty_score(["Western"], history, 4)

    def test_mostly_new_band(self):
        history = Counter({"Drama": 2})
        # ratio 1.0, avg 1.0 -> 0.3 + 1.0 * 0.2
        assert novelty_score(["Western", "Musical"], history, 2) == pytest.approx(0.5)


class TestBaseScore:
    def test_weighted_blend(self):
        assert base_score(0.9, 0.5, 0.8, 0.4, 0.2, 0.2) == pytest.approx(0.36 + 0.1 + 0.16)

    def test_weights_are_not_normalized(self):
        assert base_score(1.0, 1.0, 1.0, 1.0, 1.0, 1.0) == pytest.approx(3.0)


class TestSimilarity:
    def test_cosine_similarity(self):
        assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0, 0], [1, 0]) == 0.0
        sims = cosine_similarity_matrix(np.array([[0.0, 0.0]]), np.array([[1.0, 0.0], [0.0, 1.0]]))
        assert sims.tolist() == [[0.0, 0.0]]

    def test_weighted_average_is_unit_norm(self):
        vector = weighted_average_normalized([[1.0, 0.0], [0.0, 1.0]], [3.0, 1.0])
        assert np.linalg.norm(vector) == pytest.approx(1.0)
        assert vector[0] > vector[1]

    def test_cancelling_vectors_return_zero(self):
        vector = weighted_average_normalized([[1.0, 0.0], [-1.0, 0.0]], [1.0, 1.0])
        assert vector == [0.0, 0.0]

    def test_mismatched_inputs_raise(self):
        with pytest.raises(ValueError):
            weighted_average_normalized([], [])
        with pytest.raises(ValueError):
            weighted_average_normalized([[1.0, 0.0]], [1.0, 2.0])
