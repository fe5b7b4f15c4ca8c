"""
Taste Profile Tests

Watch-history ordering, per-item weights and the normalized taste vector.
"""

import numpy as np
import pytest

from conftest import make_signal
from recommender.stages.taste_profile import (
    build_taste_vector,
    compute_profile_weights,
    favorite_boost,
    prepare_watch_history,
    profile_watch_pool,
)


class TestPrepareWatchHistory:
    def test_favorites_then_play_count_then_recency(self):
        signals = [
            make_signal("recent", days_ago=1),
            make_signal("old", days_ago=30),
            make_signal("undated", days_ago=None),
            make_signal("rewatched", play_count=4, days_ago=20),
            make_signal("favorite", is_favorite=True, days_ago=50),
        ]
        ordered = [s.item_id for s in prepare_watch_history(signals, limit=10)]
        assert ordered == ["favorite", "rewatched", "recent", "old", "undated"]

    def test_limit_caps_after_ordering(self):
        signals = [make_signal(f"m{i}", days_ago=i + 1) for i in range(5)]
        signals.append(make_signal("fav", is_favorite=True, days_ago=100))
        capped = prepare_watch_history(signals, limit=2)
        assert [s.item_id for s in capped] == ["fav", "m0"]


class TestProfileWeights:
    def test_position_decay(self):
        watched = [make_signal("a"), make_signal("b")]
        weights = compute_profile_weights(watched, {"a": [1.0, 0.0], "b": [0.0, 1.0]})
        assert [w.weight for w in weights] == pytest.approx([1.0, 0.85])

    def test_favorite_boost(self):
        watched = [make_signal("a", is_favorite=True), make_signal("b")]
        weights = compute_profile_weights(watched, {"a": [1.0, 0.0], "b": [0.0, 1.0]})
        assert weights[0].weight == pytest.approx(1.8)

    @pytest.mark.parametrize("count,expected", [(1, 1.8), (10, 1.8), (11, 1.5), (20, 1.5), (21, 1.3)])
    def test_favorite_boost_shrinks_with_many_favorites(self, count, expected):
        assert favorite_boost(count) == expected

    def test_play_count_boost_only_for_rewatches(self):
        watched = [make_signal("a", play_count=3), make_signal("b", play_count=1)]
        weights = compute_profile_weights(watched, {"a": [1.0, 0.0], "b": [0.0, 1.0]})
        # log2(4) / log2(4) = 1 -> 1 + 0.4
        assert weights[0].weight == pytest.approx(1.4)
        assert weights[1].weight == pytest.approx(0.85)

    def test_rating_boost_above_threshold(self):
        watched = [make_signal("a"), make_signal("b")]
        embeddings = {"a": [1.0, 0.0], "b": [0.0, 1.0]}
        weights = compute_profile_weights(watched, embeddings, {"a": 9.0, "b": 7.4})
        assert weights[0].weight == pytest.approx(1.1)
        assert weights[1].weight == pytest.approx(0.85)

    def test_missing_embedding_is_skipped_but_keeps_position(self, caplog):
        watched = [make_signal("no-embedding"), make_signal("b")]
        with caplog.at_level("WARNING"):
            weights = compute_profile_weights(watched, {"b": [0.0, 1.0]})
        assert [w.signal.item_id for w in weights] == ["b"]
        assert weights[0].weight == pytest.approx(0.85)
        assert "EMBEDDING_SKIPPED" in caplog.text


class TestBuildTasteVector:
    def test_unit_norm(self):
        watched = [make_signal("a", is_favorite=True), make_signal("b"), make_signal("c", play_count=5)]
        embeddings = {"a": [3.0, 0.0, 0.0], "b": [0.0, 2.0, 0.0], "c": [0.5, 0.5, 0.5]}
        vector = build_taste_vector(watched, embeddings)
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    def test_idempotent(self):
        watched = [make_signal("a"), make_signal("b", play_count=2)]
        embeddings = {"a": [1.0, 0.2], "b": [0.1, 1.0]}
        assert build_taste_vector(watched, embeddings) == build_taste_vector(watched, embeddings)

    def test_leans_towards_heavier_items(self):
        watched = [make_signal("fav", is_favorite=True), make_signal("other")]
        vector = build_taste_vector(watched, {"fav": [1.0, 0.0], "other": [0.0, 1.0]})
        assert vector[0] > vector[1]

    def test_no_history_returns_none(self):
        assert build_taste_vector([], {}) is None

    def test_no_embeddings_returns_none(self):
        assert build_taste_vector([make_signal("a")], {}) is None

    def test_cancelling_embeddings_return_none(self):
        watched = [make_signal("a", days_ago=None), make_signal("b", days_ago=None)]
        # Second position weight; a and b then contribute w and -w
        w = 1 - (1 / 2) * 0.3
        embeddings = {"a": [w, 0.0], "b": [-1.0, 0.0]}
        assert build_taste_vector(watched, embeddings) is None

    def test_mixed_dimensions_raise(self):
        watched = [make_signal("a"), make_signal("b")]
        with pytest.raises(ValueError):
            build_taste_vector(watched, {"a": [1.0, 0.0], "b": [1.0, 0.0, 0.0]})


def test_profile_watch_pool_only_includes_embedded_items():
    watched = [make_signal("a"), make_signal("b")]
    assert profile_watch_pool(watched, {"b": [1.0]}) == {"b": [1.0]}
