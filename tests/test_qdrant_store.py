"""
Qdrant Embedding Store Tests

Runs against qdrant-client's local in-memory mode, so no server is needed.
Covers upsert by item id, per-model collections and native filtering.
"""

import pytest

qdrant_client = pytest.importorskip("qdrant_client")

from conftest import MODEL_ID, make_item  # noqa: E402
from recommender.models.catalog import AvailabilityFilter, MediaType  # noqa: E402
from service.qdrant_filter import build_qdrant_filter  # noqa: E402
from service.services.qdrant_store import QdrantEmbeddingStore  # noqa: E402


@pytest.fixture
def store():
    store = QdrantEmbeddingStore(client=qdrant_client.QdrantClient(":memory:"))
    items = {
        item.item_id: item
        for item in [
            make_item("family", content_rating="PG"),
            make_item("teen", content_rating="PG-13"),
            make_item("adult", content_rating="R"),
            make_item("unrated", content_rating=None),
            make_item("kids-lib", library_id="lib-kids"),
        ]
    }
    store.save_embeddings(
        MODEL_ID,
        {
            "family": [1.0, 0.0],
            "adult": [0.8, 0.6],
            "teen": [0.6, 0.8],
            "unrated": [0.0, 1.0],
            "kids-lib": [0.96, 0.28],
        },
        items_by_id=items,
    )
    return store


def _ids(hits):
    return [item_id for item_id, _ in hits]


class TestQdrantEmbeddingStore:
    def test_supports_filtering(self, store):
        assert store.supports_filtering is True

    def test_search_orders_by_similarity(self, store):
        hits = store.search_similar([1.0, 0.0], MODEL_ID, 10)
        assert _ids(hits) == ["family", "kids-lib", "adult", "teen", "unrated"]
        assert hits[0][1] == pytest.approx(1.0)

    def test_get_embeddings(self, store):
        embeddings = store.get_embeddings(["family", "teen", "missing"], MODEL_ID)
        assert set(embeddings) == {"family", "teen"}
        assert embeddings["teen"] == pytest.approx([0.6, 0.8])

    def test_upsert_replaces_by_item_id(self, store):
        store.save_embeddings(MODEL_ID, {"family": [0.0, 1.0]})
        assert store.get_embeddings(["family"], MODEL_ID)["family"] == pytest.approx([0.0, 1.0])
        assert len(store.search_similar([1.0, 0.0], MODEL_ID, 10)) == 5

    def test_models_are_isolated(self, store):
        assert store.search_similar([1.0, 0.0], "other-model", 10) == []
        assert store.get_embeddings(["family"], "other-model") == {}

    def test_exclusions_pushed_down(self, store):
        hits = store.search_similar([1.0, 0.0], MODEL_ID, 10, excluded_ids={"family", "adult"})
        assert _ids(hits) == ["kids-lib", "teen", "unrated"]

    def test_availability_pushed_down(self, store):
        availability = AvailabilityFilter(
            enabled_library_ids=frozenset({"lib-main"}),
            max_parental_rating=13,
        )
        hits = store.search_similar([1.0, 0.0], MODEL_ID, 10, availability=availability)
        assert _ids(hits) == ["family", "teen", "unrated"]

    def test_media_type_pushed_down(self, store):
        show = make_item("show", media_type=MediaType.SERIES)
        store.save_embeddings(MODEL_ID, {"show": [1.0, 0.01]}, items_by_id={"show": show})

        movies = store.search_similar(
            [1.0, 0.0], MODEL_ID, 10, availability=AvailabilityFilter(media_type=MediaType.MOVIE)
        )
        series = store.search_similar(
            [1.0, 0.0], MODEL_ID, 10, availability=AvailabilityFilter(media_type=MediaType.SERIES)
        )
        assert "show" not in _ids(movies)
        assert len(movies) == 5
        assert _ids(series) == ["show"]

    def test_delete_model(self, store):
        assert store.delete_model(MODEL_ID) is True
        assert store.delete_model(MODEL_ID) is False
        assert store.search_similar([1.0, 0.0], MODEL_ID, 10) == []


def test_filter_is_none_without_constraints():
    assert build_qdrant_filter(None, set()) is None
    assert build_qdrant_filter(AvailabilityFilter(), None) is None
