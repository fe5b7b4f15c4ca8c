"""
Candidate Retrieval Tests

Nearest-neighbour retrieval with exclusions and availability, on both the
post-filter path (in-memory store) and the native-filter path.
"""

from typing import List, Tuple

import pytest

from conftest import MODEL_ID, make_item
from recommender.models.catalog import AvailabilityFilter, MediaType, parental_age
from recommender.stages.candidate_pool import query_limit, retrieve_candidates
from service.services import InMemoryCatalogStore, InMemoryEmbeddingStore


@pytest.fixture
def stores():
    catalog = InMemoryCatalogStore(
        [
            make_item("near", ["Drama"]),
            make_item("mid", ["Drama"], content_rating="PG-13"),
            make_item("far", ["Drama"], content_rating="R"),
            make_item("kids-lib", ["Drama"], library_id="lib-kids"),
            make_item("unrated", ["Drama"], content_rating=None),
        ]
    )
    embeddings = InMemoryEmbeddingStore(
        {
            MODEL_ID: {
                "near": [1.0, 0.0],
                "kids-lib": [0.99, 0.1],
                "mid": [0.8, 0.6],
                "unrated": [0.6, 0.8],
                "far": [0.0, 1.0],
                "not-in-catalog": [0.95, 0.05],
            }
        }
    )
    return embeddings, catalog


class RecordingNativeStore:
    """Embedding store that claims native filtering and records the query."""

    supports_filtering = True

    def __init__(self, hits: List[Tuple[str, float]]):
        self.hits = hits
        self.calls = []

    def search_similar(self, query_vector, model_id, limit, *, availability=None, excluded_ids=None):
        self.calls.append({"limit": limit, "availability": availability, "excluded_ids": excluded_ids})
        return self.hits[:limit]


class TestQueryLimit:
    def test_native_requests_exact_limit(self):
        active = AvailabilityFilter(max_parental_rating=13)
        assert query_limit(10, {"a", "b"}, active, native_filtering=True) == 10

    def test_post_filter_over_fetches(self):
        assert query_limit(10, {"a", "b"}, None, native_filtering=False) == 12
        active = AvailabilityFilter(enabled_library_ids=frozenset({"lib"}))
        assert query_limit(10, {"a", "b"}, active, native_filtering=False) == 24


class TestRetrieveCandidates:
    def test_ordered_by_similarity(self, stores):
        embeddings, catalog = stores
        candidates = retrieve_candidates([1.0, 0.0], set(), 10, embeddings, catalog, MODEL_ID)
        assert [c.item.item_id for c in candidates] == ["near", "kids-lib", "mid", "unrated", "far"]
        sims = [c.similarity for c in candidates]
        assert sims == sorted(sims, reverse=True)

    def test_excluded_items_never_returned(self, stores):
        embeddings, catalog = stores
        candidates = retrieve_candidates([1.0, 0.0], {"near", "mid"}, 10, embeddings, catalog, MODEL_ID)
        ids = {c.item.item_id for c in candidates}
        assert not ids & {"near", "mid"}

    def test_unknown_catalog_items_are_dropped(self, stores, caplog):
        embeddings, catalog = stores
        with caplog.at_level("WARNING"):
            candidates = retrieve_candidates([1.0, 0.0], set(), 10, embeddings, catalog, MODEL_ID)
        assert "not-in-catalog" not in {c.item.item_id for c in candidates}
        assert "CATALOG_ITEM_MISSING" in caplog.text

    def test_availability_post_filter(self, stores):
        embeddings, catalog = stores
        availability = AvailabilityFilter(
            enabled_library_ids=frozenset({"lib-main"}),
            max_parental_rating=13,
        )
        candidates = retrieve_candidates(
            [1.0, 0.0], set(), 10, embeddings, catalog, MODEL_ID, availability=availability
        )
        assert [c.item.item_id for c in candidates] == ["near", "mid", "unrated"]

    def test_other_media_type_filtered_out(self, stores):
        embeddings, catalog = stores
        catalog.add_items([make_item("series-near", ["Drama"], media_type=MediaType.SERIES)])
        embeddings.save_embeddings(MODEL_ID, {"series-near": [1.0, 0.01]})

        movies = retrieve_candidates(
            [1.0, 0.0], set(), 10, embeddings, catalog, MODEL_ID,
            availability=AvailabilityFilter(media_type=MediaType.MOVIE),
        )
        series = retrieve_candidates(
            [1.0, 0.0], set(), 10, embeddings, catalog, MODEL_ID,
            availability=AvailabilityFilter(media_type=MediaType.SERIES),
        )
        assert "series-near" not in [c.item.item_id for c in movies]
        assert len(movies) == 5
        assert [c.item.item_id for c in series] == ["series-near"]

    def test_truncates_to_limit(self, stores):
        embeddings, catalog = stores
        # Active availability doubles the request to 4 hits; 3 survive
        availability = AvailabilityFilter(max_parental_rating=18)
        candidates = retrieve_candidates(
            [1.0, 0.0], set(), 2, embeddings, catalog, MODEL_ID, availability=availability
        )
        assert [c.item.item_id for c in candidates] == ["near", "kids-lib"]

    @pytest.mark.parametrize("vector,model_id", [(None, MODEL_ID), ([], MODEL_ID), ([1.0, 0.0], None)])
    def test_cold_start_returns_empty(self, stores, vector, model_id):
        embeddings, catalog = stores
        assert retrieve_candidates(vector, set(), 10, embeddings, catalog, model_id) == []

    def test_native_store_receives_constraints(self, stores):
        _, catalog = stores
        native = RecordingNativeStore([("near", 0.99), ("far", 0.2)])
        availability = AvailabilityFilter(max_parental_rating=13)
        candidates = retrieve_candidates(
            [1.0, 0.0], {"mid"}, 5, native, catalog, MODEL_ID, availability=availability
        )
        assert native.calls == [{"limit": 5, "availability": availability, "excluded_ids": {"mid"}}]
        # Catalog metadata is re-checked even when the store filters
        assert [c.item.item_id for c in candidates] == ["near"]


class TestParentalAge:
    @pytest.mark.parametrize(
        "rating,age",
        [("G", 0), ("PG", 10), ("PG-13", 13), ("R", 17), ("NC-17", 18), ("TV-MA", 17), ("tv-14", 14), (None, None), ("X-99", None)],
    )
    def test_mapping(self, rating, age):
        assert parental_age(rating) == age

    def test_unknown_rating_is_allowed(self):
        item = make_item("a", content_rating="Unrated-Cut")
        assert AvailabilityFilter(max_parental_rating=0).allows(item)
