"""Shared fixtures and builders for recommender and service tests."""

from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from recommender.engine import RecommendationEngine
from recommender.models.catalog import CatalogItem, MediaType
from recommender.models.config import EngineConfig
from recommender.models.scoring import ScoredCandidate
from recommender.models.watch import WatchSignal
from service.services import (
    InMemoryCatalogStore,
    InMemoryEmbeddingStore,
    InMemoryWatchHistoryStore,
    SqlRecommendationStore,
)

MODEL_ID = "test-embed-3d"
BASE_TIME = datetime(2025, 1, 1, 20, 0, 0)


def make_item(
    item_id: str,
    genres: Optional[List[str]] = None,
    rating: Optional[float] = None,
    title: Optional[str] = None,
    year: Optional[int] = 2020,
    network: Optional[str] = None,
    media_type: MediaType = MediaType.MOVIE,
    library_id: Optional[str] = "lib-main",
    content_rating: Optional[str] = None,
) -> CatalogItem:
    return CatalogItem(
        item_id=item_id,
        media_type=media_type,
        title=title if title is not None else f"Title {item_id}",
        year=year,
        genres=genres or [],
        community_rating=rating,
        content_rating=content_rating,
        library_id=library_id,
        network=network,
    )


def make_signal(
    item_id: str,
    user_id: str = "u1",
    play_count: int = 1,
    is_favorite: bool = False,
    days_ago: Optional[int] = 1,
    media_type: MediaType = MediaType.MOVIE,
) -> WatchSignal:
    return WatchSignal(
        user_id=user_id,
        item_id=item_id,
        media_type=media_type,
        play_count=play_count,
        is_favorite=is_favorite,
        last_played_at=BASE_TIME - timedelta(days=days_ago) if days_ago is not None else None,
    )


def make_scored(item: CatalogItem, base_score: float, rank: int = 0) -> ScoredCandidate:
    return ScoredCandidate(
        item=item,
        rank=rank,
        similarity=base_score,
        novelty=0.5,
        rating_score=0.4,
        base_score=base_score,
        final_score=base_score,
    )


@pytest.fixture
def sql_store() -> SqlRecommendationStore:
    """Recommendation store on a fresh in-memory SQLite database."""
    return SqlRecommendationStore.from_url("sqlite://")


@pytest.fixture
def library():
    """
    A small movie library in 3 dimensions:
    axis 0 = sci-fi, axis 1 = horror, axis 2 = comedy.
    """
    catalog = InMemoryCatalogStore(
        [
            make_item("w-scifi-1", ["Science Fiction"], 8.0),
            make_item("w-scifi-2", ["Science Fiction", "Adventure"], 7.0),
            make_item("w-horror-1", ["Horror"], 6.5),
            make_item("c-scifi-1", ["Science Fiction"], 8.5),
            make_item("c-scifi-2", ["Science Fiction", "Thriller"], 7.5),
            make_item("c-scifi-3", ["Science Fiction"], 7.0),
            make_item("c-horror-1", ["Horror"], 7.0),
            make_item("c-horror-2", ["Horror", "Thriller"], 6.0),
            make_item("c-comedy-1", ["Comedy"], 6.8),
            make_item("c-mature", ["Horror"], 7.2, content_rating="R"),
            make_item("c-other-lib", ["Science Fiction"], 9.0, library_id="lib-kids"),
        ]
    )
    embeddings = InMemoryEmbeddingStore(
        {
            MODEL_ID: {
                "w-scifi-1": [1.0, 0.0, 0.0],
                "w-scifi-2": [0.9, 0.1, 0.0],
                "w-horror-1": [0.0, 1.0, 0.0],
                "c-scifi-1": [0.95, 0.05, 0.0],
                "c-scifi-2": [0.9, 0.2, 0.0],
                "c-scifi-3": [0.85, 0.0, 0.1],
                "c-horror-1": [0.1, 0.9, 0.0],
                "c-horror-2": [0.2, 0.8, 0.1],
                "c-comedy-1": [0.0, 0.1, 0.9],
                "c-mature": [0.3, 0.9, 0.0],
                "c-other-lib": [1.0, 0.0, 0.0],
            }
        }
    )
    history = InMemoryWatchHistoryStore()
    history.add_signal(make_signal("w-scifi-1", play_count=3, is_favorite=True, days_ago=10))
    history.add_signal(make_signal("w-scifi-2", play_count=1, days_ago=2))
    history.add_signal(make_signal("w-horror-1", play_count=2, days_ago=1))
    return embeddings, catalog, history


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig.from_dict(
        {
            "embedding_model_id": MODEL_ID,
            "enabled_library_ids": ["lib-main"],
            "movie": {"selection": {"selected_count": 4}},
        }
    )


@pytest.fixture
def engine(library, engine_config, sql_store) -> RecommendationEngine:
    embeddings, catalog, history = library
    return RecommendationEngine(engine_config, embeddings, catalog, history, sql_store)
