"""Application state: stores and the recommendation engine, wired from ServerConfig."""

import logging
from typing import Optional

from recommender.engine import RecommendationEngine
from recommender.stores import EmbeddingStore

from .config import ServerConfig, get_config
from .services import (
    InMemoryCatalogStore,
    InMemoryWatchHistoryStore,
    JsonEmbeddingStore,
    QdrantEmbeddingStore,
    SqlRecommendationStore,
)

logger = logging.getLogger(__name__)


class AppState:
    """Global application state."""

    def __init__(self, config: ServerConfig):
        self.config = config

        # Embedding store: Qdrant when QDRANT_URL is set, else JSON files
        self.embedding_store = self._create_embedding_store(config)
        logger.info("[startup] Embedding store: %s", type(self.embedding_store).__name__)

        self.catalog_store = (
            InMemoryCatalogStore.from_json(config.catalog_json_path)
            if config.catalog_json_path
            else InMemoryCatalogStore()
        )
        self.watch_history_store = (
            InMemoryWatchHistoryStore.from_json(config.watch_history_json_path)
            if config.watch_history_json_path
            else InMemoryWatchHistoryStore()
        )
        self.recommendation_store = SqlRecommendationStore.from_url(config.database_url)
        logger.info("[startup] Recommendation store: %s", config.database_url.split("@")[-1])

        self.engine = RecommendationEngine(
            config.engine_config(),
            self.embedding_store,
            self.catalog_store,
            self.watch_history_store,
            self.recommendation_store,
        )

    def _create_embedding_store(self, config: ServerConfig) -> EmbeddingStore:
        if config.qdrant_url:
            return QdrantEmbeddingStore(qdrant_url=config.qdrant_url)
        return JsonEmbeddingStore(config.embeddings_dir)


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        config = get_config()
        _state = AppState(config)
    return _state
