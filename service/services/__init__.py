"""Backing stores: embeddings, catalog, watch history, recommendation runs."""

from .catalog_store import InMemoryCatalogStore
from .qdrant_store import QdrantEmbeddingStore
from .run_store import SqlRecommendationStore
from .vector_store import InMemoryEmbeddingStore, JsonEmbeddingStore
from .watch_history_store import InMemoryWatchHistoryStore

__all__ = [
    "InMemoryCatalogStore",
    "InMemoryEmbeddingStore",
    "InMemoryWatchHistoryStore",
    "JsonEmbeddingStore",
    "QdrantEmbeddingStore",
    "SqlRecommendationStore",
]
