"""
Taste-based recommendation engine.

Builds a taste vector from a user's watch history, retrieves nearest
neighbours from an embedding store, scores them on similarity, novelty and
community rating, greedily selects a diverse list, and persists the run with
evidence explaining each pick.
"""

from .engine import RecommendationEngine
from .errors import ConfigurationError, PersistenceError, RecommendationError, RunStateError
from .models import (
    AvailabilityFilter,
    CatalogItem,
    EngineConfig,
    Evidence,
    EvidenceType,
    MediaType,
    RecommendationConfig,
    RecommendationRun,
    RunOutcome,
    RunStatus,
    StoredCandidate,
    TasteVector,
    UserPreferences,
    WatchSignal,
)
from .stores import CatalogStore, EmbeddingStore, RecommendationStore, WatchHistoryStore

__all__ = [
    "AvailabilityFilter",
    "CatalogItem",
    "CatalogStore",
    "ConfigurationError",
    "EmbeddingStore",
    "EngineConfig",
    "Evidence",
    "EvidenceType",
    "MediaType",
    "PersistenceError",
    "RecommendationConfig",
    "RecommendationEngine",
    "RecommendationError",
    "RecommendationRun",
    "RecommendationStore",
    "RunOutcome",
    "RunStateError",
    "RunStatus",
    "StoredCandidate",
    "TasteVector",
    "UserPreferences",
    "WatchHistoryStore",
    "WatchSignal",
]
