"""Data models for the recommendation engine."""

from .catalog import AvailabilityFilter, CatalogItem, MediaType, ensure_items, parental_age
from .config import (
    DEFAULT_CONFIG,
    MOVIE_DEFAULTS,
    SERIES_DEFAULTS,
    EngineConfig,
    RecommendationConfig,
    resolve_config,
)
from .run import (
    Evidence,
    EvidenceType,
    RecommendationRun,
    RunOutcome,
    RunStatus,
    StoredCandidate,
    TasteVector,
)
from .scoring import RetrievedCandidate, ScoredCandidate
from .watch import UserPreferences, WatchSignal, order_watch_signals

__all__ = [
    "AvailabilityFilter",
    "CatalogItem",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "Evidence",
    "EvidenceType",
    "MOVIE_DEFAULTS",
    "MediaType",
    "RecommendationConfig",
    "RecommendationRun",
    "RetrievedCandidate",
    "RunOutcome",
    "RunStatus",
    "SERIES_DEFAULTS",
    "ScoredCandidate",
    "StoredCandidate",
    "TasteVector",
    "UserPreferences",
    "WatchSignal",
    "ensure_items",
    "order_watch_signals",
    "parental_age",
    "resolve_config",
]
