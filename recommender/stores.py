"""
Store abstractions the engine reads from and writes to.

Implementations live in service/services: in-memory/JSON and Qdrant embedding
stores, JSON-backed catalog and watch history, and the SQLAlchemy
recommendation store. Swap via service config for local testing vs production.
"""

from typing import Dict, List, Optional, Protocol, Sequence, Set, Tuple

from .models.catalog import AvailabilityFilter, CatalogItem, MediaType
from .models.run import RecommendationRun, RunOutcome, RunStatus, StoredCandidate, TasteVector
from .models.watch import UserPreferences, WatchSignal


class EmbeddingStore(Protocol):
    """Protocol for per-item, per-model embedding storage and nearest-neighbour search."""

    # True when search_similar applies availability and exclusions inside the query.
    supports_filtering: bool

    def get_embeddings(self, item_ids: Sequence[str], model_id: str) -> Dict[str, List[float]]:
        """Fetch embeddings for the given items. Items without an embedding are omitted."""
        ...

    def save_embeddings(
        self,
        model_id: str,
        embeddings: Dict[str, List[float]],
        *,
        items_by_id: Optional[Dict[str, CatalogItem]] = None,
    ) -> None:
        """Upsert embeddings keyed by (item_id, model_id). items_by_id supplies filter metadata."""
        ...

    def search_similar(
        self,
        query_vector: Sequence[float],
        model_id: str,
        limit: int,
        *,
        availability: Optional[AvailabilityFilter] = None,
        excluded_ids: Optional[Set[str]] = None,
    ) -> List[Tuple[str, float]]:
        """
        Nearest neighbours by cosine similarity, best first, as (item_id, similarity).

        Stores without native filtering ignore availability and excluded_ids.
        """
        ...


class CatalogStore(Protocol):
    """Protocol for catalog metadata lookup."""

    def get_items(self, item_ids: Sequence[str]) -> Dict[str, CatalogItem]:
        """Return known items by id. Unknown ids are omitted."""
        ...


class WatchHistoryStore(Protocol):
    """Protocol for read-only watch history and user preferences."""

    def get_watch_signals(
        self,
        user_id: str,
        media_type: MediaType,
        limit: Optional[int] = None,
    ) -> List[WatchSignal]:
        """Signals ordered favorites first, then play count desc, then last played desc (nulls last)."""
        ...

    def get_watched_item_ids(self, user_id: str, media_type: MediaType) -> Set[str]:
        """All watched item ids, regardless of any history cap."""
        ...

    def get_disliked_item_ids(self, user_id: str, media_type: MediaType) -> Set[str]:
        ...

    def get_preferences(self, user_id: str) -> UserPreferences:
        ...

    def list_user_ids(self) -> List[str]:
        """Users with recommendations enabled (for batch jobs)."""
        ...


class RecommendationStore(Protocol):
    """Protocol for runs, candidates, evidence and taste vectors."""

    def create_run(self, user_id: str, media_type: MediaType) -> str:
        """Insert a pending run and return its id."""
        ...

    def finalize_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        duration_ms: int,
        outcome: Optional[RunOutcome] = None,
        error_message: Optional[str] = None,
    ) -> RecommendationRun:
        """
        The only writer of the pending -> completed|failed transition.

        completed writes outcome (candidates, selection, evidence) atomically with the status.
        """
        ...

    def get_run(self, run_id: str) -> Optional[RecommendationRun]:
        ...

    def get_active_run(self, user_id: str, media_type: MediaType) -> Optional[RecommendationRun]:
        """Latest completed run for the user and media type."""
        ...

    def list_runs(self, user_id: str) -> List[RecommendationRun]:
        ...

    def get_selected_candidates(self, run_id: str) -> List[StoredCandidate]:
        """Selected candidates with evidence, by selection rank."""
        ...

    def clear_user(self, user_id: str) -> None:
        """Delete all runs, candidates, evidence and taste vectors for a user."""
        ...

    def clear_all(self) -> int:
        """Delete all recommendation data. Returns the number of runs removed."""
        ...

    def save_taste_vector(self, taste_vector: TasteVector) -> None:
        """Fully replace the user's taste vector for the media type."""
        ...

    def get_taste_vector(self, user_id: str, media_type: MediaType) -> Optional[TasteVector]:
        ...
