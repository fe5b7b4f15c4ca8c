"""
Recommendation engine — orchestrates one run end to end.

    profile -> retrieve -> score -> select -> evidence -> finalize

The engine owns the run lifecycle: every run it creates is finalized exactly
once, as completed (with its outcome written atomically) or as failed (with the
error message) before the error propagates. Cold start is a completed run with
zero selections.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .errors import ConfigurationError
from .models.catalog import AvailabilityFilter, MediaType
from .models.config import EngineConfig, RecommendationConfig, resolve_config
from .models.run import RecommendationRun, RunOutcome, RunStatus, StoredCandidate, TasteVector
from .models.watch import WatchSignal
from .stages.candidate_pool import retrieve_candidates
from .stages.diversity import select_diverse
from .stages.evidence import compute_evidence
from .stages.outcome import build_run_outcome
from .stages.scoring import build_genre_history, score_candidates
from .stages.taste_profile import build_taste_vector, prepare_watch_history, profile_watch_pool
from .stores import CatalogStore, EmbeddingStore, RecommendationStore, WatchHistoryStore

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class RecommendationEngine:
    """
    Facade over the pipeline stages and the stores they read from and write to.

    Usage:
        engine = RecommendationEngine(config, embeddings, catalog, watch_history, runs)
        run = engine.generate_recommendations("user-1", media_type="series")
        picks = engine.get_recommendations(run.run_id)
    """

    def __init__(
        self,
        config: Optional[EngineConfig],
        embedding_store: EmbeddingStore,
        catalog_store: CatalogStore,
        watch_history: WatchHistoryStore,
        recommendation_store: RecommendationStore,
    ):
        self.config = resolve_config(config)
        self.embeddings = embedding_store
        self.catalog = catalog_store
        self.watch_history = watch_history
        self.recommendations = recommendation_store

    def _require_model(self) -> str:
        if not self.config.embedding_model_id:
            raise ConfigurationError("No embedding model is configured")
        return self.config.embedding_model_id

    # -------------------------------------------------------------------------
    # Taste profile
    # -------------------------------------------------------------------------

    def _profile(
        self,
        user_id: str,
        media_type: MediaType,
        model_id: str,
        config: RecommendationConfig,
    ) -> Tuple[List[WatchSignal], Dict[str, List[float]], Optional[List[float]]]:
        """Watch history, its embeddings and the resulting taste vector (None on cold start)."""
        signals = self.watch_history.get_watch_signals(
            user_id, media_type, limit=config.recent_watch_limit
        )
        watched = prepare_watch_history(signals, config.recent_watch_limit)
        if not watched:
            logger.info("[engine] COLD_START user=%s media_type=%s reason=no_history", user_id, media_type.value)
            return watched, {}, None

        watched_ids = [s.item_id for s in watched]
        embeddings = self.embeddings.get_embeddings(watched_ids, model_id)
        items = self.catalog.get_items(watched_ids)
        ratings = {item_id: item.community_rating for item_id, item in items.items()}

        vector = build_taste_vector(watched, embeddings, ratings)
        if vector is None:
            logger.info("[engine] COLD_START user=%s media_type=%s reason=no_embeddings", user_id, media_type.value)
        return watched, embeddings, vector

    def _save_taste_vector(
        self,
        user_id: str,
        media_type: MediaType,
        model_id: str,
        vector: List[float],
    ) -> TasteVector:
        taste_vector = TasteVector(
            user_id=user_id,
            media_type=media_type,
            model_id=model_id,
            vector=vector,
            updated_at=datetime.now(timezone.utc),
        )
        self.recommendations.save_taste_vector(taste_vector)
        return taste_vector

    def build_taste_profile(
        self,
        user_id: str,
        media_type: MediaType = MediaType.MOVIE,
    ) -> Optional[TasteVector]:
        """
        Rebuild and persist the user's taste vector for a media type.

        Returns None (and writes nothing) when the user has no usable history.
        """
        media_type = MediaType(media_type)
        model_id = self._require_model()
        config = self.config.for_media_type(media_type)

        _, _, vector = self._profile(user_id, media_type, model_id, config)
        if vector is None:
            return None
        return self._save_taste_vector(user_id, media_type, model_id, vector)

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def _run_pipeline(
        self,
        user_id: str,
        media_type: MediaType,
        model_id: str,
        config: RecommendationConfig,
        target_count: int,
    ) -> RunOutcome:
        watched, watched_embeddings, vector = self._profile(user_id, media_type, model_id, config)
        if vector is None:
            return RunOutcome(candidate_count=0)
        self._save_taste_vector(user_id, media_type, model_id, vector)

        preferences = self.watch_history.get_preferences(user_id)
        excluded_ids = set()
        if not preferences.include_watched:
            excluded_ids |= self.watch_history.get_watched_item_ids(user_id, media_type)
        if preferences.exclude_disliked:
            excluded_ids |= self.watch_history.get_disliked_item_ids(user_id, media_type)

        availability = AvailabilityFilter(
            media_type=media_type,
            enabled_library_ids=self.config.enabled_library_ids,
            max_parental_rating=preferences.max_parental_rating,
        )
        retrieved = retrieve_candidates(
            vector,
            excluded_ids,
            config.max_candidates,
            self.embeddings,
            self.catalog,
            model_id,
            availability=availability,
        )
        if not retrieved:
            logger.info("[engine] NO_CANDIDATES user=%s media_type=%s", user_id, media_type.value)
            return RunOutcome(candidate_count=0)

        history = watched[: config.novelty_history_limit]
        history_items = self.catalog.get_items([s.item_id for s in history])
        genre_counts, total_genres = build_genre_history(
            history_items[s.item_id] for s in history if s.item_id in history_items
        )

        scored = score_candidates(retrieved, genre_counts, total_genres, config)
        selected = select_diverse(
            scored,
            target_count,
            config.diversity_weight,
            use_network_diversity=config.use_network_diversity,
        )

        selected_embeddings = self.embeddings.get_embeddings(
            [c.item_id for c in selected], model_id
        )
        evidence = compute_evidence(
            selected,
            selected_embeddings,
            watched,
            profile_watch_pool(watched, watched_embeddings),
            limit=config.evidence_limit,
            highly_rated_play_count=config.highly_rated_play_count,
        )
        return build_run_outcome(scored, selected, evidence, config.max_stored_candidates)

    def generate_recommendations(
        self,
        user_id: str,
        target_count: Optional[int] = None,
        media_type: MediaType = MediaType.MOVIE,
    ) -> RecommendationRun:
        """
        Generate and persist a recommendation run for one user and media type.

        Args:
            user_id: User to recommend for.
            target_count: Selection size. None = the media type's selected_count.
            media_type: "movie" or "series".

        Returns:
            The finalized (completed) run.

        Raises:
            ConfigurationError: No embedding model configured. No run is created.
            Exception: Anything raised after the run was created, once the run
                has been finalized as failed.
        """
        media_type = MediaType(media_type)
        model_id = self._require_model()
        config = self.config.for_media_type(media_type)
        target = config.selected_count if target_count is None else target_count
        if target < 0:
            raise ValueError(f"target_count must be non-negative, got {target}")

        start = time.perf_counter()
        run_id = self.recommendations.create_run(user_id, media_type)
        logger.info(
            "[engine] RUN_STARTED run=%s user=%s media_type=%s target=%s",
            run_id,
            user_id,
            media_type.value,
            target,
        )

        try:
            outcome = self._run_pipeline(user_id, media_type, model_id, config, target)
            run = self.recommendations.finalize_run(
                run_id,
                RunStatus.COMPLETED,
                duration_ms=_elapsed_ms(start),
                outcome=outcome,
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("[engine] RUN_FAILED run=%s user=%s error=%s", run_id, user_id, message)
            try:
                self.recommendations.finalize_run(
                    run_id,
                    RunStatus.FAILED,
                    duration_ms=_elapsed_ms(start),
                    error_message=message,
                )
            except Exception as finalize_error:
                logger.error(
                    "[engine] FINALIZE_FAILED run=%s user=%s error=%s",
                    run_id,
                    user_id,
                    finalize_error,
                )
            raise e

        logger.info(
            "[engine] RUN_COMPLETED run=%s candidates=%s selected=%s duration_ms=%s",
            run.run_id,
            run.candidate_count,
            run.selected_count,
            run.duration_ms,
        )
        return run

    def regenerate_recommendations(
        self,
        user_id: str,
        media_type: MediaType = MediaType.MOVIE,
        target_count: Optional[int] = None,
    ) -> RecommendationRun:
        """Clear all of the user's recommendation data, then generate a fresh run."""
        self._require_model()
        self.clear_recommendations(user_id)
        return self.generate_recommendations(user_id, target_count=target_count, media_type=media_type)

    # -------------------------------------------------------------------------
    # Reads and maintenance
    # -------------------------------------------------------------------------

    def get_active_run(
        self,
        user_id: str,
        media_type: MediaType = MediaType.MOVIE,
    ) -> Optional[RecommendationRun]:
        return self.recommendations.get_active_run(user_id, MediaType(media_type))

    def get_recommendations(self, run_id: str) -> List[StoredCandidate]:
        """Selected candidates of a run, by selection rank, with evidence."""
        return self.recommendations.get_selected_candidates(run_id)

    def clear_recommendations(self, user_id: str) -> None:
        self.recommendations.clear_user(user_id)
        logger.info("[engine] CLEARED user=%s", user_id)

    def clear_all_recommendations(self) -> int:
        """Delete every user's recommendation data. Returns the number of runs removed."""
        removed = self.recommendations.clear_all()
        logger.info("[engine] CLEARED_ALL runs=%s", removed)
        return removed
