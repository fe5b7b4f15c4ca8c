"""
Algorithm configuration — retrieval, taste profile, scoring, and selection parameters.

RecommendationConfig holds the parameters for one media type (movie or series).
EngineConfig groups both media types with the embedding model and library
availability. The service may pass a dict (e.g. from a recommender config JSON);
from_dict() merges it with these defaults.

Configs are frozen: every stage receives its config explicitly so a run can be
reproduced from its inputs alone.
"""

from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .catalog import MediaType


class RecommendationConfig(BaseModel):
    """Configuration for one media type's recommendation pipeline."""

    model_config = ConfigDict(frozen=True)

    # -------------------------------------------------------------------------
    # Candidate Retrieval
    # -------------------------------------------------------------------------

    # Max number of nearest neighbours kept after exclusions and availability filters.
    max_candidates: int = 500

    # Target size of the final selection (K).
    selected_count: int = 50

    # -------------------------------------------------------------------------
    # Taste Profile
    # -------------------------------------------------------------------------

    # Max watch signals (favorites first, then play count, then recency) used for the profile.
    recent_watch_limit: int = 50

    # Watched items used to build the genre history for novelty. None = all profile items.
    novelty_history_limit: Optional[int] = 30

    # -------------------------------------------------------------------------
    # Scoring Weights
    # base_score = similarity_weight * sim + novelty_weight * novelty + rating_weight * rating
    # Not normalized: callers are responsible for sane totals.
    # -------------------------------------------------------------------------

    similarity_weight: float = 0.4
    novelty_weight: float = 0.2
    rating_weight: float = 0.2

    # -------------------------------------------------------------------------
    # Diversity Selection
    # selection_score = base_score * (1 - diversity_weight) + diversity_boost * diversity_weight
    # -------------------------------------------------------------------------

    diversity_weight: float = 0.2

    # Track network representation during selection. None = on when any candidate has a network.
    use_network_diversity: Optional[bool] = None

    # -------------------------------------------------------------------------
    # Storage and Evidence
    # -------------------------------------------------------------------------

    # Candidates persisted per run (by base score); selected items beyond this are stored too.
    max_stored_candidates: int = 100

    # Nearest watched items stored as evidence per selected candidate.
    evidence_limit: int = 3

    # Watched items with play_count above this are labelled highly_rated evidence.
    highly_rated_play_count: int = 1

    @model_validator(mode="after")
    def weights_in_range(self):
        for name in ("similarity_weight", "novelty_weight", "rating_weight"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0.0 <= self.diversity_weight <= 1.0:
            raise ValueError(f"diversity_weight must be in [0, 1], got {self.diversity_weight}")
        if self.selected_count < 0 or self.max_candidates < 0:
            raise ValueError("selected_count and max_candidates must be non-negative")
        if self.recent_watch_limit < 1:
            raise ValueError("recent_watch_limit must be at least 1")
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict, base: Optional["RecommendationConfig"] = None) -> "RecommendationConfig":
        """Create config from dictionary (e.g. loaded from JSON), over base defaults."""
        flat = dict(base.model_dump()) if base is not None else {}
        for section in ("retrieval", "taste_profile", "scoring", "selection", "storage"):
            if section in config_dict:
                flat.update(config_dict[section])
        if "weights" in config_dict:
            weights = config_dict["weights"]
            for key in ("similarity", "novelty", "rating", "diversity"):
                if key in weights:
                    flat[f"{key}_weight"] = weights[key]
        flat.update({k: v for k, v in config_dict.items() if k in cls.model_fields})
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)


MOVIE_DEFAULTS = RecommendationConfig()

SERIES_DEFAULTS = RecommendationConfig(
    selected_count=12,
    recent_watch_limit=100,
    novelty_history_limit=None,
    highly_rated_play_count=5,
)


class EngineConfig(BaseModel):
    """Engine-wide configuration: embedding model, availability, per-media-type settings."""

    model_config = ConfigDict(frozen=True)

    # Active embedding model. None = not configured (generation raises ConfigurationError).
    embedding_model_id: Optional[str] = None

    # Libraries enabled for retrieval. None = every library is enabled.
    enabled_library_ids: Optional[FrozenSet[str]] = None

    movie: RecommendationConfig = MOVIE_DEFAULTS
    series: RecommendationConfig = SERIES_DEFAULTS

    def for_media_type(self, media_type: MediaType) -> RecommendationConfig:
        """Config for the given media type."""
        return self.series if MediaType(media_type) == MediaType.SERIES else self.movie

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "EngineConfig":
        """
        Create engine config from a nested dict:

            {"embedding_model_id": "...", "enabled_library_ids": [...],
             "movie": {...}, "series": {...}}

        Media-type sections are merged onto MOVIE_DEFAULTS / SERIES_DEFAULTS.
        """
        library_ids = config_dict.get("enabled_library_ids")
        return cls(
            embedding_model_id=config_dict.get("embedding_model_id"),
            enabled_library_ids=frozenset(library_ids) if library_ids is not None else None,
            movie=RecommendationConfig.from_dict(config_dict.get("movie", {}), MOVIE_DEFAULTS),
            series=RecommendationConfig.from_dict(config_dict.get("series", {}), SERIES_DEFAULTS),
        )


DEFAULT_CONFIG = EngineConfig()


def resolve_config(config: Optional[EngineConfig]) -> EngineConfig:
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
