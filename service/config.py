"""
Service Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from recommender.models.config import EngineConfig

# Single .env at the project root
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)


@dataclass
class ServerConfig:
    """Service configuration."""

    # Recommendation storage (any SQLAlchemy URL)
    database_url: str = "sqlite:///recommendations.db"

    # Vector search; unset = JSON embeddings under embeddings_dir
    qdrant_url: Optional[str] = None

    # Active embedding model; unset = generation raises ConfigurationError
    embedding_model_id: Optional[str] = None

    # Libraries available for retrieval; unset = all
    enabled_library_ids: Optional[FrozenSet[str]] = None

    # Optional JSON overrides for the algorithm ({"movie": {...}, "series": {...}})
    recommender_config_path: Optional[Path] = None

    # JSON-backed catalog and watch history
    catalog_json_path: Optional[Path] = None
    watch_history_json_path: Optional[Path] = None

    # One {model_id}.json per model
    embeddings_dir: Path = Path(__file__).parent.parent / "data" / "embeddings"

    # Users generated in parallel by batch jobs
    max_workers: int = 1

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent

        def _path_env(key: str, default: Optional[Path] = None) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return default
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        library_ids = os.getenv("ENABLED_LIBRARY_IDS", "").strip()
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///recommendations.db"),
            qdrant_url=os.getenv("QDRANT_URL") or None,
            embedding_model_id=os.getenv("EMBEDDING_MODEL_ID") or None,
            enabled_library_ids=(
                frozenset(i.strip() for i in library_ids.split(",") if i.strip())
                if library_ids
                else None
            ),
            recommender_config_path=_path_env("RECOMMENDER_CONFIG_PATH"),
            catalog_json_path=_path_env("CATALOG_JSON_PATH", base_dir / "data" / "catalog.json"),
            watch_history_json_path=_path_env(
                "WATCH_HISTORY_JSON_PATH", base_dir / "data" / "watch_history.json"
            ),
            embeddings_dir=_path_env("EMBEDDINGS_DIR", base_dir / "data" / "embeddings"),
            max_workers=int(os.getenv("MAX_WORKERS", "1")),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if self.max_workers < 1:
            errors.append(f"MAX_WORKERS must be at least 1, got {self.max_workers}")

        if self.recommender_config_path and not self.recommender_config_path.exists():
            errors.append(f"Recommender config not found: {self.recommender_config_path}")

        # Catalog and watch history may legitimately be empty on first start

        return len(errors) == 0, errors

    def engine_config(self) -> EngineConfig:
        """
        Algorithm config: JSON overrides (if any) merged onto the defaults, with
        the model and enabled libraries taken from the environment when set.
        """
        overrides = {}
        if self.recommender_config_path and self.recommender_config_path.exists():
            with open(self.recommender_config_path) as f:
                overrides = json.load(f)
        if self.embedding_model_id:
            overrides["embedding_model_id"] = self.embedding_model_id
        if self.enabled_library_ids is not None:
            overrides["enabled_library_ids"] = sorted(self.enabled_library_ids)
        return EngineConfig.from_dict(overrides)


# Global config instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def reload_config() -> ServerConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
