"""
Embedding stores without native filtering.

InMemoryEmbeddingStore keeps per-model embeddings in memory and answers
nearest-neighbour queries by brute-force cosine similarity (numpy).
JsonEmbeddingStore persists the same data as one {model_id}.json per model.
Both ignore availability and exclusions; the retriever post-filters.
Swap for QdrantEmbeddingStore via service config for production.
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

import numpy as np

from recommender.models.catalog import AvailabilityFilter, CatalogItem
from recommender.utils.similarity import cosine_similarity_matrix

logger = logging.getLogger(__name__)


class InMemoryEmbeddingStore:
    """EmbeddingStore keyed by (item_id, model_id), held in memory."""

    supports_filtering = False

    def __init__(self, embeddings: Optional[Dict[str, Dict[str, List[float]]]] = None):
        # model_id -> item_id -> vector; insertion order breaks similarity ties
        self._embeddings: Dict[str, Dict[str, List[float]]] = {}
        for model_id, vectors in (embeddings or {}).items():
            self.save_embeddings(model_id, vectors)

    def model_ids(self) -> List[str]:
        return list(self._embeddings)

    def get_embeddings(self, item_ids: Sequence[str], model_id: str) -> Dict[str, List[float]]:
        vectors = self._embeddings.get(model_id, {})
        return {item_id: vectors[item_id] for item_id in item_ids if item_id in vectors}

    def save_embeddings(
        self,
        model_id: str,
        embeddings: Dict[str, List[float]],
        *,
        items_by_id: Optional[Dict[str, CatalogItem]] = None,
    ) -> None:
        """Upsert embeddings. items_by_id is accepted for interface parity and unused."""
        vectors = self._embeddings.setdefault(model_id, {})
        for item_id, vector in embeddings.items():
            vectors[item_id] = [float(x) for x in vector]

    def search_similar(
        self,
        query_vector: Sequence[float],
        model_id: str,
        limit: int,
        *,
        availability: Optional[AvailabilityFilter] = None,
        excluded_ids: Optional[Set[str]] = None,
    ) -> List[Tuple[str, float]]:
        vectors = self._embeddings.get(model_id)
        if not vectors or limit <= 0:
            return []
        item_ids = list(vectors)
        matrix = np.asarray([vectors[i] for i in item_ids], dtype=float)
        query = np.asarray(query_vector, dtype=float)
        if matrix.shape[1] != query.shape[0]:
            raise ValueError(
                f"Query has {query.shape[0]} dimensions; model {model_id} stores {matrix.shape[1]}"
            )
        sims = cosine_similarity_matrix(query.reshape(1, -1), matrix)[0]
        order = np.argsort(-sims, kind="stable")[:limit]
        return [(item_ids[i], float(sims[i])) for i in order]


def _model_filename(model_id: str) -> str:
    """Sanitize a model id for use as a file name."""
    return re.sub(r"[^A-Za-z0-9_.-]", "_", model_id) + ".json"


class JsonEmbeddingStore(InMemoryEmbeddingStore):
    """
    InMemoryEmbeddingStore persisted as JSON files, one per model:

        {embeddings_dir}/{model_id}.json  ->  {"model_id": ..., "embeddings": {item_id: [...]}}
    """

    def __init__(self, embeddings_dir: Union[Path, str]):
        super().__init__()
        self._dir = Path(embeddings_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        for path in sorted(self._dir.glob("*.json")):
            with open(path) as f:
                data = json.load(f)
            model_id = data.get("model_id") or path.stem
            super().save_embeddings(model_id, data.get("embeddings", {}))
            logger.info(
                "[vector_store] LOADED model=%s embeddings=%s path=%s",
                model_id,
                len(data.get("embeddings", {})),
                path,
            )

    def save_embeddings(
        self,
        model_id: str,
        embeddings: Dict[str, List[float]],
        *,
        items_by_id: Optional[Dict[str, CatalogItem]] = None,
    ) -> None:
        super().save_embeddings(model_id, embeddings, items_by_id=items_by_id)
        path = self._dir / _model_filename(model_id)
        with open(path, "w") as f:
            json.dump({"model_id": model_id, "embeddings": self._embeddings[model_id]}, f)
        logger.info("[vector_store] SAVED model=%s embeddings=%s", model_id, len(embeddings))
