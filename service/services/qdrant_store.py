"""
Qdrant Embedding Store

Stores item embeddings in Qdrant and answers filtered nearest-neighbour queries
natively: media type, library availability, parental ceiling and exclusions are pushed into
the query as a payload filter.

Collection naming: embeddings__{model_id} (sanitized), one collection per model.
Point ids are uuid5(item_id) so re-saving an item upserts it in place.
"""

import logging
import os
import re
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple

from qdrant_client import QdrantClient
from qdrant_client.http import models

from recommender.models.catalog import AvailabilityFilter, CatalogItem

from ..qdrant_filter import build_qdrant_filter

logger = logging.getLogger(__name__)


def point_id(item_id: str) -> str:
    """Deterministic Qdrant point id for an item."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, item_id))


class QdrantEmbeddingStore:
    """
    EmbeddingStore backed by a Qdrant server (or an injected client).

    Usage:
        store = QdrantEmbeddingStore(qdrant_url="http://localhost:6333")
        store.save_embeddings("text-embedding-3-small", embeddings, items_by_id=catalog)
        hits = store.search_similar(taste_vector, "text-embedding-3-small", limit=500,
                                    availability=availability, excluded_ids=watched)
    """

    supports_filtering = True

    # Retry configuration for connection issues
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds
    BATCH_SIZE = 100

    def __init__(
        self,
        qdrant_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize the Qdrant embedding store.

        Args:
            qdrant_url: Qdrant server URL (falls back to QDRANT_URL env var)
            timeout: Connection timeout in seconds
            client: Pre-built client (e.g. QdrantClient(":memory:")); skips connecting
        """
        self.qdrant_url = qdrant_url or os.environ.get("QDRANT_URL", "http://localhost:6333")
        self.timeout = timeout
        self._client: Optional[QdrantClient] = client

    @property
    def client(self) -> QdrantClient:
        """Get or create Qdrant client with connection retry."""
        if self._client is None:
            for attempt in range(self.MAX_RETRIES):
                try:
                    client = QdrantClient(url=self.qdrant_url, timeout=self.timeout)
                    # Test connection
                    client.get_collections()
                    self._client = client
                    break
                except Exception as e:
                    if attempt < self.MAX_RETRIES - 1:
                        time.sleep(self.RETRY_DELAY)
                    else:
                        raise ConnectionError(
                            f"Failed to connect to Qdrant at {self.qdrant_url}: {e}"
                        ) from e
        return self._client

    def get_collection_name(self, model_id: str) -> str:
        """Collection for an embedding model; alphanumerics and underscores only."""
        return "embeddings__" + re.sub(r"[^A-Za-z0-9_]", "_", model_id)

    def has_collection(self, model_id: str) -> bool:
        return self.client.collection_exists(self.get_collection_name(model_id))

    def _ensure_collection(self, model_id: str, dimensions: int) -> str:
        collection_name = self.get_collection_name(model_id)
        if not self.client.collection_exists(collection_name):
            self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=dimensions,
                    distance=models.Distance.COSINE,
                ),
            )
            logger.info(
                "[qdrant_store] COLLECTION_CREATED name=%s dimensions=%s",
                collection_name,
                dimensions,
            )
        return collection_name

    def get_embeddings(self, item_ids: Sequence[str], model_id: str) -> Dict[str, List[float]]:
        if not item_ids or not self.has_collection(model_id):
            return {}
        collection_name = self.get_collection_name(model_id)
        embeddings: Dict[str, List[float]] = {}
        unique_ids = list(dict.fromkeys(item_ids))
        for i in range(0, len(unique_ids), self.BATCH_SIZE):
            batch = unique_ids[i:i + self.BATCH_SIZE]
            points = self.client.retrieve(
                collection_name=collection_name,
                ids=[point_id(item_id) for item_id in batch],
                with_payload=True,
                with_vectors=True,
            )
            for point in points:
                embeddings[point.payload["item_id"]] = list(point.vector)
        return embeddings

    def save_embeddings(
        self,
        model_id: str,
        embeddings: Dict[str, List[float]],
        *,
        items_by_id: Optional[Dict[str, CatalogItem]] = None,
    ) -> None:
        """
        Upsert embeddings into the model's collection.

        items_by_id supplies the filter payload (media_type, library_id, parental_age);
        items without catalog metadata are stored without it and only match
        unfiltered queries.
        """
        if not embeddings:
            return
        dimensions = len(next(iter(embeddings.values())))
        collection_name = self._ensure_collection(model_id, dimensions)
        items_by_id = items_by_id or {}
        created_at = datetime.now().isoformat()

        item_ids = list(embeddings)
        for i in range(0, len(item_ids), self.BATCH_SIZE):
            points = []
            for item_id in item_ids[i:i + self.BATCH_SIZE]:
                payload = {"item_id": item_id, "model_id": model_id, "created_at": created_at}
                item = items_by_id.get(item_id)
                if item is not None:
                    payload["media_type"] = item.media_type.value
                    if item.library_id is not None:
                        payload["library_id"] = item.library_id
                    if item.parental_age is not None:
                        payload["parental_age"] = item.parental_age
                points.append(
                    models.PointStruct(
                        id=point_id(item_id),
                        vector=[float(x) for x in embeddings[item_id]],
                        payload=payload,
                    )
                )
            self.client.upsert(collection_name=collection_name, points=points)

        logger.info(
            "[qdrant_store] SAVED collection=%s embeddings=%s",
            collection_name,
            len(embeddings),
        )

    def search_similar(
        self,
        query_vector: Sequence[float],
        model_id: str,
        limit: int,
        *,
        availability: Optional[AvailabilityFilter] = None,
        excluded_ids: Optional[Set[str]] = None,
    ) -> List[Tuple[str, float]]:
        if limit <= 0 or not self.has_collection(model_id):
            return []
        response = self.client.query_points(
            collection_name=self.get_collection_name(model_id),
            query=[float(x) for x in query_vector],
            query_filter=build_qdrant_filter(availability, excluded_ids),
            limit=limit,
            with_payload=True,
        )
        return [(point.payload["item_id"], float(point.score)) for point in response.points]

    def delete_model(self, model_id: str) -> bool:
        """Drop every embedding of a model. Returns False when none were stored."""
        if not self.has_collection(model_id):
            return False
        self.client.delete_collection(self.get_collection_name(model_id))
        logger.info("[qdrant_store] COLLECTION_DELETED model=%s", model_id)
        return True
