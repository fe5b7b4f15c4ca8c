"""
Catalog store backed by memory, optionally loaded from a JSON file.

JSON layout: {"items": [{"item_id": ..., "title": ..., "genres": [...], ...}]}
or a bare list of items.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union

from recommender.models.catalog import CatalogItem, ensure_items

logger = logging.getLogger(__name__)


class InMemoryCatalogStore:
    """CatalogStore over a dict of CatalogItems."""

    def __init__(self, items: Iterable[Union[CatalogItem, Dict]] = ()):
        self._items: Dict[str, CatalogItem] = {}
        self.add_items(list(items))

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "InMemoryCatalogStore":
        path = Path(path)
        if not path.exists():
            logger.warning("[catalog_store] CATALOG_MISSING path=%s", path)
            return cls()
        with open(path) as f:
            data = json.load(f)
        items = data.get("items", []) if isinstance(data, dict) else data
        store = cls(items)
        logger.info("[catalog_store] LOADED items=%s path=%s", len(store), path)
        return store

    def __len__(self) -> int:
        return len(self._items)

    def add_items(self, items: List[Union[CatalogItem, Dict]]) -> None:
        for item in ensure_items(items):
            self._items[item.item_id] = item

    def get_items(self, item_ids: Sequence[str]) -> Dict[str, CatalogItem]:
        return {item_id: self._items[item_id] for item_id in item_ids if item_id in self._items}
