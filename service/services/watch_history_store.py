"""
Watch history store backed by memory, optionally loaded from a JSON file.

JSON layout:

    {"users": [
        {"user_id": "u1",
         "preferences": {"max_parental_rating": 13, "include_watched": false},
         "watch_history": [{"item_id": "m1", "media_type": "movie", "play_count": 2,
                            "is_favorite": true, "last_played_at": "2025-01-01T20:00:00"}],
         "disliked": {"movie": ["m9"], "series": []}}
    ]}
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

from recommender.models.catalog import MediaType
from recommender.models.watch import UserPreferences, WatchSignal, order_watch_signals

logger = logging.getLogger(__name__)


class InMemoryWatchHistoryStore:
    """WatchHistoryStore over in-memory signals, dislikes and preferences."""

    def __init__(self):
        self._signals: Dict[str, List[WatchSignal]] = {}
        self._disliked: Dict[Tuple[str, MediaType], Set[str]] = {}
        self._preferences: Dict[str, UserPreferences] = {}

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "InMemoryWatchHistoryStore":
        store = cls()
        path = Path(path)
        if not path.exists():
            logger.warning("[watch_history_store] HISTORY_MISSING path=%s", path)
            return store
        with open(path) as f:
            data = json.load(f)
        users = data.get("users", []) if isinstance(data, dict) else data
        for user in users:
            user_id = user.get("user_id") or user.get("id")
            if not user_id:
                continue
            store.set_preferences(
                UserPreferences.model_validate({**user.get("preferences", {}), "user_id": user_id})
            )
            for row in user.get("watch_history", []):
                store.add_signal(WatchSignal.model_validate({**row, "user_id": user_id}))
            for media_type, item_ids in (user.get("disliked") or {}).items():
                for item_id in item_ids:
                    store.add_dislike(user_id, item_id, MediaType(media_type))
        logger.info("[watch_history_store] LOADED users=%s path=%s", len(store.list_user_ids()), path)
        return store

    def add_signal(self, signal: WatchSignal) -> None:
        self._signals.setdefault(signal.user_id, []).append(signal)
        self._preferences.setdefault(signal.user_id, UserPreferences(user_id=signal.user_id))

    def add_dislike(self, user_id: str, item_id: str, media_type: MediaType = MediaType.MOVIE) -> None:
        self._disliked.setdefault((user_id, MediaType(media_type)), set()).add(item_id)

    def set_preferences(self, preferences: UserPreferences) -> None:
        self._preferences[preferences.user_id] = preferences
        self._signals.setdefault(preferences.user_id, [])

    def get_watch_signals(
        self,
        user_id: str,
        media_type: MediaType,
        limit: Optional[int] = None,
    ) -> List[WatchSignal]:
        media_type = MediaType(media_type)
        signals = [s for s in self._signals.get(user_id, []) if s.media_type == media_type]
        ordered = order_watch_signals(signals)
        return ordered[:limit] if limit is not None else ordered

    def get_watched_item_ids(self, user_id: str, media_type: MediaType) -> Set[str]:
        media_type = MediaType(media_type)
        return {s.item_id for s in self._signals.get(user_id, []) if s.media_type == media_type}

    def get_disliked_item_ids(self, user_id: str, media_type: MediaType) -> Set[str]:
        return set(self._disliked.get((user_id, MediaType(media_type)), set()))

    def get_preferences(self, user_id: str) -> UserPreferences:
        return self._preferences.get(user_id) or UserPreferences(user_id=user_id)

    def list_user_ids(self) -> List[str]:
        return sorted(self._signals)
