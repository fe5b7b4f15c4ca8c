"""
Watch-history models — what a user has watched and how they want to be recommended to.

WatchSignal rows are owned by the watch-history service; the engine only reads them.
Built from API/store dicts via WatchSignal.model_validate(d).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .catalog import MediaType


class WatchSignal(BaseModel):
    """
    A user's engagement with one catalog item.

    play_count: plays for a movie, episodes watched for a series.
    last_played_at: secondary sort key (newest first), nulls last.
    """

    model_config = ConfigDict(extra="allow")

    user_id: str
    item_id: str
    media_type: MediaType = MediaType.MOVIE
    play_count: int = 1
    is_favorite: bool = False
    last_played_at: Optional[datetime] = None


class UserPreferences(BaseModel):
    """Per-user recommendation preferences."""

    user_id: str
    # Highest allowed viewer age (e.g. 13 allows PG-13 and below). None = no ceiling.
    max_parental_rating: Optional[int] = None
    # Keep already-watched items in the candidate pool.
    include_watched: bool = False
    # Drop items the user disliked from the candidate pool.
    exclude_disliked: bool = True


def order_watch_signals(signals: List[WatchSignal]) -> List[WatchSignal]:
    """
    Favorites first, then by play count, then most recently played (nulls last).

    The order decides which signals survive the history cap and their position weight.
    """
    dated = sorted(
        (s for s in signals if s.last_played_at is not None),
        key=lambda s: s.last_played_at,
        reverse=True,
    )
    undated = [s for s in signals if s.last_played_at is None]
    return sorted(dated + undated, key=lambda s: (not s.is_favorite, -s.play_count))
