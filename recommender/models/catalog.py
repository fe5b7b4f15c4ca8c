"""
Catalog model — typed representation of a movie or series for the pipeline.

Used by retrieval, scoring, selection and evidence stages instead of raw dicts.
Built from catalog/API dicts via CatalogItem.model_validate(d).
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class MediaType(str, Enum):
    MOVIE = "movie"
    SERIES = "series"


# Minimum viewer age implied by a content rating (MPAA and US TV guidelines).
CONTENT_RATING_AGES: Dict[str, int] = {
    "G": 0,
    "TV-Y": 0,
    "TV-G": 0,
    "TV-Y7": 7,
    "PG": 10,
    "TV-PG": 10,
    "PG-13": 13,
    "TV-14": 14,
    "R": 17,
    "TV-MA": 17,
    "NC-17": 18,
}


def parental_age(content_rating: Optional[str]) -> Optional[int]:
    """Minimum age for a content rating, or None when unrated or unknown."""
    if not content_rating:
        return None
    return CONTENT_RATING_AGES.get(content_rating.strip().upper())


class CatalogItem(BaseModel):
    """
    A movie or series available for recommendation.

    network is only set for series; selection tracks network diversity when it is present.
    """

    model_config = ConfigDict(extra="allow")

    item_id: str
    media_type: MediaType = MediaType.MOVIE
    title: str = ""
    year: Optional[int] = None
    genres: List[str] = Field(default_factory=list)
    community_rating: Optional[float] = None
    content_rating: Optional[str] = None
    library_id: Optional[str] = None
    network: Optional[str] = None

    @property
    def parental_age(self) -> Optional[int]:
        return parental_age(self.content_rating)

    def title_key(self) -> str:
        """
        Duplicate-title key: lowercased title plus year.

        Unrelated titles sharing a name and year collide on this key.
        """
        return f"{self.title.lower()}|{self.year or 'unknown'}"


class AvailabilityFilter(BaseModel):
    """
    Retrieval constraints: media type, enabled libraries and a parental-rating ceiling.

    Stores that filter natively translate this into their query language;
    otherwise the retriever applies allows() as a post-filter.
    """

    model_config = ConfigDict(frozen=True)

    media_type: Optional[MediaType] = None
    enabled_library_ids: Optional[FrozenSet[str]] = None
    max_parental_rating: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return (
            self.media_type is not None
            or self.enabled_library_ids is not None
            or self.max_parental_rating is not None
        )

    def allows(self, item: CatalogItem) -> bool:
        if self.media_type is not None and item.media_type != self.media_type:
            return False
        if self.enabled_library_ids is not None and item.library_id not in self.enabled_library_ids:
            return False
        if self.max_parental_rating is not None:
            age = item.parental_age
            if age is not None and age > self.max_parental_rating:
                return False
        return True


def ensure_items(items: List[Union[Dict[str, Any], "CatalogItem"]]) -> List["CatalogItem"]:
    """Convert list of dicts or CatalogItems to list of CatalogItem models."""
    return [
        CatalogItem.model_validate(i) if isinstance(i, dict) else i
        for i in items
    ]
