"""Build Qdrant payload filter for the retrieval path (media type, libraries, parental ceiling, exclusions)."""

from typing import Optional, Set

from qdrant_client.http import models

from recommender.models.catalog import AvailabilityFilter


def build_qdrant_filter(
    availability: Optional[AvailabilityFilter],
    excluded_ids: Optional[Set[str]],
) -> Optional[models.Filter]:
    """
    Build a Qdrant filter from availability constraints and excluded item ids.
    Points must carry payload: item_id, media_type, library_id, parental_age (omitted when unrated).
    Returns None when there is nothing to filter.
    """
    must = []
    must_not = []

    if availability is not None and availability.media_type is not None:
        # Points saved without catalog metadata pass; the retriever re-checks the catalog
        must.append(
            models.Filter(
                should=[
                    models.IsEmptyCondition(is_empty=models.PayloadField(key="media_type")),
                    models.FieldCondition(
                        key="media_type",
                        match=models.MatchValue(value=availability.media_type.value),
                    ),
                ]
            )
        )

    if availability is not None and availability.enabled_library_ids is not None:
        must.append(
            models.FieldCondition(
                key="library_id",
                match=models.MatchAny(any=sorted(availability.enabled_library_ids)),
            )
        )

    if availability is not None and availability.max_parental_rating is not None:
        # Unrated or unknown ratings pass
        must.append(
            models.Filter(
                should=[
                    models.IsEmptyCondition(is_empty=models.PayloadField(key="parental_age")),
                    models.FieldCondition(
                        key="parental_age",
                        range=models.Range(lte=availability.max_parental_rating),
                    ),
                ]
            )
        )

    if excluded_ids:
        must_not.append(
            models.FieldCondition(key="item_id", match=models.MatchAny(any=sorted(excluded_ids)))
        )

    if not must and not must_not:
        return None
    return models.Filter(must=must or None, must_not=must_not or None)
