from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from reviewmap.core.errors import BackendError, RemoteReadError
from reviewmap.schemas.places import MapPlaceResponse, Place
from reviewmap.schemas.reviews import Review
from reviewmap.services.media import MediaResolver
from reviewmap.services.reviews import resolve_author

logger = logging.getLogger(__name__)


class PlaceSource(Protocol):
    async def fetch_places(self) -> list[Place]: ...

    async def fetch_reviewed_place_ids(self) -> set[str]: ...

    async def fetch_place_reviews(self, place_id: str) -> list[Review]: ...


async def list_map_places(source: PlaceSource) -> list[MapPlaceResponse]:
    """Places that can be pinned on a map, flagged when they already have reviews."""
    try:
        places = await source.fetch_places()
    except BackendError as e:
        raise RemoteReadError("Could not load places.") from e

    try:
        reviewed = await source.fetch_reviewed_place_ids()
    except BackendError:
        logger.warning("Reviewed place ids unavailable; showing every place as unreviewed")
        reviewed = set()

    return [
        MapPlaceResponse(
            id=p.id,
            name=p.name,
            address=p.address,
            latitude=p.latitude,
            longitude=p.longitude,
            has_reviews=p.id in reviewed,
        )
        for p in places
        if p.has_coordinates
    ]


async def list_place_reviews(source: PlaceSource, resolver: MediaResolver, place_id: str) -> list[Review]:
    try:
        reviews = await source.fetch_place_reviews(place_id)
    except BackendError as e:
        raise RemoteReadError("Could not load reviews for this place.") from e

    authors = await asyncio.gather(*(resolve_author(r.author, resolver) for r in reviews))
    return [r.model_copy(update={"author": a}) for r, a in zip(reviews, authors)]
