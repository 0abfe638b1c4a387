from __future__ import annotations

from fastapi import APIRouter, Depends

from reviewmap.core.deps import get_media_resolver, get_store
from reviewmap.db.crud import SupabaseStore
from reviewmap.schemas.places import MapPlaceListResponse
from reviewmap.schemas.reviews import ReviewListResponse
from reviewmap.services.media import MediaResolver
from reviewmap.services.places import list_map_places, list_place_reviews

router = APIRouter(prefix="/places", tags=["places"])


@router.get("/map", response_model=MapPlaceListResponse)
async def map_places(store: SupabaseStore = Depends(get_store)) -> MapPlaceListResponse:
    items = await list_map_places(store)
    return MapPlaceListResponse(items=items, total=len(items))


@router.get("/{place_id}/reviews", response_model=ReviewListResponse)
async def place_reviews(
    place_id: str,
    store: SupabaseStore = Depends(get_store),
    resolver: MediaResolver = Depends(get_media_resolver),
) -> ReviewListResponse:
    items = await list_place_reviews(store, resolver, place_id)
    return ReviewListResponse(items=items, total=len(items))
