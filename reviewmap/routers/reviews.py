from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status

from reviewmap.core.deps import (
    get_current_user_id,
    get_engagement_cache,
    get_media_resolver,
    get_route_resolver,
    get_store,
    get_vote_machine,
    require_user_id,
)
from reviewmap.db.crud import SupabaseStore
from reviewmap.schemas.reviews import (
    CommentCreate,
    ReviewDetailResponse,
    SearchItem,
    SearchResponse,
    VoteRequest,
)
from reviewmap.schemas.routes import Coordinate, RouteResponse
from reviewmap.services.engagement_cache import EngagementCache
from reviewmap.services.media import MediaResolver
from reviewmap.services.reviews import fetch_review_snapshot, load_review_detail, resolve_review_media
from reviewmap.services.routing import RouteResolver, origin_or_default
from reviewmap.services.votes import VoteStateMachine, vote_state_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/search", response_model=SearchResponse)
async def search_reviews(
    q: str = Query(default="", max_length=200),
    cache: EngagementCache = Depends(get_engagement_cache),
) -> SearchResponse:
    term = q.strip()
    if not term:
        return SearchResponse(query="", status="no_query", items=[], total=0)

    found = await cache.search(term)
    items = [
        SearchItem(review=r, author_rank=cache.rank_for_author(r.author.id if r.author else None))
        for r in found
    ]
    return SearchResponse(query=term, status="ok" if items else "no_matches", items=items, total=len(items))


@router.post("/cache/invalidate", status_code=status.HTTP_204_NO_CONTENT)
def invalidate_cache(cache: EngagementCache = Depends(get_engagement_cache)) -> None:
    cache.invalidate()


@router.get("/{review_id}", response_model=ReviewDetailResponse)
async def get_review(
    review_id: str,
    user_id: str | None = Depends(get_current_user_id),
    store: SupabaseStore = Depends(get_store),
    resolver: MediaResolver = Depends(get_media_resolver),
) -> ReviewDetailResponse:
    review = await load_review_detail(store, resolver, review_id)
    return ReviewDetailResponse(review=review, my_vote=vote_state_for(review, user_id))


@router.post("/{review_id}/votes", response_model=ReviewDetailResponse)
async def toggle_vote(
    review_id: str,
    payload: VoteRequest,
    user_id: str = Depends(require_user_id),
    store: SupabaseStore = Depends(get_store),
    resolver: MediaResolver = Depends(get_media_resolver),
    machine: VoteStateMachine = Depends(get_vote_machine),
) -> ReviewDetailResponse:
    review = await fetch_review_snapshot(store, review_id)
    updated = await machine.toggle(review, user_id, payload.type)
    updated = await resolve_review_media(updated, resolver)
    return ReviewDetailResponse(review=updated, my_vote=vote_state_for(updated, user_id))


@router.post("/{review_id}/comments", response_model=ReviewDetailResponse, status_code=201)
async def post_comment(
    review_id: str,
    payload: CommentCreate,
    user_id: str = Depends(require_user_id),
    store: SupabaseStore = Depends(get_store),
    resolver: MediaResolver = Depends(get_media_resolver),
    machine: VoteStateMachine = Depends(get_vote_machine),
) -> ReviewDetailResponse:
    review = await fetch_review_snapshot(store, review_id)
    updated = await machine.comment(review, user_id, payload.content)
    updated = await resolve_review_media(updated, resolver)
    return ReviewDetailResponse(review=updated, my_vote=vote_state_for(updated, user_id))


@router.get("/{review_id}/route", response_model=RouteResponse)
async def route_to_review(
    review_id: str,
    lat: float | None = Query(default=None, ge=-90, le=90),
    lng: float | None = Query(default=None, ge=-180, le=180),
    store: SupabaseStore = Depends(get_store),
    routes: RouteResolver = Depends(get_route_resolver),
) -> RouteResponse:
    review = await fetch_review_snapshot(store, review_id)
    origin = origin_or_default(lat, lng)

    destination = None
    if review.place is not None and review.place.has_coordinates:
        destination = Coordinate(lat=review.place.latitude, lng=review.place.longitude)

    route = await routes.route_between(origin, destination)
    return RouteResponse(origin=origin, destination=destination, route=route)
