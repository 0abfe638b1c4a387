from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from reviewmap.core.deps import get_route_resolver
from reviewmap.schemas.routes import Coordinate, RouteResponse
from reviewmap.services.routing import RouteResolver, origin_or_default

router = APIRouter(tags=["routes"])


@router.get("/route", response_model=RouteResponse)
async def route(
    dest_lat: float = Query(ge=-90, le=90),
    dest_lng: float = Query(ge=-180, le=180),
    origin_lat: float | None = Query(default=None, ge=-90, le=90),
    origin_lng: float | None = Query(default=None, ge=-180, le=180),
    routes: RouteResolver = Depends(get_route_resolver),
) -> RouteResponse:
    origin = origin_or_default(origin_lat, origin_lng)
    destination = Coordinate(lat=dest_lat, lng=dest_lng)
    result = await routes.route_between(origin, destination)
    return RouteResponse(origin=origin, destination=destination, route=result)
