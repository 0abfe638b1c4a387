"""Travel routes between the member and a place.

The OSRM-compatible routing service is asked once. Whatever goes wrong
(transport error, non-2xx answer, no route, unexpected body) comes back as a
``RouteError`` value and is replaced by a straight two-point line whose
length is the great-circle distance, so callers always get something to draw.
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Union

import aiohttp

from reviewmap.core.config import settings
from reviewmap.schemas.routes import Coordinate, RouteResult

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class RouteError:
    reason: str


RouteOutcome = Union[RouteResult, RouteError]


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def straight_line_route(origin: Coordinate, destination: Coordinate) -> RouteResult:
    return RouteResult(
        coordinates=[origin.as_pair(), destination.as_pair()],
        distance_km=haversine_km(origin, destination),
        approximate=True,
    )


def parse_osrm_payload(data: Any) -> RouteOutcome:
    """Turn an OSRM ``/route`` body into (lat, lng) pairs and kilometers."""
    if not isinstance(data, dict):
        return RouteError("unexpected body")
    routes = data.get("routes") or []
    if not routes:
        return RouteError(f"no route ({data.get('code', 'unknown')})")

    route = routes[0]
    try:
        coords = [(float(lat), float(lon)) for lon, lat, *_ in route["geometry"]["coordinates"]]
        distance_km = float(route["distance"]) / 1000
    except (KeyError, TypeError, ValueError) as e:
        return RouteError(f"malformed route: {e!r}")

    if len(coords) < 2:
        return RouteError("route geometry has fewer than two points")
    return RouteResult(coordinates=coords, distance_km=distance_km, approximate=False)


def origin_or_default(lat: float | None, lng: float | None) -> Coordinate:
    """Stand-in for device geolocation: unknown positions use the default point."""
    if lat is None or lng is None or not (math.isfinite(lat) and math.isfinite(lng)):
        return Coordinate(lat=settings.default_lat, lng=settings.default_lng)
    return Coordinate(lat=lat, lng=lng)


class RouteResolver:
    def __init__(self, *, base_url: str | None = None, timeout_seconds: float | None = None) -> None:
        self.base_url = (base_url or settings.routing_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.route_timeout_seconds)

    def route_url(self, origin: Coordinate, destination: Coordinate) -> str:
        # OSRM expects lon,lat.
        return f"{self.base_url}/{origin.lng},{origin.lat};{destination.lng},{destination.lat}"

    async def fetch_route(self, origin: Coordinate, destination: Coordinate) -> RouteOutcome:
        params = {"overview": "full", "geometries": "geojson"}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.route_url(origin, destination), params=params) as response:
                    if response.status != 200:
                        return RouteError(f"routing service answered {response.status}")
                    data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            return RouteError("routing service timed out")
        except aiohttp.ClientError as e:
            return RouteError(f"routing request failed: {e}")
        except ValueError as e:
            return RouteError(f"routing body is not JSON: {e}")
        return parse_osrm_payload(data)

    async def route_between(self, origin: Coordinate | None, destination: Coordinate | None) -> RouteResult:
        if origin is None or destination is None or not (origin.is_finite and destination.is_finite):
            return RouteResult()

        outcome = await self.fetch_route(origin, destination)
        if isinstance(outcome, RouteError):
            logger.info("Routing fallback to straight line: %s", outcome.reason)
            return straight_line_route(origin, destination)
        return outcome
