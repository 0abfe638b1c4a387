from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lng)


class RouteResult(BaseModel):
    """Path as (lat, lng) pairs plus its length.

    An empty route with no distance means one of the endpoints was unknown.
    """

    model_config = ConfigDict(frozen=True)

    coordinates: list[tuple[float, float]] = []
    distance_km: float | None = None
    approximate: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.coordinates


class RouteResponse(BaseModel):
    origin: Coordinate
    destination: Coordinate | None
    route: RouteResult
