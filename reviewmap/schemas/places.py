from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict


class Place(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return _finite(self.latitude) and _finite(self.longitude)


class MapPlaceResponse(BaseModel):
    id: str
    name: str
    address: str | None
    latitude: float
    longitude: float
    has_reviews: bool


class MapPlaceListResponse(BaseModel):
    items: list[MapPlaceResponse]
    total: int


def _finite(value: float | None) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
