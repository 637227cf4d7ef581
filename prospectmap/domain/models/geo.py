from __future__ import annotations

import math
from dataclasses import dataclass

from prospectmap.domain.exceptions import InvalidInput


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 position in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            raise InvalidInput(f"Non-finite coordinates: ({self.lat}, {self.lon})")
        if not (-90.0 <= self.lat <= 90.0):
            raise InvalidInput(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise InvalidInput(f"Invalid longitude: {self.lon}")


@dataclass(frozen=True, slots=True)
class ProjectedPoint:
    """Lambert-93 planar position (easting/northing in meters)."""

    x: float
    y: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise InvalidInput(f"Non-finite projected coordinates: ({self.x}, {self.y})")
