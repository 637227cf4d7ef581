from __future__ import annotations

import math

from prospectmap.domain.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in kilometers (spherical Earth)."""

    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)

    s = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    )
    # Rounding can push s just past 1.0 for near-antipodal points.
    s = min(1.0, max(0.0, s))
    return 2.0 * EARTH_RADIUS_KM * math.atan2(math.sqrt(s), math.sqrt(1.0 - s))
