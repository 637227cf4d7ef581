"""Inverse Lambert-93 projection (IGN, GRS80 ellipsoid) to WGS84 degrees."""

from __future__ import annotations

import math

from prospectmap.domain.exceptions import ConversionDidNotConverge, InvalidInput
from prospectmap.domain.models import GeoPoint, ProjectedPoint

# GRS80
GRS80_A = 6378137.0
GRS80_F = 1 / 298.257222101
GRS80_E = math.sqrt(2 * GRS80_F - GRS80_F**2)

# Lambert-93 projection constants
N = 0.7256077650532670
C = 11754255.426096
XS = 700000.0
YS = 12655612.049876
LON_MERIDIAN = 3 * math.pi / 180

# EPSG:2154 projected bounds (x_min, y_min, x_max, y_max).
LAMBERT93_BOUNDS = (-357823.2365, 6037008.6939, 1313632.3628, 7230727.3772)

DEFAULT_TOLERANCE = 1e-11
DEFAULT_MAX_ITERATIONS = 100


def in_lambert93_extent(point: ProjectedPoint) -> bool:
    x_min, y_min, x_max, y_max = LAMBERT93_BOUNDS
    return x_min <= point.x <= x_max and y_min <= point.y <= y_max


def latitude_from_isometric(
    latiso: float,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> float:
    """Solve for geodetic latitude (radians) by fixed-point iteration.

    Starts from the spherical approximation and refines with the GRS80
    eccentricity until the step is within ``tolerance`` radians.
    """

    exp_latiso = math.exp(latiso)
    phi = 2 * math.atan(exp_latiso) - math.pi / 2

    for _ in range(max_iterations):
        e_sin_phi = GRS80_E * math.sin(phi)
        delta = (
            2
            * math.atan(
                ((1 + e_sin_phi) / (1 - e_sin_phi)) ** (GRS80_E / 2) * exp_latiso
            )
            - math.pi / 2
        ) - phi
        phi += delta
        if abs(delta) <= tolerance:
            return phi

    raise ConversionDidNotConverge(
        f"Latitude did not converge within {max_iterations} iterations"
    )


def lambert93_to_wgs84(
    point: ProjectedPoint,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> GeoPoint:
    if not in_lambert93_extent(point):
        raise InvalidInput(
            f"Point ({point.x}, {point.y}) is outside the Lambert-93 extent"
        )

    dx = point.x - XS
    dy = YS - point.y

    r = math.sqrt(dx**2 + dy**2)
    # Single-argument atan: dy > 0 everywhere inside the extent.
    gamma = math.atan(dx / dy)
    latiso = math.log(C / r) / N

    phi = latitude_from_isometric(
        latiso, tolerance=tolerance, max_iterations=max_iterations
    )
    lon = LON_MERIDIAN + gamma / N

    return GeoPoint(lat=math.degrees(phi), lon=math.degrees(lon))
