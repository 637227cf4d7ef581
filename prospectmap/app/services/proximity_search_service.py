from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Iterable

import httpx

from prospectmap.app.ports.output import IEstablishmentProvider, IGeocoder
from prospectmap.domain.algorithms.geo_utils import haversine_distance_km
from prospectmap.domain.algorithms.lambert93 import (
    DEFAULT_MAX_ITERATIONS,
    lambert93_to_wgs84,
)
from prospectmap.domain.exceptions import GeodesyError, InvalidInput
from prospectmap.domain.models import (
    Establishment,
    GeoPoint,
    NearbyEstablishment,
    SearchResult,
)

logger = logging.getLogger(__name__)


def locate(
    establishment: Establishment, *, max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> GeoPoint | None:
    """WGS84 position of a record, converting Lambert-93 when needed."""

    if establishment.location is not None:
        return establishment.location
    if establishment.position is not None:
        return lambert93_to_wgs84(
            establishment.position, max_iterations=max_iterations
        )
    return None


def filter_within_radius(
    establishments: Iterable[Establishment],
    *,
    center: GeoPoint,
    radius_km: float,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> SearchResult:
    """Keep records within ``radius_km`` of ``center``, nearest first.

    Records that cannot be located are counted in ``skipped``; they never
    fail the whole batch.
    """

    if not math.isfinite(radius_km) or radius_km < 0:
        raise InvalidInput(f"Invalid radius: {radius_km}")

    matches: list[NearbyEstablishment] = []
    skipped = 0
    for est in establishments:
        try:
            location = locate(est, max_iterations=max_iterations)
        except GeodesyError as exc:
            logger.warning("Skipping %s: %s", est.siret or est.name, exc)
            skipped += 1
            continue

        if location is None:
            logger.warning("Skipping %s: no coordinates", est.siret or est.name)
            skipped += 1
            continue

        d = haversine_distance_km(center, location)
        if d <= radius_km:
            matches.append(
                NearbyEstablishment(establishment=est, location=location, distance_km=d)
            )

    matches.sort(key=lambda m: m.distance_km)
    return SearchResult(
        center=center, radius_km=radius_km, matches=tuple(matches), skipped=skipped
    )


async def _with_geocoded_location(
    est: Establishment, geocoder: IGeocoder
) -> Establishment:
    if est.location is not None or est.position is not None or not est.address:
        return est

    try:
        location = await geocoder.geocode(est.address)
    except (httpx.HTTPError, GeodesyError) as exc:
        logger.warning("Geocoding failed for %s: %s", est.address, exc)
        return est

    if location is None:
        return est
    return dataclasses.replace(est, location=location)


async def _resolve_location(
    est: Establishment, geocoder: IGeocoder | None
) -> Establishment:
    """Fill ``location`` from Lambert-93 or, failing that, the address."""

    if est.location is not None:
        return est
    if est.position is not None:
        try:
            return dataclasses.replace(est, location=locate(est))
        except GeodesyError as exc:
            logger.warning("Cannot convert %s: %s", est.siret or est.name, exc)
            est = dataclasses.replace(est, position=None)
    if geocoder is not None:
        return await _with_geocoded_location(est, geocoder)
    return est


@dataclass(slots=True)
class ProximitySearchService:
    """Registry lookups for the map.

    - Establishments come from the registry provider.
    - Records without coordinates are geocoded by address when a geocoder is configured.
    """

    establishment_provider: IEstablishmentProvider
    geocoder: IGeocoder | None = None

    async def search(
        self, *, naf_code: str, center: GeoPoint, radius_km: float
    ) -> SearchResult:
        establishments = await self.establishment_provider.list_establishments(
            naf_code=naf_code
        )
        logger.info(
            "Fetched %d establishments for NAF %s", len(establishments), naf_code
        )

        geocoder = self.geocoder
        if geocoder is not None:
            establishments = tuple(
                [await _with_geocoded_location(e, geocoder) for e in establishments]
            )

        return filter_within_radius(establishments, center=center, radius_km=radius_km)

    async def lookup_siren(self, siren: str) -> Establishment | None:
        """Head office for a SIREN, with ``location`` filled when it can be."""

        est = await self.establishment_provider.get_by_siren(siren)
        if est is None:
            return None
        return await _resolve_location(est, self.geocoder)

    async def suggest(self, term: str, *, limit: int = 5) -> tuple[Establishment, ...]:
        """Up to ``limit`` located matches for a name, town or SIREN.

        Records that cannot be placed on the map are dropped.
        """

        found = await self.establishment_provider.search_by_term(term, limit=limit)
        out: list[Establishment] = []
        for est in found:
            est = await _resolve_location(est, self.geocoder)
            if est.name.strip() and est.location is not None:
                out.append(est)
        return tuple(out[:limit])
