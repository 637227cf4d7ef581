from __future__ import annotations

import os
from functools import lru_cache

from prospectmap.adapters.geocoding.nominatim_geocoder import NominatimGeocoder
from prospectmap.adapters.registry.http_sirene_establishment_provider import (
    HttpSireneEstablishmentProvider,
)
from prospectmap.app.ports.output import IGeocoder
from prospectmap.app.services.proximity_search_service import ProximitySearchService


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


# Providers hold in-process caches, so share one instance across requests.
@lru_cache(maxsize=1)
def _establishment_provider() -> HttpSireneEstablishmentProvider:
    return HttpSireneEstablishmentProvider()


@lru_cache(maxsize=1)
def _geocoder() -> NominatimGeocoder:
    return NominatimGeocoder()


def get_proximity_search_service() -> ProximitySearchService:
    geocoder: IGeocoder | None = None
    if _env_bool("GEOCODING_ENABLED"):
        geocoder = _geocoder()

    return ProximitySearchService(
        establishment_provider=_establishment_provider(),
        geocoder=geocoder,
    )
