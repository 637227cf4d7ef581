from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .geo import GeoPoint, ProjectedPoint


class CompanyType(str, Enum):
    SEARCH = "Recherche"
    PROSPECT = "Prospect"
    CLIENT = "Client"


@dataclass(frozen=True, slots=True)
class Establishment:
    """A company registry record (one SIRET)."""

    name: str
    siret: str | None = None
    siren: str | None = None
    naf_code: str | None = None
    address: str | None = None
    employees_category: str | None = None
    position: ProjectedPoint | None = None  # Lambert-93, as published by Sirene
    location: GeoPoint | None = None  # already-known WGS84 position wins over position
    type: CompanyType = CompanyType.SEARCH


@dataclass(frozen=True, slots=True)
class NearbyEstablishment:
    establishment: Establishment
    location: GeoPoint
    distance_km: float


@dataclass(frozen=True, slots=True)
class SearchResult:
    center: GeoPoint
    radius_km: float
    matches: tuple[NearbyEstablishment, ...] = field(default_factory=tuple)
    skipped: int = 0
