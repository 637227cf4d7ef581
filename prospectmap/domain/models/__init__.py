from .company import CompanyType, Establishment, NearbyEstablishment, SearchResult
from .geo import GeoPoint, ProjectedPoint

__all__ = [
    "CompanyType",
    "Establishment",
    "GeoPoint",
    "NearbyEstablishment",
    "ProjectedPoint",
    "SearchResult",
]
