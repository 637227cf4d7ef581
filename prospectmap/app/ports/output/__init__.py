from .establishment_provider import IEstablishmentProvider
from .geocoder import IGeocoder

__all__ = [
    "IEstablishmentProvider",
    "IGeocoder",
]
