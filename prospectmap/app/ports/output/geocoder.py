from __future__ import annotations

from abc import ABC, abstractmethod

from prospectmap.domain.models import GeoPoint


class IGeocoder(ABC):
    """Port for resolving a postal address to a WGS84 position."""

    @abstractmethod
    async def geocode(self, address: str) -> GeoPoint | None:
        raise NotImplementedError
