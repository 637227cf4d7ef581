from __future__ import annotations

from abc import ABC, abstractmethod

from prospectmap.domain.models import Establishment


class IEstablishmentProvider(ABC):
    """Port for querying the company registry."""

    @abstractmethod
    async def list_establishments(self, *, naf_code: str) -> tuple[Establishment, ...]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_siren(self, siren: str) -> Establishment | None:
        """Head office of a legal unit."""
        raise NotImplementedError

    @abstractmethod
    async def search_by_term(
        self, term: str, *, limit: int = 5
    ) -> tuple[Establishment, ...]:
        """Free-text lookup by company name, town or SIREN."""
        raise NotImplementedError
