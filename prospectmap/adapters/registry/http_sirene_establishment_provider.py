from __future__ import annotations

import asyncio
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from prospectmap.app.ports.output import IEstablishmentProvider
from prospectmap.domain.exceptions import InvalidInput
from prospectmap.domain.models import Establishment, ProjectedPoint

DEFAULT_SIRENE_API_URL = "https://api.insee.fr/entreprises/sirene/V3.11"

# Placeholder INSEE publishes for non-diffusible values.
_NOT_DISCLOSED = "[ND]"

_SIREN_RE = re.compile(r"^\d{9}$")


@dataclass(slots=True)
class HttpSireneEstablishmentProvider(IEstablishmentProvider):
    """Queries establishments from the INSEE Sirene API.

    Env vars:
      - SIRENE_API_URL: API base URL (default: INSEE Sirene V3.11)
      - SIRENE_API_TOKEN: bearer token
      - SIRENE_PAGE_SIZE: records requested per NAF search (default 100)
      - SIRENE_TIMEOUT_S: request timeout (default 10)
      - SIRENE_CACHE_TTL_S: in-process cache TTL seconds (default 300)

    Notes:
      - If no token is configured, every query returns nothing.
      - Only the first page of results is fetched.
      - NAF listings are cached per-process, keyed by NAF code; concurrent
        requests for the same code share one upstream call.
    """

    base_url: str | None = None
    token: str | None = None
    page_size: int = 100
    timeout_s: float = 10.0
    cache_ttl_s: float = 300.0
    transport: httpx.AsyncBaseTransport | None = None

    # In-process cache, one lock per NAF code
    _locks: dict[str, asyncio.Lock] = field(
        default_factory=dict, init=False, repr=False
    )
    _cache: dict[str, tuple[float, tuple[Establishment, ...]]] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.base_url is None:
            self.base_url = os.getenv("SIRENE_API_URL") or DEFAULT_SIRENE_API_URL
        if self.token is None:
            self.token = os.getenv("SIRENE_API_TOKEN")
        if os.getenv("SIRENE_PAGE_SIZE"):
            self.page_size = int(os.environ["SIRENE_PAGE_SIZE"])
        if os.getenv("SIRENE_TIMEOUT_S"):
            self.timeout_s = float(os.environ["SIRENE_TIMEOUT_S"])
        if os.getenv("SIRENE_CACHE_TTL_S"):
            self.cache_ttl_s = float(os.environ["SIRENE_CACHE_TTL_S"])

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
        }

    def _cached(self, naf_code: str) -> tuple[Establishment, ...] | None:
        cached = self._cache.get(naf_code)
        if cached is not None and (time.monotonic() - cached[0]) < self.cache_ttl_s:
            return cached[1]
        return None

    async def _query(self, q: str, *, nombre: int) -> tuple[Establishment, ...]:
        url = f"{(self.base_url or '').rstrip('/')}/siret"
        params = {"q": q, "nombre": str(nombre)}
        async with httpx.AsyncClient(
            timeout=self.timeout_s, transport=self.transport
        ) as client:
            resp = await client.get(url, params=params, headers=self._headers())
            # Sirene answers 404 when a query matches nothing.
            if resp.status_code == 404:
                payload: Mapping[str, Any] = {}
            else:
                resp.raise_for_status()
                payload = resp.json()

        return _parse_sirene_establishments(payload)

    async def list_establishments(self, *, naf_code: str) -> tuple[Establishment, ...]:
        if not self.token:
            return ()

        cached = self._cached(naf_code)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(naf_code, asyncio.Lock())
        async with lock:
            # Another request may have filled the cache while we waited.
            cached = self._cached(naf_code)
            if cached is not None:
                return cached

            establishments = await self._query(
                f"activitePrincipaleEtablissement:{naf_code}", nombre=self.page_size
            )

            self._cache[naf_code] = (time.monotonic(), establishments)
            return establishments

    async def get_by_siren(self, siren: str) -> Establishment | None:
        siren = siren.replace(" ", "")
        if not self.token or not _SIREN_RE.match(siren):
            return None

        found = await self._query(
            f"siren:{siren} AND etablissementSiege:true", nombre=1
        )
        return found[0] if found else None

    async def search_by_term(
        self, term: str, *, limit: int = 5
    ) -> tuple[Establishment, ...]:
        term = term.strip()
        if not self.token or not term or limit <= 0:
            return ()

        compact = term.replace(" ", "")
        if _SIREN_RE.match(compact):
            q = f"siren:{compact}"
        else:
            words = term.replace('"', " ").split()
            q = f'raisonSociale:"{" ".join(words)}"'
            # Company name or town, like the dashboard search box.
            q += f' OR libelleCommuneEtablissement:"{" ".join(words).upper()}"'

        return await self._query(q, nombre=limit)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == _NOT_DISCLOSED:
        return None
    return text


def _lambert_position(address: Mapping[str, Any]) -> ProjectedPoint | None:
    x_raw = _clean(address.get("coordonneeLambertAbscisseEtablissement"))
    y_raw = _clean(address.get("coordonneeLambertOrdonneeEtablissement"))
    if x_raw is None or y_raw is None:
        return None
    try:
        return ProjectedPoint(x=float(x_raw), y=float(y_raw))
    except (ValueError, InvalidInput):
        return None


def _format_address(address: Mapping[str, Any]) -> str | None:
    street = " ".join(
        p
        for p in (
            _clean(address.get("numeroVoieEtablissement")),
            _clean(address.get("indiceRepetitionEtablissement")),
            _clean(address.get("typeVoieEtablissement")),
            _clean(address.get("libelleVoieEtablissement")),
        )
        if p
    )
    city = " ".join(
        p
        for p in (
            _clean(address.get("codePostalEtablissement")),
            _clean(address.get("libelleCommuneEtablissement")),
        )
        if p
    )
    text = ", ".join(p for p in (street, city) if p)
    return text or None


def _current_naf_code(etab: Mapping[str, Any]) -> str | None:
    # The first period is the current one (dateFin is null).
    for period in etab.get("periodesEtablissement") or ():
        code = _clean(period.get("activitePrincipaleEtablissement"))
        if code:
            return code
    unite = etab.get("uniteLegale") or {}
    return _clean(unite.get("activitePrincipaleUniteLegale"))


def _parse_sirene_establishments(
    payload: Mapping[str, Any],
) -> tuple[Establishment, ...]:
    out: list[Establishment] = []

    for etab in payload.get("etablissements") or ():
        unite = etab.get("uniteLegale") or {}
        address = etab.get("adresseEtablissement") or {}

        name = (
            _clean(unite.get("denominationUniteLegale"))
            or _clean(unite.get("nomUniteLegale"))
            or "Entreprise"
        )

        out.append(
            Establishment(
                name=name,
                siret=_clean(etab.get("siret")),
                siren=_clean(etab.get("siren")),
                naf_code=_current_naf_code(etab),
                address=_format_address(address),
                employees_category=_clean(etab.get("trancheEffectifsEtablissement")),
                position=_lambert_position(address),
            )
        )

    return tuple(out)
