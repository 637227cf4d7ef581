from __future__ import annotations

import asyncio
import logging
import os
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

import httpx

from prospectmap.app.ports.output import IGeocoder
from prospectmap.domain.models import GeoPoint

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org"

logger = logging.getLogger(__name__)


def _first_hit(hits: Any) -> GeoPoint | None:
    if not hits:
        return None
    return GeoPoint(lat=float(hits[0]["lat"]), lon=float(hits[0]["lon"]))


@dataclass(slots=True)
class NominatimGeocoder(IGeocoder):
    """OpenStreetMap Nominatim address geocoder.

    Env vars:
      - NOMINATIM_URL: base URL (default: public OSM instance)
      - NOMINATIM_USER_AGENT: User-Agent header, required by the usage policy
      - NOMINATIM_MIN_INTERVAL_S: minimum delay between requests (default 1)
      - NOMINATIM_CACHE_SIZE: cached addresses kept, oldest evicted first (default 1024)

    Notes:
      - Malformed responses are logged and treated as no hit (not cached).
    """

    base_url: str | None = None
    user_agent: str | None = None
    timeout_s: float = 10.0
    min_interval_s: float = 1.0
    cache_size: int = 1024
    transport: httpx.AsyncBaseTransport | None = None

    # address -> position (None for addresses with no hit), LRU order
    _cache: OrderedDict[str, GeoPoint | None] = field(
        default_factory=OrderedDict, init=False, repr=False
    )
    _throttle: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False
    )
    _last_request_monotonic: float | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.base_url is None:
            self.base_url = os.getenv("NOMINATIM_URL") or DEFAULT_NOMINATIM_URL
        if self.user_agent is None:
            self.user_agent = os.getenv("NOMINATIM_USER_AGENT") or "prospectmap/0.1"
        if os.getenv("NOMINATIM_MIN_INTERVAL_S"):
            self.min_interval_s = float(os.environ["NOMINATIM_MIN_INTERVAL_S"])
        if os.getenv("NOMINATIM_CACHE_SIZE"):
            self.cache_size = int(os.environ["NOMINATIM_CACHE_SIZE"])

    def _remember(self, key: str, location: GeoPoint | None) -> None:
        self._cache[key] = location
        self._cache.move_to_end(key)
        while len(self._cache) > max(0, self.cache_size):
            self._cache.popitem(last=False)

    async def _wait_turn(self) -> None:
        if self._last_request_monotonic is not None:
            elapsed = time.monotonic() - self._last_request_monotonic
            if elapsed < self.min_interval_s:
                await asyncio.sleep(self.min_interval_s - elapsed)
        self._last_request_monotonic = time.monotonic()

    async def geocode(self, address: str) -> GeoPoint | None:
        key = address.strip()
        if not key:
            return None
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        async with self._throttle:
            await self._wait_turn()
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport
            ) as client:
                resp = await client.get(
                    f"{(self.base_url or '').rstrip('/')}/search",
                    params={"format": "json", "limit": "1", "q": key},
                    headers={"User-Agent": self.user_agent or ""},
                )
                resp.raise_for_status()

        try:
            location = _first_hit(resp.json())
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            logger.warning("Unusable Nominatim response for %r: %s", key, exc)
            return None

        self._remember(key, location)
        return location
