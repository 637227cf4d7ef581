from __future__ import annotations

import httpx
import pytest

from prospectmap.adapters.api.dependencies import get_proximity_search_service
from prospectmap.domain.models import (
    Establishment,
    GeoPoint,
    NearbyEstablishment,
    ProjectedPoint,
    SearchResult,
)
from prospectmap.main import app

PARIS_XY = {"x": 652709.401, "y": 6862785.346}
MARSEILLE_XY = {"x": 892390.222, "y": 6247035.257}


class _FakeProximitySearchService:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def search(
        self, *, naf_code: str, center: GeoPoint, radius_km: float
    ) -> SearchResult:
        self.calls.append(
            {"naf_code": naf_code, "center": center, "radius_km": radius_km}
        )
        est = Establishment(
            name="DANONE",
            siret="55203253400646",
            naf_code=naf_code,
            position=ProjectedPoint(x=651000.5, y=6863500.25),
        )
        return SearchResult(
            center=center,
            radius_km=radius_km,
            matches=(
                NearbyEstablishment(
                    establishment=est,
                    location=GeoPoint(lat=48.87, lon=2.33),
                    distance_km=1.23456,
                ),
            ),
            skipped=4,
        )


class _FailingProximitySearchService:
    async def search(self, **kwargs) -> SearchResult:
        raise httpx.ConnectError("registry unreachable")


async def _request(method: str, url: str, **kwargs) -> httpx.Response:
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, url, **kwargs)


@pytest.mark.unit
@pytest.mark.anyio
async def test_health() -> None:
    resp = await _request("GET", "/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.unit
@pytest.mark.anyio
async def test_convert_lambert93_returns_wgs84() -> None:
    resp = await _request(
        "POST", "/coordinates/lambert93", json={"x": 700000.0, "y": 6600000.0}
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["latitude"] == pytest.approx(46.5, abs=1e-9)
    assert payload["longitude"] == pytest.approx(3.0, abs=1e-9)


@pytest.mark.unit
@pytest.mark.anyio
async def test_convert_lambert93_rejects_out_of_extent_point() -> None:
    resp = await _request("POST", "/coordinates/lambert93", json={"x": 1e9, "y": 1e9})

    assert resp.status_code == 422
    assert "outside the Lambert-93 extent" in resp.json()["detail"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_keeps_paris_drops_marseille_and_counts_skipped() -> None:
    resp = await _request(
        "POST",
        "/companies/nearby",
        json={
            "center": {"lat": 48.86, "lon": 2.35},
            "radius_km": 5,
            "records": [
                {"name": "Marseille", "siret": "2", **MARSEILLE_XY},
                {"name": "Paris", "siret": "1", "type": "Prospect", **PARIS_XY},
                {"name": "Nowhere", "siret": "3", "x": 1e9, "y": 1e9},
                {"name": "No coordinates", "siret": "4"},
            ],
        },
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["skipped"] == 2
    assert payload["radius_km"] == 5.0
    assert [r["siret"] for r in payload["results"]] == ["1"]

    paris = payload["results"][0]
    assert paris["type"] == "Prospect"
    assert paris["distance_km"] == 0.54
    assert paris["latitude"] == pytest.approx(48.8634, abs=1e-3)
    assert paris["longitude"] == pytest.approx(2.3554, abs=1e-3)


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_uses_known_wgs84_position() -> None:
    resp = await _request(
        "POST",
        "/companies/nearby",
        json={
            "center": {"lat": 48.86, "lon": 2.35},
            "radius_km": 1,
            "records": [{"name": "Imported", "lat": 48.861, "lon": 2.351}],
        },
    )

    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()["results"]] == ["Imported"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_rejects_half_coordinate_pairs() -> None:
    resp = await _request(
        "POST",
        "/companies/nearby",
        json={
            "center": {"lat": 48.86, "lon": 2.35},
            "radius_km": 1,
            "records": [{"name": "Broken", "x": 652709.401}],
        },
    )

    assert resp.status_code == 422


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_rejects_negative_radius() -> None:
    resp = await _request(
        "POST",
        "/companies/nearby",
        json={"center": {"lat": 48.86, "lon": 2.35}, "radius_km": -1, "records": []},
    )

    assert resp.status_code == 422


@pytest.mark.unit
@pytest.mark.anyio
async def test_search_returns_service_matches() -> None:
    fake = _FakeProximitySearchService()
    app.dependency_overrides[get_proximity_search_service] = lambda: fake

    resp = await _request(
        "GET",
        "/companies/search",
        params={"naf": "62.01Z", "lat": 48.86, "lon": 2.35, "radius_km": 3},
    )

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["skipped"] == 4
    assert payload["results"][0]["name"] == "DANONE"
    assert payload["results"][0]["distance_km"] == 1.23
    assert payload["results"][0]["type"] == "Recherche"
    assert fake.calls == [
        {"naf_code": "62.01Z", "center": GeoPoint(lat=48.86, lon=2.35), "radius_km": 3.0}
    ]


@pytest.mark.unit
@pytest.mark.anyio
async def test_search_validates_naf_code() -> None:
    app.dependency_overrides[get_proximity_search_service] = (
        lambda: _FakeProximitySearchService()
    )

    resp = await _request(
        "GET", "/companies/search", params={"naf": "6201Z", "lat": 48.86, "lon": 2.35}
    )

    app.dependency_overrides.clear()

    assert resp.status_code == 422


@pytest.mark.unit
@pytest.mark.anyio
async def test_search_maps_upstream_failure_to_bad_gateway() -> None:
    app.dependency_overrides[get_proximity_search_service] = (
        lambda: _FailingProximitySearchService()
    )

    resp = await _request(
        "GET", "/companies/search", params={"naf": "62.01Z", "lat": 48.86, "lon": 2.35}
    )

    app.dependency_overrides.clear()

    assert resp.status_code == 502
    assert resp.json() == {"detail": "Upstream service error"}


@pytest.mark.unit
@pytest.mark.anyio
async def test_nearby_survives_near_antipodal_record() -> None:
    resp = await _request(
        "POST",
        "/companies/nearby",
        json={
            "center": {"lat": -6.377647337239125, "lon": -146.93007968748378},
            "radius_km": 50,
            "records": [
                {"name": "Antipode", "lat": 6.377647337239125, "lon": 33.06992031251622},
                {"name": "Nearby", "lat": -6.38, "lon": -146.93},
            ],
        },
    )

    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()["results"]] == ["Nearby"]


class _FakeLookupService:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def lookup_siren(self, siren: str) -> Establishment | None:
        self.calls.append(("siren", siren))
        if siren != "552032534":
            return None
        return Establishment(
            name="DANONE",
            siren=siren,
            position=ProjectedPoint(x=651000.5, y=6863500.25),
            location=GeoPoint(lat=48.87, lon=2.33),
        )

    async def suggest(self, term: str, *, limit: int = 5) -> tuple[Establishment, ...]:
        self.calls.append(("term", term, limit))
        return (
            Establishment(name="DANONE", location=GeoPoint(lat=48.87, lon=2.33)),
        )


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_company_by_siren() -> None:
    fake = _FakeLookupService()
    app.dependency_overrides[get_proximity_search_service] = lambda: fake

    found = await _request("GET", "/companies/552032534")
    missing = await _request("GET", "/companies/000000000")
    malformed = await _request("GET", "/companies/55203")

    app.dependency_overrides.clear()

    assert found.status_code == 200
    payload = found.json()
    assert payload["name"] == "DANONE"
    assert payload["latitude"] == 48.87
    assert payload["longitude"] == 2.33
    assert payload["x"] == 651000.5
    assert missing.status_code == 404
    assert malformed.status_code == 422
    assert fake.calls == [("siren", "552032534"), ("siren", "000000000")]


@pytest.mark.unit
@pytest.mark.anyio
async def test_lookup_returns_located_suggestions() -> None:
    fake = _FakeLookupService()
    app.dependency_overrides[get_proximity_search_service] = lambda: fake

    resp = await _request("GET", "/companies/lookup", params={"term": "danone"})
    missing_term = await _request("GET", "/companies/lookup")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert [(c["name"], c["latitude"]) for c in resp.json()] == [("DANONE", 48.87)]
    assert missing_term.status_code == 422
    assert fake.calls == [("term", "danone", 5)]
