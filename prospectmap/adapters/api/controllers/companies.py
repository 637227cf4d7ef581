from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from prospectmap.adapters.api.dependencies import get_proximity_search_service
from prospectmap.adapters.api.schemas.companies import (
    MAX_SEARCH_RADIUS_KM,
    NAF_CODE_PATTERN,
    SIREN_PATTERN,
    CompanyRecordSchema,
    CompanySchema,
    GeoPointSchema,
    NearbyCompanySchema,
    NearbyRequestSchema,
    NearbyResponseSchema,
)
from prospectmap.app.services.proximity_search_service import (
    ProximitySearchService,
    filter_within_radius,
)
from prospectmap.domain.exceptions import GeodesyError
from prospectmap.domain.models import (
    Establishment,
    GeoPoint,
    ProjectedPoint,
    SearchResult,
)

router = APIRouter(prefix="/companies", tags=["companies"])


def _record_to_establishment(rec: CompanyRecordSchema) -> Establishment:
    # A bad coordinate only leaves the record unlocated; the batch carries on.
    position = None
    if rec.x is not None and rec.y is not None:
        try:
            position = ProjectedPoint(x=rec.x, y=rec.y)
        except GeodesyError:
            position = None

    location = None
    if rec.lat is not None and rec.lon is not None:
        try:
            location = GeoPoint(lat=rec.lat, lon=rec.lon)
        except GeodesyError:
            location = None

    return Establishment(
        name=rec.name,
        siret=rec.siret,
        siren=rec.siren,
        naf_code=rec.naf_code,
        address=rec.address,
        employees_category=rec.employees_category,
        position=position,
        location=location,
        type=rec.type,
    )


def _establishment_fields(est: Establishment) -> dict:
    return {
        "name": est.name,
        "siret": est.siret,
        "siren": est.siren,
        "naf_code": est.naf_code,
        "address": est.address,
        "employees_category": est.employees_category,
        "x": est.position.x if est.position else None,
        "y": est.position.y if est.position else None,
        "lat": est.location.lat if est.location else None,
        "lon": est.location.lon if est.location else None,
        "type": est.type,
    }


def _company_to_schema(est: Establishment) -> CompanySchema:
    return CompanySchema(
        **_establishment_fields(est),
        latitude=est.location.lat if est.location else None,
        longitude=est.location.lon if est.location else None,
    )


def _result_to_schema(result: SearchResult) -> NearbyResponseSchema:
    return NearbyResponseSchema(
        center=GeoPointSchema(lat=result.center.lat, lon=result.center.lon),
        radius_km=result.radius_km,
        skipped=result.skipped,
        results=[
            NearbyCompanySchema(
                **_establishment_fields(m.establishment),
                latitude=m.location.lat,
                longitude=m.location.lon,
                distance_km=round(m.distance_km, 2),
            )
            for m in result.matches
        ],
    )


@router.post("/nearby", response_model=NearbyResponseSchema)
def filter_nearby(req: NearbyRequestSchema) -> NearbyResponseSchema:
    result = filter_within_radius(
        [_record_to_establishment(r) for r in req.records],
        center=GeoPoint(lat=req.center.lat, lon=req.center.lon),
        radius_km=req.radius_km,
    )
    return _result_to_schema(result)


@router.get("/search", response_model=NearbyResponseSchema)
async def search_by_activity(
    naf: str = Query(..., pattern=NAF_CODE_PATTERN),
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    radius_km: float = Query(default=10.0, ge=0.0, le=MAX_SEARCH_RADIUS_KM),
    service: ProximitySearchService = Depends(get_proximity_search_service),
) -> NearbyResponseSchema:
    result = await service.search(
        naf_code=naf, center=GeoPoint(lat=lat, lon=lon), radius_km=radius_km
    )
    return _result_to_schema(result)


@router.get("/lookup", response_model=list[CompanySchema])
async def lookup_companies(
    term: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(default=5, ge=1, le=20),
    service: ProximitySearchService = Depends(get_proximity_search_service),
) -> list[CompanySchema]:
    return [_company_to_schema(e) for e in await service.suggest(term, limit=limit)]


@router.get("/{siren}", response_model=CompanySchema)
async def get_company(
    siren: str = Path(..., pattern=SIREN_PATTERN),
    service: ProximitySearchService = Depends(get_proximity_search_service),
) -> CompanySchema:
    est = await service.lookup_siren(siren)
    if est is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return _company_to_schema(est)
