from __future__ import annotations

import math
import os

from pydantic import BaseModel, Field, field_validator, model_validator

from prospectmap.domain.models import CompanyType

MAX_SEARCH_RADIUS_KM = float(os.getenv("MAX_SEARCH_RADIUS_KM") or 200.0)

NAF_CODE_PATTERN = r"^\d{2}\.\d{2}[A-Z]$"
SIREN_PATTERN = r"^\d{9}$"


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class ProjectedPointSchema(BaseModel):
    x: float
    y: float

    @field_validator("x", "y")
    @classmethod
    def check_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinate must be finite")
        return v


class ConvertedPointSchema(BaseModel):
    latitude: float
    longitude: float


class CompanyRecordSchema(BaseModel):
    name: str
    siret: str | None = None
    siren: str | None = None
    naf_code: str | None = None
    address: str | None = None
    employees_category: str | None = None
    x: float | None = None
    y: float | None = None
    lat: float | None = None
    lon: float | None = None
    type: CompanyType = CompanyType.SEARCH

    @model_validator(mode="after")
    def check_coordinate_pairs(self) -> "CompanyRecordSchema":
        if (self.x is None) != (self.y is None):
            raise ValueError("x and y must be given together")
        if (self.lat is None) != (self.lon is None):
            raise ValueError("lat and lon must be given together")
        return self


class NearbyRequestSchema(BaseModel):
    center: GeoPointSchema
    radius_km: float = Field(..., ge=0.0, le=MAX_SEARCH_RADIUS_KM)
    records: list[CompanyRecordSchema] = []


class NearbyCompanySchema(CompanyRecordSchema):
    latitude: float
    longitude: float
    distance_km: float


class NearbyResponseSchema(BaseModel):
    center: GeoPointSchema
    radius_km: float
    skipped: int = 0
    results: list[NearbyCompanySchema] = []


class CompanySchema(CompanyRecordSchema):
    latitude: float | None = None
    longitude: float | None = None
