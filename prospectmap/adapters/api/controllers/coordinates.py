from __future__ import annotations

from fastapi import APIRouter

from prospectmap.adapters.api.schemas.companies import (
    ConvertedPointSchema,
    ProjectedPointSchema,
)
from prospectmap.domain.algorithms.lambert93 import lambert93_to_wgs84
from prospectmap.domain.models import ProjectedPoint

router = APIRouter(prefix="/coordinates", tags=["coordinates"])


@router.post("/lambert93", response_model=ConvertedPointSchema)
def convert_lambert93(req: ProjectedPointSchema) -> ConvertedPointSchema:
    p = lambert93_to_wgs84(ProjectedPoint(x=req.x, y=req.y))
    return ConvertedPointSchema(latitude=p.lat, longitude=p.lon)
