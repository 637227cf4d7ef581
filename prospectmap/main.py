from __future__ import annotations

import logging
import os

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prospectmap.adapters.api.controllers.companies import router as companies_router
from prospectmap.adapters.api.controllers.coordinates import (
    router as coordinates_router,
)
from prospectmap.domain.exceptions import GeodesyError

app = FastAPI(title="ProspectMap")
app.include_router(coordinates_router)
app.include_router(companies_router)


@app.exception_handler(GeodesyError)
async def geodesy_exception_handler(request: Request, exc: GeodesyError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(httpx.HTTPError)
async def upstream_exception_handler(
    request: Request, exc: httpx.HTTPError
) -> JSONResponse:
    logging.getLogger("uvicorn.error").warning(
        "Upstream registry call failed: %s", exc, extra={"path": str(request.url.path)}
    )
    return JSONResponse(status_code=502, content={"detail": "Upstream service error"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the map frontend can display them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    reveal = (os.getenv("PROSPECTMAP_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
