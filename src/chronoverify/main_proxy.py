"""Credential proxy for the Copernicus catalogue.

Keeps the upstream OAuth2 client credentials server-side, and gives browser
clients a CORS-enabled surface for imagery search and thumbnails.

Usage:
    chronoverify-proxy
    uvicorn chronoverify.main_proxy:app --port 3001
"""

import math
from typing import Any, Dict, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .errors import ProxyError, ValidationError
from .log import get_logger, setup_logging
from .satellite.catalog import CatalogClient
from .schemas.satellite import SatelliteResult

logger = get_logger("proxy")

router = APIRouter()


def get_catalog(request: Request) -> CatalogClient:
    return request.app.state.catalog


def _coordinate(raw: str, name: str, bound: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number", error_kind="Invalid parameters")
    if not math.isfinite(value) or not -bound <= value <= bound:
        raise ValidationError(f"{name} must be within [-{bound:g}, {bound:g}]", error_kind="Invalid parameters")
    return value


def _limit(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError("limit must be an integer", error_kind="Invalid parameters")
    if not 1 <= value <= 100:
        raise ValidationError("limit must be between 1 and 100", error_kind="Invalid parameters")
    return value


def search_payload(result: SatelliteResult) -> Dict[str, Any]:
    payload = result.model_dump(by_alias=True)
    payload["imagery"] = payload["imagery"] or []
    payload["count"] = result.count
    return payload


@router.get("/health")
def health():
    return {"status": "ok", "message": "Satellite imagery proxy server running"}


@router.post("/api/satellite/auth")
def authenticate(catalog: CatalogClient = Depends(get_catalog)):
    return {"access_token": catalog.authenticate()}


@router.get("/api/satellite/search")
def search_imagery(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: Optional[str] = None,
    catalog: CatalogClient = Depends(get_catalog),
):
    # Checked before any upstream traffic
    if not lat or not lon:
        raise ValidationError("Latitude and longitude are required")

    result = catalog.search(
        lat=_coordinate(lat, "lat", 90),
        lon=_coordinate(lon, "lon", 180),
        start_date=start_date,
        end_date=end_date,
        limit=_limit(limit),
    )
    return search_payload(result)


@router.get("/api/satellite/thumbnail/{product_id}")
def thumbnail(product_id: str, catalog: CatalogClient = Depends(get_catalog)):
    content, content_type = catalog.thumbnail(product_id)
    return Response(content=content, media_type=content_type)


async def handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


def create_app(settings: Optional[Settings] = None, catalog: Optional[CatalogClient] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="chronoverify satellite proxy")
    app.state.settings = settings
    app.state.catalog = catalog or CatalogClient(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ProxyError, handle_proxy_error)
    app.include_router(router)
    return app


app = create_app()


def main():
    load_dotenv()
    setup_logging()
    settings = get_settings()
    if not settings.has_copernicus_credentials:
        logger.warning("Copernicus credentials missing; satellite endpoints will fail until configured")
    logger.info(f"Satellite imagery proxy on {settings.HOST}:{settings.PORT}, CORS origin {settings.FRONTEND_URL}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
